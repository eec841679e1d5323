"""Point-in-time valuation of the portfolio in the base currency."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .config import EngineSettings, get_settings
from .fx import FXRateProvider
from .holdings import ledger_until, resolve_holdings
from .models import Instrument, PortfolioState, Position, PriceQuote, Transaction, TransactionType
from .prices import PriceBook

logger = logging.getLogger(__name__)

PriceInput = Union[PriceBook, Iterable[PriceQuote]]


def safe_div(num: float, den: float) -> float:
    if den == 0 or den != den:
        return 0.0
    return num / den


def as_price_book(prices: PriceInput) -> PriceBook:
    if isinstance(prices, PriceBook):
        return prices
    return PriceBook(prices)


def index_instruments(instruments: Iterable[Instrument]) -> Dict[str, Instrument]:
    """Key instruments by ticker; a later record for the same ticker wins."""

    indexed: Dict[str, Instrument] = {}
    for instrument in instruments:
        indexed[instrument.ticker] = instrument
    return indexed


def _lookup(catalog: Mapping[str, Instrument], ref: str) -> Optional[Instrument]:
    if ref in catalog:
        return catalog[ref]
    for instrument in catalog.values():
        if instrument.id is not None and instrument.id == ref:
            return instrument
    return None


@dataclass
class CapitalFlows:
    """Running tally of cash deployed into the portfolio, in the base currency.

    External deposits and withdrawals define the invested amount once the
    ledger records any; until then buy costs minus sell proceeds (fees
    included) are used. Each flow converts at its own date's rate. A flow
    with no FX rate on or before its date is kept out of the amount and
    listed in ``unconverted`` instead.
    """

    external: float = 0.0
    trades: float = 0.0
    has_external: bool = False
    unconverted_external: List[Transaction] = field(default_factory=list)
    unconverted_trades: List[Transaction] = field(default_factory=list)

    def add(self, tx: Transaction, fx: FXRateProvider) -> None:
        is_external = tx.type in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)
        if not is_external and not tx.is_trade:
            return
        if is_external:
            self.has_external = True
        rate = fx.rate(tx.date, tx.currency)
        if rate is None:
            (self.unconverted_external if is_external else self.unconverted_trades).append(tx)
            return

        if is_external:
            amount = abs(tx.quantity) * rate
            self.external += amount if tx.type is TransactionType.DEPOSIT else -amount
            return
        gross = abs(tx.quantity) * tx.price
        if tx.type is TransactionType.BUY:
            self.trades += (gross + tx.fees) * rate
        else:
            self.trades -= (gross - tx.fees) * rate

    @property
    def invested(self) -> float:
        return self.external if self.has_external else self.trades

    @property
    def unconverted(self) -> List[Transaction]:
        return list(self.unconverted_external if self.has_external else self.unconverted_trades)


def capital_flows(
    transactions: Sequence[Transaction],
    as_of: date,
    fx: FXRateProvider,
) -> CapitalFlows:
    flows = CapitalFlows()
    for tx in ledger_until(transactions, as_of):
        flows.add(tx, fx)
    return flows


def invested_capital(
    transactions: Sequence[Transaction],
    as_of: date,
    fx: FXRateProvider,
) -> float:
    """Net cash deployed up to ``as_of`` in the base currency."""

    return capital_flows(transactions, as_of, fx).invested


def value_holdings(
    holdings: Mapping[str, float],
    instruments: Iterable[Instrument],
    prices: PriceInput,
    reference_date: date,
    *,
    capital: CapitalFlows | None = None,
    fx: FXRateProvider | None = None,
    settings: EngineSettings | None = None,
) -> PortfolioState:
    """Price resolved holdings at ``reference_date``.

    Only positive quantities are valued. A held instrument without a quote
    (or FX rate) on or before the reference date is reported with
    ``priced=False`` and a zero value, and is left out of the percentages.
    Held references with no instrument metadata are listed in
    ``unresolved_refs``.
    """

    settings = settings or get_settings()
    book = as_price_book(prices)
    fx = fx or FXRateProvider(book, settings=settings)
    capital = capital or CapitalFlows()
    catalog = index_instruments(instruments)

    drafts: List[dict] = []
    unresolved: List[str] = []
    for ref, quantity in holdings.items():
        if quantity <= settings.quantity_epsilon:
            continue
        instrument = _lookup(catalog, ref)
        if instrument is None:
            logger.warning("No instrument metadata for held reference %s; excluded from totals", ref)
            unresolved.append(ref)
            continue
        close = book.price_at(instrument.ticker, reference_date)
        rate = fx.rate(reference_date, instrument.currency) if close is not None else None
        priced = close is not None and rate is not None
        if not priced:
            logger.warning(
                "No price for %s on or before %s; excluded from totals",
                instrument.ticker,
                reference_date.isoformat(),
            )
        drafts.append(
            {
                "instrument": instrument,
                "quantity": quantity,
                "current_price": close or 0.0,
                "fx_rate": rate or 0.0,
                "current_value": quantity * close * rate if priced else 0.0,
                "priced": priced,
            }
        )

    total_value = sum(d["current_value"] for d in drafts)
    positions = [
        Position(
            current_pct=safe_div(d["current_value"], total_value) * 100 if d["priced"] else 0.0,
            target_pct=d["instrument"].target_pct,
            **d,
        )
        for d in drafts
    ]
    invested = capital.invested
    balance = total_value - invested
    return PortfolioState(
        as_of=reference_date,
        base_currency=fx.base_currency,
        positions=positions,
        total_value=total_value,
        invested_capital=invested,
        balance=balance,
        balance_pct=safe_div(balance, invested) * 100,
        unconverted_flows=capital.unconverted,
        unresolved_refs=unresolved,
    )


def value_portfolio(
    transactions: Sequence[Transaction],
    instruments: Iterable[Instrument],
    prices: PriceInput,
    reference_date: date | None = None,
    settings: EngineSettings | None = None,
) -> PortfolioState:
    """Resolve holdings and value the portfolio as of ``reference_date`` (default today)."""

    settings = settings or get_settings()
    reference_date = reference_date or date.today()
    book = as_price_book(prices)
    fx = FXRateProvider(book, settings=settings)
    holdings = resolve_holdings(transactions, reference_date, settings)
    return value_holdings(
        holdings,
        instruments,
        book,
        reference_date,
        capital=capital_flows(transactions, reference_date, fx),
        fx=fx,
        settings=settings,
    )


__all__ = [
    "CapitalFlows",
    "as_price_book",
    "capital_flows",
    "index_instruments",
    "invested_capital",
    "safe_div",
    "value_holdings",
    "value_portfolio",
]

"""Reconstruction of the portfolio's value history.

The ledger is replayed once in date order; at every period end the
holdings accumulated so far are priced with quotes known at that date.
Monthly periods end on month ends; daily periods cover every calendar day,
with prices carried forward over days without a quote.

Period returns are naive and do not strip out deposits or purchases made
during the period, so they are not a time-weighted return.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date
from typing import Dict, Iterable, List, Sequence

import pandas as pd

from .config import EngineSettings, get_settings
from .fx import FXRateProvider
from .holdings import apply_transaction, ledger_until
from .models import (
    AllocationPoint,
    Granularity,
    HistoryPoint,
    Instrument,
    PerformanceHistory,
    Transaction,
)
from .prices import PriceBook
from .valuation import CapitalFlows, PriceInput, as_price_book, value_holdings

logger = logging.getLogger(__name__)


def month_end(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def _shift_months(d: date, months: int) -> date:
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def period_ends(start: date, end: date) -> List[date]:
    """Month-end dates from ``start``'s month through ``end``; the last is capped at ``end``."""

    if start > end:
        return []
    ends: List[date] = []
    cursor = start.replace(day=1)
    while cursor <= end:
        ends.append(min(month_end(cursor), end))
        cursor = _shift_months(cursor, 1)
    return ends


def calendar_days(start: date, end: date) -> List[date]:
    if start > end:
        return []
    return [ts.date() for ts in pd.date_range(start, end, freq="D")]


class _LedgerReplay:
    """Holdings and invested capital advanced incrementally through the ledger."""

    def __init__(self, transactions: Sequence[Transaction], fx: FXRateProvider, settings: EngineSettings):
        self._ledger = ledger_until(transactions)
        self._next = 0
        self._fx = fx
        self._settings = settings
        self.holdings: Dict[str, float] = {}
        self.capital = CapitalFlows()

    def advance(self, until: date) -> None:
        while self._next < len(self._ledger) and self._ledger[self._next].date <= until:
            tx = self._ledger[self._next]
            apply_transaction(self.holdings, tx, self._settings)
            self.capital.add(tx, self._fx)
            self._next += 1


def reconstruct_history(
    transactions: Sequence[Transaction],
    instruments: Iterable[Instrument],
    prices: PriceInput,
    months: int | None = None,
    as_of: date | None = None,
    settings: EngineSettings | None = None,
    granularity: Granularity | str = Granularity.MONTHLY,
) -> PerformanceHistory:
    """Build the value series and grouped allocation series.

    The series starts at the first transaction (its month, for monthly
    periods), or ``months`` months before ``as_of`` when the ledger is
    older than that.
    """

    settings = settings or get_settings()
    granularity = Granularity(granularity)
    months = months or settings.history_months
    end = as_of or date.today()
    if not transactions:
        return PerformanceHistory(granularity=granularity)

    instruments = list(instruments)
    book: PriceBook = as_price_book(prices)
    fx = FXRateProvider(book, settings=settings)
    first_tx = min(tx.date for tx in transactions)
    horizon_start = _shift_months(end.replace(day=1), -(months - 1))
    if granularity is Granularity.DAILY:
        start = max(first_tx, horizon_start)
        dates = calendar_days(start, end)
    else:
        start = max(first_tx.replace(day=1), horizon_start)
        dates = period_ends(start, end)
    logger.debug("Reconstructing %d %s periods from %s to %s", len(dates), granularity.value, start, end)

    replay = _LedgerReplay(transactions, fx, settings)
    points: List[HistoryPoint] = []
    asset_rows: List[Dict[str, float]] = []
    currency_rows: List[Dict[str, float]] = []
    prev_value = 0.0
    base_value = 0.0
    twr_index = 1.0
    for period_end in dates:
        replay.advance(period_end)
        state = value_holdings(
            replay.holdings, instruments, book, period_end, capital=replay.capital, fx=fx, settings=settings
        )
        value = state.total_value

        period_return = (value - prev_value) / prev_value * 100 if points and prev_value > 0 else 0.0
        if base_value == 0 and value != 0:
            base_value = value
        cumulative = (value - base_value) / base_value * 100 if base_value else 0.0
        twr_index *= 1 + period_return / 100

        points.append(
            HistoryPoint(
                date=period_end,
                value=value,
                invested=state.invested_capital,
                monthly_return_pct=period_return,
                cumulative_return_pct=cumulative,
                twr_index=twr_index,
            )
        )

        by_asset: Dict[str, float] = {}
        by_currency: Dict[str, float] = {}
        for position in state.positions:
            asset_key = position.instrument.asset_type.value
            by_asset[asset_key] = by_asset.get(asset_key, 0.0) + position.current_pct
            currency_key = position.instrument.currency
            by_currency[currency_key] = by_currency.get(currency_key, 0.0) + position.current_pct
        asset_rows.append(by_asset)
        currency_rows.append(by_currency)
        prev_value = value

    return PerformanceHistory(
        points=points,
        asset_history=_to_series(dates, asset_rows),
        currency_history=_to_series(dates, currency_rows),
        granularity=granularity,
    )


def _to_series(dates: Sequence[date], rows: Sequence[Dict[str, float]]) -> Dict[str, List[AllocationPoint]]:
    keys = sorted({key for row in rows for key in row})
    return {
        key: [AllocationPoint(date=d, pct=row.get(key, 0.0)) for d, row in zip(dates, rows)]
        for key in keys
    }


__all__ = ["month_end", "period_ends", "calendar_days", "reconstruct_history"]

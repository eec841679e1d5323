"""Replay of the transaction ledger into net quantities per instrument."""
from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from .config import EngineSettings, get_settings
from .errors import LedgerInconsistencyError
from .models import Transaction, TransactionType

logger = logging.getLogger(__name__)


def ledger_until(transactions: Sequence[Transaction], as_of: Optional[date] = None) -> List[Transaction]:
    """Return transactions dated on or before ``as_of`` in replay order.

    Ordering is by date only; ``sorted`` is stable, so same-day entries keep
    their ledger insertion order.
    """

    ordered = sorted(transactions, key=lambda tx: tx.date)
    if as_of is None:
        return ordered
    return [tx for tx in ordered if tx.date <= as_of]


def apply_transaction(
    holdings: Dict[str, float],
    tx: Transaction,
    settings: EngineSettings,
) -> None:
    """Apply one ledger entry to ``holdings`` in place.

    Non-trade entries (cash movements, dividends, fees) do not affect
    quantities. Ledger quantities are read as magnitudes.
    """

    if not tx.is_trade or not tx.instrument_ref:
        return
    ref = tx.instrument_ref
    current = holdings.get(ref, 0.0)
    qty = abs(tx.quantity)
    if tx.type is TransactionType.BUY:
        holdings[ref] = current + qty
        return

    remaining = current - qty
    if remaining < -settings.quantity_epsilon:
        if settings.oversell_policy == "reject":
            raise LedgerInconsistencyError(ref, current, qty)
        logger.warning(
            "Sell of %s %s on %s exceeds held quantity %s (policy=%s)",
            qty,
            ref,
            tx.date.isoformat(),
            current,
            settings.oversell_policy,
        )
        if settings.oversell_policy == "clamp":
            remaining = 0.0
    holdings[ref] = remaining


def resolve_holdings(
    transactions: Sequence[Transaction],
    as_of: Optional[date] = None,
    settings: EngineSettings | None = None,
) -> Dict[str, float]:
    """Return the net quantity per instrument after replaying the ledger.

    Instruments that traded but were fully sold remain in the mapping with
    quantity 0.
    """

    settings = settings or get_settings()
    holdings: Dict[str, float] = {}
    for tx in ledger_until(transactions, as_of):
        apply_transaction(holdings, tx, settings)
    return holdings


__all__ = ["ledger_until", "apply_transaction", "resolve_holdings"]

"""Exception types raised by the investment tracker engine."""
from __future__ import annotations

from typing import Any, Sequence


class TrackerError(Exception):
    """Base class for engine errors."""


class RecordValidationError(TrackerError, ValueError):
    """A storage record could not be turned into a domain model."""

    def __init__(self, kind: str, index: int, errors: Sequence[Any]):
        self.kind = kind
        self.index = index
        self.errors = list(errors)
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in self.errors
        )
        super().__init__(f"Invalid {kind} record at index {index}: {details}")


class LedgerInconsistencyError(TrackerError):
    """A sell exceeded the quantity held at that point of the ledger."""

    def __init__(self, ticker: str, held: float, sold: float):
        self.ticker = ticker
        self.held = held
        self.sold = sold
        super().__init__(f"Sell of {sold} {ticker} exceeds held quantity {held}")


class IndicatorUpdateError(TrackerError, ValueError):
    """An indicator update carried an invalid value."""


class UnknownIndicatorError(TrackerError, KeyError):
    """An indicator update targeted an id that is not configured."""

    def __str__(self) -> str:
        return f"Unknown indicator id {self.args[0]!r}"


__all__ = [
    "TrackerError",
    "RecordValidationError",
    "LedgerInconsistencyError",
    "IndicatorUpdateError",
    "UnknownIndicatorError",
]

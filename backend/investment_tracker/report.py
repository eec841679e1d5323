"""One-call facade producing every engine output for a consistent snapshot."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence

from .allocation import (
    AllocationGap,
    AllocationSlice,
    GroupKey,
    allocation_by_asset_class,
    allocation_gaps,
    exposure_by_currency,
    exposure_by_region,
)
from .analytics import compute_analytics
from .config import EngineSettings, get_settings
from .history import reconstruct_history
from .macro import compute_macro_index
from .models import (
    AnalyticsResult,
    Granularity,
    Instrument,
    MacroIndexResult,
    MacroIndicatorConfig,
    PerformanceHistory,
    PortfolioState,
    PriceQuote,
    Transaction,
)
from .prices import PriceBook
from .valuation import value_portfolio


@dataclass(frozen=True)
class EngineReport:
    state: PortfolioState
    history: PerformanceHistory
    analytics: AnalyticsResult
    asset_class_allocation: List[AllocationSlice] = field(default_factory=list)
    currency_exposure: List[AllocationSlice] = field(default_factory=list)
    region_exposure: List[AllocationSlice] = field(default_factory=list)
    asset_type_gaps: List[AllocationGap] = field(default_factory=list)
    macro: Optional[MacroIndexResult] = None


def build_report(
    transactions: Sequence[Transaction],
    instruments: Iterable[Instrument],
    quotes: Iterable[PriceQuote],
    indicators: Sequence[MacroIndicatorConfig] | None = None,
    as_of: date | None = None,
    settings: EngineSettings | None = None,
    granularity: Granularity | str = Granularity.MONTHLY,
) -> EngineReport:
    settings = settings or get_settings()
    as_of = as_of or date.today()
    instruments = list(instruments)
    book = PriceBook(quotes)

    state = value_portfolio(transactions, instruments, book, as_of, settings)
    history = reconstruct_history(
        transactions, instruments, book, as_of=as_of, settings=settings, granularity=granularity
    )
    return EngineReport(
        state=state,
        history=history,
        analytics=compute_analytics(history, settings),
        asset_class_allocation=allocation_by_asset_class(state, settings),
        currency_exposure=exposure_by_currency(state),
        region_exposure=exposure_by_region(state),
        asset_type_gaps=allocation_gaps(state, GroupKey.ASSET_TYPE),
        macro=compute_macro_index(indicators, settings) if indicators is not None else None,
    )


def _json_default(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(obj: Any, indent: int = 2) -> str:
    """Serialize an engine dataclass (report, state, macro result) to JSON."""

    return json.dumps(asdict(obj), default=_json_default, indent=indent)


__all__ = ["EngineReport", "build_report", "to_json"]

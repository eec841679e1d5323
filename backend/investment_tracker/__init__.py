"""Core package for the investment tracker analytics engine."""

from .analytics import compute_analytics
from .history import reconstruct_history
from .holdings import resolve_holdings
from .macro import compute_macro_index, gauge_score, map_index_to_phase, normalize_indicator
from .models import (
    AnalyticsResult,
    Direction,
    Granularity,
    HistoryPoint,
    Instrument,
    MacroIndicatorConfig,
    MacroPhase,
    PortfolioState,
    Position,
    PriceQuote,
    Transaction,
    TransactionType,
)
from .report import build_report
from .valuation import value_portfolio

__all__ = [
    "AnalyticsResult",
    "Direction",
    "Granularity",
    "HistoryPoint",
    "Instrument",
    "MacroIndicatorConfig",
    "MacroPhase",
    "PortfolioState",
    "Position",
    "PriceQuote",
    "Transaction",
    "TransactionType",
    "build_report",
    "compute_analytics",
    "compute_macro_index",
    "gauge_score",
    "map_index_to_phase",
    "normalize_indicator",
    "reconstruct_history",
    "resolve_holdings",
    "value_portfolio",
]

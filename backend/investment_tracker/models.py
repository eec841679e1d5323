"""Domain models used by the investment tracker analytics engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    FEE = "FEE"


class AssetType(str, Enum):
    STOCK = "Stock"
    ETF = "ETF"
    BOND = "Bond"
    CRYPTO = "Crypto"
    CASH = "Cash"
    COMMODITY = "Commodity"


class AssetClass(str, Enum):
    STOCK = "STOCK"
    BOND = "BOND"
    ETF_STOCK = "ETF_STOCK"
    ETF_BOND = "ETF_BOND"
    ETC = "ETC"
    CRYPTO = "CRYPTO"
    CASH = "CASH"
    OTHER = "OTHER"


class Direction(str, Enum):
    HIGH_IS_CRISIS = "high_is_crisis"
    LOW_IS_CRISIS = "low_is_crisis"


class MacroPhase(str, Enum):
    CRISIS = "crisis"
    NEUTRAL = "neutral"
    EUPHORIA = "euphoria"


class RegionKey(str, Enum):
    CH = "CH"
    NA = "NA"
    EU = "EU"
    AS = "AS"
    OC = "OC"
    LATAM = "LATAM"
    AF = "AF"
    UNASSIGNED = "UNASSIGNED"


class Granularity(str, Enum):
    MONTHLY = "monthly"
    DAILY = "daily"


@dataclass(frozen=True)
class Transaction:
    """A ledger entry: a trade on an instrument or an external cash movement."""

    date: date
    type: TransactionType
    quantity: float
    price: float = 0.0
    currency: str = "CHF"
    instrument_ref: Optional[str] = None
    fees: float = 0.0

    @property
    def is_trade(self) -> bool:
        return self.type in (TransactionType.BUY, TransactionType.SELL)


@dataclass(frozen=True)
class Instrument:
    """Reference data for a tradable instrument.

    ``region_allocation`` maps regions to percentages of the instrument's
    value (for funds spread over several markets); when it is absent the
    ISIN country prefix decides the region.
    """

    ticker: str
    name: str
    asset_type: AssetType
    currency: str
    target_pct: float = 0.0
    id: Optional[str] = None
    asset_class: Optional[AssetClass] = None
    isin: Optional[str] = None
    region_allocation: Optional[Dict[RegionKey, float]] = field(default=None, hash=False)


@dataclass(frozen=True)
class PriceQuote:
    """Closing price of a ticker on one date."""

    ticker: str
    date: date
    close: float


@dataclass(frozen=True)
class Position:
    """Valued holding of one instrument at a reference date."""

    instrument: Instrument
    quantity: float
    current_price: float
    fx_rate: float
    current_value: float
    current_pct: float
    target_pct: float
    priced: bool = True

    @property
    def ticker(self) -> str:
        return self.instrument.ticker


@dataclass(frozen=True)
class PortfolioState:
    as_of: date
    base_currency: str
    positions: List[Position]
    total_value: float
    invested_capital: float
    balance: float
    balance_pct: float
    unconverted_flows: List[Transaction] = field(default_factory=list)
    unresolved_refs: List[str] = field(default_factory=list)

    @property
    def unpriced(self) -> List[Position]:
        """Positions that are held but had no quote at the reference date."""

        return [p for p in self.positions if not p.priced]

    @property
    def complete(self) -> bool:
        """True when every holding and cash flow made it into the totals."""

        return not (self.unpriced or self.unconverted_flows or self.unresolved_refs)


@dataclass(frozen=True)
class HistoryPoint:
    date: date
    value: float
    invested: float
    monthly_return_pct: float
    cumulative_return_pct: float
    twr_index: float = 1.0


@dataclass(frozen=True)
class AllocationPoint:
    date: date
    pct: float


@dataclass
class PerformanceHistory:
    """Reconstructed value series plus grouped allocation series.

    ``monthly_return_pct`` on each point is the return over one period of
    ``granularity`` (a month or a calendar day).
    """

    points: List[HistoryPoint] = field(default_factory=list)
    asset_history: Dict[str, List[AllocationPoint]] = field(default_factory=dict)
    currency_history: Dict[str, List[AllocationPoint]] = field(default_factory=dict)
    granularity: Granularity = Granularity.MONTHLY


@dataclass(frozen=True)
class DrawdownPoint:
    date: date
    depth: float


@dataclass(frozen=True)
class AnnualReturn:
    year: int
    return_pct: float


@dataclass(frozen=True)
class AnalyticsResult:
    annualized_return: float
    std_dev: float
    sharpe_ratio: float
    max_drawdown: float
    drawdown_series: List[DrawdownPoint]
    annual_returns: List[AnnualReturn]


@dataclass(frozen=True)
class MacroIndicatorConfig:
    """User-editable macro indicator definition."""

    id: str
    name: str
    current_value: float
    min_value: float
    max_value: float
    weight: float
    direction: Direction
    unit: Optional[str] = None


@dataclass(frozen=True)
class MacroIndicatorComputed(MacroIndicatorConfig):
    normalized: float = 0.0
    weighted: float = 0.0


@dataclass(frozen=True)
class MacroIndexResult:
    index: float
    rows: List[MacroIndicatorComputed]
    phase: MacroPhase
    gauge_score: int


__all__ = [
    "TransactionType",
    "AssetType",
    "AssetClass",
    "Direction",
    "MacroPhase",
    "RegionKey",
    "Granularity",
    "Transaction",
    "Instrument",
    "PriceQuote",
    "Position",
    "PortfolioState",
    "HistoryPoint",
    "AllocationPoint",
    "PerformanceHistory",
    "DrawdownPoint",
    "AnnualReturn",
    "AnalyticsResult",
    "MacroIndicatorConfig",
    "MacroIndicatorComputed",
    "MacroIndexResult",
]

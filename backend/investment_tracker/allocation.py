"""Read-only consumers of valued positions: gaps, exposure and rebalancing."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Sequence

from .config import EngineSettings, get_settings
from .models import AssetClass, AssetType, Instrument, PortfolioState, Position, RegionKey
from .valuation import safe_div


class GroupKey(str, Enum):
    ASSET_TYPE = "asset_type"
    ASSET_CLASS = "asset_class"
    CURRENCY = "currency"


class RebalanceStrategy(str, Enum):
    ACCUMULATE = "ACCUMULATE"
    MAINTAIN = "MAINTAIN"


class RebalanceAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


@dataclass(frozen=True)
class AllocationGap:
    key: str
    value: float
    current_pct: float
    target_pct: float

    @property
    def gap_pct(self) -> float:
        return self.target_pct - self.current_pct


@dataclass(frozen=True)
class AllocationSlice:
    key: str
    value: float
    pct: float


@dataclass(frozen=True)
class RebalanceSuggestion:
    ticker: str
    name: str
    action: RebalanceAction
    amount: float
    quantity: float
    current_pct: float
    target_pct: float


_BOND_WORDS = ("bond", "treasury", "aggregate", "gov", "government", "corporate", "credit", "duration", "tips", "inflation")
_COMMODITY_WORDS = ("etc", "etn", "physical gold", "gold", "commodity")


def _contains_any(source: str, keywords: Sequence[str]) -> bool:
    lowered = source.lower()
    return any(k in lowered for k in keywords)


def infer_asset_class(instrument: Instrument) -> AssetClass:
    """Return the configured asset class, else infer it from name and type."""

    if instrument.asset_class is not None:
        return instrument.asset_class
    name = (instrument.name or "").lower()
    ticker = (instrument.ticker or "").upper()
    asset_type = instrument.asset_type

    if "BTC" in ticker or "ETH" in ticker or asset_type is AssetType.CRYPTO:
        return AssetClass.CRYPTO
    if _contains_any(name, _COMMODITY_WORDS):
        return AssetClass.ETC
    if "etf" in name or "ucits" in name or asset_type is AssetType.ETF:
        if _contains_any(name, _BOND_WORDS):
            return AssetClass.ETF_BOND
        return AssetClass.ETF_STOCK
    if asset_type is AssetType.BOND:
        return AssetClass.BOND
    if asset_type is AssetType.STOCK:
        return AssetClass.STOCK
    if asset_type is AssetType.CASH:
        return AssetClass.CASH
    return AssetClass.OTHER


_KEY_FUNCS: Dict[GroupKey, Callable[[Position], str]] = {
    GroupKey.ASSET_TYPE: lambda p: p.instrument.asset_type.value,
    GroupKey.ASSET_CLASS: lambda p: infer_asset_class(p.instrument).value,
    GroupKey.CURRENCY: lambda p: p.instrument.currency,
}


def allocation_gaps(state: PortfolioState, key: GroupKey | str = GroupKey.ASSET_TYPE) -> List[AllocationGap]:
    """Aggregate current and target percentages per group, largest gap first."""

    key_func = _KEY_FUNCS[GroupKey(key)]
    values: Dict[str, float] = {}
    current: Dict[str, float] = {}
    target: Dict[str, float] = {}
    for position in state.positions:
        group = key_func(position)
        values[group] = values.get(group, 0.0) + position.current_value
        current[group] = current.get(group, 0.0) + position.current_pct
        target[group] = target.get(group, 0.0) + position.target_pct
    gaps = [
        AllocationGap(key=group, value=values[group], current_pct=current[group], target_pct=target[group])
        for group in values
    ]
    gaps.sort(key=lambda g: abs(g.gap_pct), reverse=True)
    return gaps


def allocation_by_asset_class(
    state: PortfolioState, settings: EngineSettings | None = None
) -> List[AllocationSlice]:
    """Exposure per asset class; slices under the minor threshold fold into OTHER."""

    settings = settings or get_settings()
    totals: Dict[str, float] = {}
    for position in state.positions:
        group = infer_asset_class(position.instrument).value
        totals[group] = totals.get(group, 0.0) + position.current_value

    slices = [
        AllocationSlice(key=group, value=value, pct=safe_div(value, state.total_value) * 100)
        for group, value in totals.items()
        if value > 0
    ]
    slices.sort(key=lambda s: s.value, reverse=True)

    major = [s for s in slices if s.pct >= settings.minor_allocation_pct]
    minor_value = sum(s.value for s in slices if s.pct < settings.minor_allocation_pct)
    if minor_value > 0:
        major.append(
            AllocationSlice(
                key=AssetClass.OTHER.value,
                value=minor_value,
                pct=safe_div(minor_value, state.total_value) * 100,
            )
        )
    return major


def exposure_by_currency(state: PortfolioState) -> List[AllocationSlice]:
    totals: Dict[str, float] = {}
    for position in state.positions:
        currency = position.instrument.currency
        totals[currency] = totals.get(currency, 0.0) + position.current_value
    slices = [
        AllocationSlice(key=currency, value=value, pct=safe_div(value, state.total_value) * 100)
        for currency, value in totals.items()
        if value > 0
    ]
    slices.sort(key=lambda s: s.value, reverse=True)
    return slices


_ISIN_REGIONS: Dict[str, RegionKey] = {
    "CH": RegionKey.CH,
    "US": RegionKey.NA,
    "CA": RegionKey.NA,
    **{p: RegionKey.EU for p in ("GB", "IE", "LU", "FR", "DE", "NL", "ES", "IT", "BE", "DK", "SE", "FI", "NO", "PT", "AT")},
    **{p: RegionKey.AS for p in ("JP", "CN", "HK", "KR", "SG", "IN", "TW")},
    **{p: RegionKey.OC for p in ("AU", "NZ")},
    **{p: RegionKey.LATAM for p in ("BR", "MX", "CL", "AR")},
    **{p: RegionKey.AF for p in ("ZA", "EG", "NG")},
}


def region_from_isin(isin: str | None) -> RegionKey | None:
    """Map an ISIN's country prefix to a region, if it is a known one."""

    if not isin or len(isin) < 2:
        return None
    return _ISIN_REGIONS.get(isin[:2].upper())


def exposure_by_region(state: PortfolioState) -> List[AllocationSlice]:
    """Spread each position over regions, largest exposure first.

    An instrument's ``region_allocation`` percentages split its value; the
    part they leave uncovered goes to UNASSIGNED. Without an allocation the
    ISIN prefix decides, and instruments with neither are UNASSIGNED.
    """

    totals: Dict[str, float] = {}

    def book(region: RegionKey, value: float) -> None:
        totals[region.value] = totals.get(region.value, 0.0) + value

    for position in state.positions:
        value = position.current_value
        if value <= 0:
            continue
        weights = {
            RegionKey(region): float(pct)
            for region, pct in (position.instrument.region_allocation or {}).items()
            if pct is not None and pct > 0
        }
        covered = sum(weights.values())
        if covered > 0:
            for region, pct in weights.items():
                book(region, value * pct / 100)
            if covered < 100:
                book(RegionKey.UNASSIGNED, value * (100 - covered) / 100)
            continue
        book(region_from_isin(position.instrument.isin) or RegionKey.UNASSIGNED, value)

    slices = [
        AllocationSlice(key=region, value=value, pct=safe_div(value, state.total_value) * 100)
        for region, value in totals.items()
    ]
    slices.sort(key=lambda s: s.value, reverse=True)
    return slices


def suggest_rebalance(
    state: PortfolioState,
    strategy: RebalanceStrategy | str = RebalanceStrategy.MAINTAIN,
    cash_injection: float = 0.0,
    settings: EngineSettings | None = None,
) -> List[RebalanceSuggestion]:
    """Suggest trades that move each priced position toward its target.

    ``ACCUMULATE`` adds ``cash_injection`` to the target base and never
    sells. Differences within the tolerance band are held.
    """

    settings = settings or get_settings()
    strategy = RebalanceStrategy(strategy)
    effective_total = state.total_value
    if strategy is RebalanceStrategy.ACCUMULATE:
        effective_total += cash_injection
    threshold = effective_total * settings.rebalance_threshold_pct / 100

    suggestions: List[RebalanceSuggestion] = []
    for position in state.positions:
        if not position.priced:
            continue
        target_value = effective_total * position.target_pct / 100
        diff = target_value - position.current_value

        action = RebalanceAction.HOLD
        if position.target_pct == 0 and position.quantity > 0:
            action = RebalanceAction.SELL
        elif diff > threshold:
            action = RebalanceAction.BUY
        elif diff < -threshold:
            action = RebalanceAction.SELL
        if strategy is RebalanceStrategy.ACCUMULATE and action is RebalanceAction.SELL:
            action = RebalanceAction.HOLD

        amount = 0.0 if action is RebalanceAction.HOLD else abs(diff)
        unit_value = position.current_price * position.fx_rate
        suggestions.append(
            RebalanceSuggestion(
                ticker=position.ticker,
                name=position.instrument.name,
                action=action,
                amount=amount,
                quantity=safe_div(amount, unit_value),
                current_pct=position.current_pct,
                target_pct=position.target_pct,
            )
        )
    return suggestions


__all__ = [
    "GroupKey",
    "RebalanceStrategy",
    "RebalanceAction",
    "AllocationGap",
    "AllocationSlice",
    "RebalanceSuggestion",
    "infer_asset_class",
    "allocation_gaps",
    "allocation_by_asset_class",
    "exposure_by_currency",
    "region_from_isin",
    "exposure_by_region",
    "suggest_rebalance",
]

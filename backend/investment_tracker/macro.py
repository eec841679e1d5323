"""Macro sentiment gauge: indicator normalization and composite index.

Each indicator is mapped onto a unitless stress scale where 0 means
expansion/euphoria and 1 means crisis. The composite index is the
weight-proportional blend of those stress values, so only the ratios of
the configured weights matter.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import List, Sequence

from .config import EngineSettings, get_settings
from .errors import IndicatorUpdateError, UnknownIndicatorError
from .models import (
    Direction,
    MacroIndexResult,
    MacroIndicatorComputed,
    MacroIndicatorConfig,
    MacroPhase,
)

logger = logging.getLogger(__name__)

NEUTRAL_INDEX = 0.5

DEFAULT_INDICATORS: List[MacroIndicatorConfig] = [
    MacroIndicatorConfig("1", "Fed Funds Rate", 5.33, 0, 10, 15, Direction.HIGH_IS_CRISIS, unit="%"),
    MacroIndicatorConfig("2", "Temporary Help Workers", 2950, 2000, 3500, 10, Direction.LOW_IS_CRISIS, unit="k"),
    MacroIndicatorConfig("3", "Unemployment Rate", 3.7, 3.4, 10, 20, Direction.HIGH_IS_CRISIS, unit="%"),
    MacroIndicatorConfig("4", "Consumer Sentiment (UMich)", 69, 50, 100, 10, Direction.LOW_IS_CRISIS, unit="pts"),
    MacroIndicatorConfig("5", "S&P 500 Earnings Yield", 4.5, 3, 7, 15, Direction.LOW_IS_CRISIS, unit="%"),
    MacroIndicatorConfig("6", "VIX", 13, 10, 60, 10, Direction.HIGH_IS_CRISIS, unit="pts"),
    MacroIndicatorConfig("7", "10Y-2Y Treasury Spread", -0.40, -1.0, 2.0, 20, Direction.LOW_IS_CRISIS, unit="bps"),
]


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def normalize_indicator(
    current: float,
    min_value: float,
    max_value: float,
    direction: Direction,
) -> float:
    """Return how far ``current`` sits toward the crisis end of its range.

    A zero-width range carries no signal and yields the neutral 0.5. Values
    outside ``[min_value, max_value]`` saturate at 0 or 1.
    """

    span = max_value - min_value
    if span == 0:
        return NEUTRAL_INDEX
    position = (current - min_value) / span
    if Direction(direction) is Direction.LOW_IS_CRISIS:
        position = 1 - position
    return clamp01(position)


def map_index_to_phase(index: float, settings: EngineSettings | None = None) -> MacroPhase:
    """Classify a composite index; the band edges themselves are neutral."""

    settings = settings or get_settings()
    if index > settings.crisis_threshold:
        return MacroPhase.CRISIS
    if index < settings.euphoria_threshold:
        return MacroPhase.EUPHORIA
    return MacroPhase.NEUTRAL


def gauge_score(index: float) -> int:
    """Rescale the crisis-oriented index to a 0-100 euphoria score."""

    return int(math.floor((1 - index) * 100 + 0.5))


def compute_macro_index(
    indicators: Sequence[MacroIndicatorConfig],
    settings: EngineSettings | None = None,
) -> MacroIndexResult:
    """Blend the indicators into one composite index with per-row detail."""

    total_weight = 0.0
    normalized: List[float] = []
    for indicator in indicators:
        normalized.append(
            normalize_indicator(
                indicator.current_value,
                indicator.min_value,
                indicator.max_value,
                indicator.direction,
            )
        )
        total_weight += indicator.weight

    rows: List[MacroIndicatorComputed] = []
    if total_weight == 0:
        logger.debug("Macro index over %d indicators has zero total weight", len(indicators))
        index = NEUTRAL_INDEX
        for indicator, norm in zip(indicators, normalized):
            rows.append(_computed(indicator, norm, 0.0))
    else:
        weighted_sum = 0.0
        for indicator, norm in zip(indicators, normalized):
            weighted = norm * (indicator.weight / total_weight)
            weighted_sum += weighted
            rows.append(_computed(indicator, norm, weighted))
        index = clamp01(weighted_sum)

    return MacroIndexResult(
        index=index,
        rows=rows,
        phase=map_index_to_phase(index, settings),
        gauge_score=gauge_score(index),
    )


def _computed(indicator: MacroIndicatorConfig, normalized: float, weighted: float) -> MacroIndicatorComputed:
    return MacroIndicatorComputed(
        id=indicator.id,
        name=indicator.name,
        current_value=indicator.current_value,
        min_value=indicator.min_value,
        max_value=indicator.max_value,
        weight=indicator.weight,
        direction=indicator.direction,
        unit=indicator.unit,
        normalized=normalized,
        weighted=weighted,
    )


# ---------------------------------------------------------------------------
# Closed update operations
# ---------------------------------------------------------------------------


def _replace_indicator(
    indicators: Sequence[MacroIndicatorConfig], indicator_id: str, **changes
) -> List[MacroIndicatorConfig]:
    updated: List[MacroIndicatorConfig] = []
    found = False
    for indicator in indicators:
        if indicator.id == indicator_id:
            indicator = replace(indicator, **changes)
            found = True
        updated.append(indicator)
    if not found:
        raise UnknownIndicatorError(indicator_id)
    return updated


def _require_finite(name: str, value: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise IndicatorUpdateError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise IndicatorUpdateError(f"{name} must be finite, got {value!r}")
    return number


def update_value(
    indicators: Sequence[MacroIndicatorConfig], indicator_id: str, value: float
) -> List[MacroIndicatorConfig]:
    return _replace_indicator(
        indicators, indicator_id, current_value=_require_finite("current_value", value)
    )


def update_range(
    indicators: Sequence[MacroIndicatorConfig],
    indicator_id: str,
    min_value: float,
    max_value: float,
) -> List[MacroIndicatorConfig]:
    """Set the indicator range; an equal min and max is accepted (neutral)."""

    low = _require_finite("min_value", min_value)
    high = _require_finite("max_value", max_value)
    if low > high:
        raise IndicatorUpdateError(f"min_value {low} is above max_value {high}")
    return _replace_indicator(indicators, indicator_id, min_value=low, max_value=high)


def update_weight(
    indicators: Sequence[MacroIndicatorConfig], indicator_id: str, weight: float
) -> List[MacroIndicatorConfig]:
    number = _require_finite("weight", weight)
    if not 0 <= number <= 100:
        raise IndicatorUpdateError(f"weight must be within 0-100, got {number}")
    return _replace_indicator(indicators, indicator_id, weight=number)


def update_direction(
    indicators: Sequence[MacroIndicatorConfig], indicator_id: str, direction: Direction | str
) -> List[MacroIndicatorConfig]:
    try:
        parsed = Direction(direction)
    except ValueError as exc:
        raise IndicatorUpdateError(f"Unknown direction {direction!r}") from exc
    return _replace_indicator(indicators, indicator_id, direction=parsed)


__all__ = [
    "DEFAULT_INDICATORS",
    "NEUTRAL_INDEX",
    "clamp01",
    "normalize_indicator",
    "compute_macro_index",
    "map_index_to_phase",
    "gauge_score",
    "update_value",
    "update_range",
    "update_weight",
    "update_direction",
]

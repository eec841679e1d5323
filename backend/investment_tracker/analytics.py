"""Risk and return statistics over a reconstructed value series."""

from __future__ import annotations

from typing import List, Sequence, Union

import numpy as np
import pandas as pd

from .config import EngineSettings, get_settings
from .models import AnalyticsResult, AnnualReturn, DrawdownPoint, Granularity, HistoryPoint, PerformanceHistory

DAYS_PER_YEAR = 365.25

HistoryInput = Union[PerformanceHistory, Sequence[HistoryPoint]]


def value_series(history: HistoryInput) -> pd.Series:
    """Return the values indexed by period date, in chronological order."""

    points = history.points if isinstance(history, PerformanceHistory) else list(history)
    if not points:
        return pd.Series(dtype=float)
    index = pd.DatetimeIndex([pd.Timestamp(p.date) for p in points])
    return pd.Series([float(p.value) for p in points], index=index, dtype=float).sort_index()


def compute_drawdown_series(values: pd.Series) -> pd.Series:
    """Percentage depth below the running peak; 0 while the peak is not positive."""

    if values.empty:
        return pd.Series(dtype=float)
    peak = values.cummax()
    depth = np.where(peak > 0, (values - peak) / peak.where(peak > 0, 1.0) * 100, 0.0)
    return pd.Series(np.minimum(depth, 0.0), index=values.index, dtype=float)


def period_returns(values: pd.Series) -> pd.Series:
    """Fractional period-over-period returns, skipping periods that start at 0."""

    prev = values.shift(1)
    mask = prev > 0
    return ((values - prev) / prev)[mask]


def _first_positive(values: pd.Series) -> int | None:
    positive = np.flatnonzero(values.to_numpy() > 0)
    return int(positive[0]) if len(positive) else None


def _growth_rate(initial: float, final: float, exponent: float) -> float:
    if initial <= 0:
        return 0.0
    ratio = final / initial
    if ratio <= 0:
        return -1.0
    return float(ratio ** exponent - 1)


def annualized_return(values: pd.Series, periods_per_year: int = 12) -> float:
    """CAGR from the first positive value to the last value of the series.

    The horizon counts the points from that first positive value on, so two
    monthly points span two months.
    """

    start = _first_positive(values)
    if start is None:
        return 0.0
    years = (len(values) - start) / periods_per_year
    if years <= 0:
        return 0.0
    return _growth_rate(float(values.iloc[start]), float(values.iloc[-1]), 1 / years)


def calendar_annualized_return(values: pd.Series) -> float:
    """CAGR over the calendar days between the first positive and the last point."""

    start = _first_positive(values)
    if start is None:
        return 0.0
    days = (values.index[-1] - values.index[start]).days or 1
    return _growth_rate(float(values.iloc[start]), float(values.iloc[-1]), DAYS_PER_YEAR / days)


def annual_returns(values: pd.Series) -> List[AnnualReturn]:
    """Return per calendar year from its first to its last available point."""

    if values.empty:
        return []
    grouped = values.groupby(values.index.year).agg(["first", "last"])
    results: List[AnnualReturn] = []
    for year, row in grouped.iterrows():
        start_value = float(row["first"])
        end_value = float(row["last"])
        pct = (end_value / start_value - 1) * 100 if start_value > 0 else 0.0
        results.append(AnnualReturn(year=int(year), return_pct=pct))
    return results


def compute_analytics(
    history: HistoryInput,
    settings: EngineSettings | None = None,
    granularity: Granularity | str | None = None,
) -> AnalyticsResult:
    """Derive CAGR, volatility, Sharpe ratio, drawdowns and calendar-year returns.

    ``annualized_return`` and ``std_dev`` are fractions; drawdown depths,
    ``max_drawdown`` and annual returns are percentages. Volatility is the
    population standard deviation of period returns scaled by the square
    root of the periods per year (``trading_days_per_year`` for daily
    series). Daily series annualize the return over calendar days.

    ``granularity`` defaults to the one recorded on a ``PerformanceHistory``
    and to monthly for a bare sequence of points.
    """

    settings = settings or get_settings()
    if granularity is None:
        granularity = history.granularity if isinstance(history, PerformanceHistory) else Granularity.MONTHLY
    daily = Granularity(granularity) is Granularity.DAILY

    values = value_series(history)
    drawdown = compute_drawdown_series(values)
    drawdown_points = [
        DrawdownPoint(date=ts.date(), depth=float(depth)) for ts, depth in drawdown.items()
    ]
    max_drawdown = float(drawdown.min()) if not drawdown.empty else 0.0

    if daily:
        periods_per_year = settings.trading_days_per_year
        cagr = calendar_annualized_return(values)
    else:
        periods_per_year = settings.periods_per_year
        cagr = annualized_return(values, periods_per_year)
    returns = period_returns(values)
    sigma = 0.0
    if len(returns) > 0:
        sigma = float(returns.std(ddof=0) * np.sqrt(periods_per_year))
    sharpe = (cagr - settings.risk_free_rate) / sigma if sigma > 1e-12 else 0.0

    return AnalyticsResult(
        annualized_return=cagr,
        std_dev=sigma,
        sharpe_ratio=float(sharpe),
        max_drawdown=max_drawdown,
        drawdown_series=drawdown_points,
        annual_returns=annual_returns(values),
    )


__all__ = [
    "value_series",
    "compute_drawdown_series",
    "period_returns",
    "annualized_return",
    "calendar_annualized_return",
    "annual_returns",
    "compute_analytics",
]

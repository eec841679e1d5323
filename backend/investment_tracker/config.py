"""Configuration for the investment tracker engine."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

DEFAULT_BASE_CURRENCY = "CHF"


class EngineSettings(BaseSettings):
    """Tunable parameters of the valuation, history and macro computations."""

    base_currency: str = Field(default=DEFAULT_BASE_CURRENCY)
    history_months: int = Field(default=120, ge=1)
    periods_per_year: int = Field(default=12, ge=1)
    trading_days_per_year: int = Field(
        default=252, ge=1, description="Annualization factor for daily return volatility."
    )
    risk_free_rate: float = Field(
        default=0.0,
        description="Annual risk-free rate subtracted from CAGR in the Sharpe ratio.",
    )

    crisis_threshold: float = Field(default=0.60, ge=0.0, le=1.0)
    euphoria_threshold: float = Field(default=0.40, ge=0.0, le=1.0)

    fx_ticker_template: str = Field(
        default="{base}{quote}",
        description="Ticker of an FX pair in the price series; closes quote units of `quote` per `base`.",
    )
    oversell_policy: Literal["allow", "clamp", "reject"] = Field(default="allow")
    quantity_epsilon: float = Field(default=1e-6, ge=0.0)

    rebalance_threshold_pct: float = Field(default=1.0, ge=0.0)
    minor_allocation_pct: float = Field(default=2.0, ge=0.0)

    log_level: str = Field(default="INFO")

    class Config:
        env_prefix = "TRACKER_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @model_validator(mode="after")
    def _check_phase_bands(self) -> "EngineSettings":
        if self.euphoria_threshold >= self.crisis_threshold:
            raise ValueError("euphoria_threshold must be below crisis_threshold")
        return self

    def fx_ticker(self, base: str, quote: str) -> str:
        """Return the price-series ticker holding ``quote`` per unit of ``base``."""

        return self.fx_ticker_template.format(base=base.upper(), quote=quote.upper())


@lru_cache(maxsize=1)
def _default_settings() -> EngineSettings:
    return EngineSettings()


def get_settings(**overrides: Any) -> EngineSettings:
    """Return the cached engine settings, or a fresh instance with overrides."""

    if overrides:
        return EngineSettings(**overrides)
    return _default_settings()


__all__ = ["EngineSettings", "get_settings", "DEFAULT_BASE_CURRENCY"]

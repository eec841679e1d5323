from __future__ import annotations

import pytest
from pydantic import ValidationError

from investment_tracker.config import EngineSettings, get_settings


def test_defaults(settings):
    assert settings.base_currency == "CHF"
    assert settings.history_months == 120
    assert settings.crisis_threshold == 0.60
    assert settings.euphoria_threshold == 0.40
    assert settings.oversell_policy == "allow"


def test_fx_ticker_uses_template(settings):
    assert settings.fx_ticker("usd", "chf") == "USDCHF"
    custom = EngineSettings(_env_file=None, fx_ticker_template="{base}{quote}=X")
    assert custom.fx_ticker("EUR", "USD") == "EURUSD=X"


def test_phase_bands_must_not_overlap():
    with pytest.raises(ValidationError):
        EngineSettings(_env_file=None, crisis_threshold=0.4, euphoria_threshold=0.5)


def test_unknown_oversell_policy_is_rejected():
    with pytest.raises(ValidationError):
        EngineSettings(_env_file=None, oversell_policy="ignore")


def test_environment_overrides_use_prefix(monkeypatch):
    monkeypatch.setenv("TRACKER_BASE_CURRENCY", "EUR")
    monkeypatch.setenv("TRACKER_HISTORY_MONTHS", "24")
    settings = EngineSettings(_env_file=None)
    assert settings.base_currency == "EUR"
    assert settings.history_months == 24


def test_override_does_not_replace_cached_default():
    default = get_settings()
    custom = get_settings(base_currency="EUR")
    assert custom.base_currency == "EUR"
    assert custom is not default
    assert get_settings() is default

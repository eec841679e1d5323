import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from investment_tracker.config import EngineSettings  # noqa: E402
from investment_tracker.models import AssetType, Instrument  # noqa: E402


@pytest.fixture
def settings() -> EngineSettings:
    """Settings isolated from the environment and any local .env file."""

    return EngineSettings(_env_file=None, base_currency="CHF")


@pytest.fixture
def chf_stock() -> Instrument:
    return Instrument(ticker="NESN", name="Nestle", asset_type=AssetType.STOCK, currency="CHF", target_pct=60)


@pytest.fixture
def usd_etf() -> Instrument:
    return Instrument(
        ticker="VT", name="Vanguard Total World ETF", asset_type=AssetType.ETF, currency="USD", target_pct=40
    )

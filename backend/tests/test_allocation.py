from __future__ import annotations

from datetime import date

import pytest

from investment_tracker.allocation import (
    GroupKey,
    RebalanceAction,
    RebalanceStrategy,
    allocation_by_asset_class,
    allocation_gaps,
    exposure_by_currency,
    exposure_by_region,
    infer_asset_class,
    region_from_isin,
    suggest_rebalance,
)
from investment_tracker.models import (
    AssetClass,
    AssetType,
    Instrument,
    PriceQuote,
    RegionKey,
    Transaction,
    TransactionType,
)
from investment_tracker.valuation import value_portfolio


def _instrument(ticker, name, asset_type, currency="CHF", target=0.0, asset_class=None):
    return Instrument(
        ticker=ticker, name=name, asset_type=asset_type, currency=currency, target_pct=target, asset_class=asset_class
    )


@pytest.mark.parametrize(
    "instrument,expected",
    [
        (_instrument("X", "Anything", AssetType.STOCK, asset_class=AssetClass.BOND), AssetClass.BOND),
        (_instrument("BTC-USD", "Bitcoin", AssetType.STOCK), AssetClass.CRYPTO),
        (_instrument("SGLD", "Invesco Physical Gold", AssetType.ETF), AssetClass.ETC),
        (_instrument("AGGH", "iShares Core Global Aggregate Bond UCITS ETF", AssetType.ETF), AssetClass.ETF_BOND),
        (_instrument("VT", "Vanguard Total World", AssetType.ETF), AssetClass.ETF_STOCK),
        (_instrument("T", "US Treasury 2030", AssetType.BOND), AssetClass.BOND),
        (_instrument("NESN", "Nestle", AssetType.STOCK), AssetClass.STOCK),
        (_instrument("CASH", "Savings", AssetType.CASH), AssetClass.CASH),
        (_instrument("OIL", "Crude", AssetType.COMMODITY), AssetClass.OTHER),
    ],
)
def test_infer_asset_class(instrument, expected):
    assert infer_asset_class(instrument) is expected


@pytest.fixture
def state(settings):
    instruments = [
        _instrument("NESN", "Nestle", AssetType.STOCK, target=50),
        _instrument("VT", "Vanguard Total World ETF", AssetType.ETF, currency="USD", target=50),
        _instrument("BTC", "Bitcoin", AssetType.CRYPTO, currency="USD", target=0),
    ]
    ledger = [
        Transaction(date(2024, 1, 2), TransactionType.BUY, 7, 100, "CHF", "NESN"),
        Transaction(date(2024, 1, 2), TransactionType.BUY, 2.9, 100, "USD", "VT"),
        Transaction(date(2024, 1, 2), TransactionType.BUY, 0.001, 10000, "USD", "BTC"),
    ]
    prices = [
        PriceQuote("NESN", date(2024, 1, 2), 100.0),
        PriceQuote("VT", date(2024, 1, 2), 100.0),
        PriceQuote("BTC", date(2024, 1, 2), 10000.0),
        PriceQuote("USDCHF", date(2024, 1, 1), 1.0),
    ]
    return value_portfolio(ledger, instruments, prices, date(2024, 1, 31), settings)


def test_state_fixture_totals(state):
    assert state.total_value == pytest.approx(1000)


def test_allocation_gaps_by_asset_type(state):
    gaps = {g.key: g for g in allocation_gaps(state, GroupKey.ASSET_TYPE)}
    assert gaps["Stock"].current_pct == pytest.approx(70)
    assert gaps["Stock"].gap_pct == pytest.approx(-20)
    assert gaps["ETF"].gap_pct == pytest.approx(21)
    assert gaps["Crypto"].target_pct == 0


def test_allocation_gaps_by_currency(state):
    gaps = {g.key: g for g in allocation_gaps(state, "currency")}
    assert gaps["USD"].current_pct == pytest.approx(30)
    assert gaps["USD"].target_pct == 50
    assert gaps["CHF"].value == pytest.approx(700)


def test_minor_slices_fold_into_other(state, settings):
    slices = allocation_by_asset_class(state, settings)
    assert [s.key for s in slices] == ["STOCK", "ETF_STOCK", "OTHER"]
    assert slices[-1].pct == pytest.approx(1.0)
    assert sum(s.pct for s in slices) == pytest.approx(100)


def test_currency_exposure(state):
    slices = exposure_by_currency(state)
    assert [(s.key, round(s.pct)) for s in slices] == [("CHF", 70), ("USD", 30)]


def test_maintain_strategy_buys_and_sells(state, settings):
    suggestions = {s.ticker: s for s in suggest_rebalance(state, RebalanceStrategy.MAINTAIN, settings=settings)}
    assert suggestions["NESN"].action is RebalanceAction.SELL
    assert suggestions["NESN"].amount == pytest.approx(200)
    assert suggestions["NESN"].quantity == pytest.approx(2)
    assert suggestions["VT"].action is RebalanceAction.BUY
    assert suggestions["VT"].amount == pytest.approx(210)
    assert suggestions["BTC"].action is RebalanceAction.SELL
    assert suggestions["BTC"].amount == pytest.approx(10)


def test_accumulate_strategy_never_sells(state, settings):
    suggestions = {
        s.ticker: s for s in suggest_rebalance(state, "ACCUMULATE", cash_injection=1000, settings=settings)
    }
    assert suggestions["NESN"].action is RebalanceAction.BUY
    assert suggestions["NESN"].amount == pytest.approx(300)
    assert suggestions["VT"].amount == pytest.approx(710)
    assert suggestions["BTC"].action is RebalanceAction.HOLD
    assert suggestions["BTC"].amount == 0


@pytest.mark.parametrize(
    "isin,expected",
    [
        ("CH0038863350", RegionKey.CH),
        ("US9229087690", RegionKey.NA),
        ("ie00bk5bqt80", RegionKey.EU),
        ("GB0002374006", RegionKey.EU),
        ("JP3633400001", RegionKey.AS),
        ("AU000000BHP4", RegionKey.OC),
        ("XS1234567890", None),
        ("", None),
        (None, None),
    ],
)
def test_region_from_isin(isin, expected):
    assert region_from_isin(isin) is expected


def _regional_state(settings):
    world = Instrument(
        ticker="VWRL",
        name="Vanguard FTSE All-World",
        asset_type=AssetType.ETF,
        currency="CHF",
        isin="IE00B3RBWM25",
        region_allocation={RegionKey.NA: 60, RegionKey.EU: 20, RegionKey.AS: 10},
    )
    nestle = Instrument(ticker="NESN", name="Nestle", asset_type=AssetType.STOCK, currency="CHF", isin="CH0038863350")
    unknown = Instrument(ticker="PRIV", name="Private holding", asset_type=AssetType.STOCK, currency="CHF")
    ledger = [
        Transaction(date(2024, 1, 2), TransactionType.BUY, 5, 100, "CHF", "VWRL"),
        Transaction(date(2024, 1, 2), TransactionType.BUY, 4, 100, "CHF", "NESN"),
        Transaction(date(2024, 1, 2), TransactionType.BUY, 1, 100, "CHF", "PRIV"),
    ]
    prices = [PriceQuote(t, date(2024, 1, 2), 100.0) for t in ("VWRL", "NESN", "PRIV")]
    return value_portfolio(ledger, [world, nestle, unknown], prices, date(2024, 1, 31), settings)


def test_region_exposure_splits_weighted_funds(settings):
    slices = {s.key: s for s in exposure_by_region(_regional_state(settings))}
    assert slices["NA"].value == pytest.approx(300)
    assert slices["EU"].value == pytest.approx(100)
    assert slices["AS"].value == pytest.approx(50)
    # 10% of the fund is not covered by its allocation, plus the holding with no ISIN
    assert slices["UNASSIGNED"].value == pytest.approx(150)


def test_region_exposure_falls_back_to_isin(settings):
    slices = exposure_by_region(_regional_state(settings))
    by_key = {s.key: s for s in slices}
    assert by_key["CH"].pct == pytest.approx(40)
    assert slices[0].key == "CH"
    assert sum(s.pct for s in slices) == pytest.approx(100)

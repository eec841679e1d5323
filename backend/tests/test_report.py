from __future__ import annotations

import json
from datetime import date

import pytest

from investment_tracker.cli import main
from investment_tracker.macro import DEFAULT_INDICATORS
from investment_tracker.models import MacroPhase, PriceQuote, Transaction, TransactionType
from investment_tracker.report import build_report, to_json

LEDGER = [
    {"date": "2024-01-02", "type": "BUY", "quantity": 10, "price": 100, "currency": "CHF", "ticker": "NESN"},
    {"date": "2024-01-02", "type": "BUY", "quantity": 5, "price": 100, "currency": "USD", "ticker": "VT"},
]
INSTRUMENTS = [
    {"ticker": "NESN", "name": "Nestle", "type": "Stock", "currency": "CHF", "targetPct": 60},
    {"ticker": "VT", "name": "Vanguard Total World ETF", "type": "ETF", "currency": "USD", "targetPct": 40},
]
PRICES = [
    {"ticker": "NESN", "date": "2024-01-02", "close": 100},
    {"ticker": "NESN", "date": "2024-02-28", "close": 110},
    {"ticker": "VT", "date": "2024-01-02", "close": 100},
    {"ticker": "USDCHF", "date": "2024-01-01", "close": 1.0},
]


def test_build_report_combines_every_output(chf_stock, usd_etf, settings):
    ledger = [
        Transaction(date(2024, 1, 2), TransactionType.BUY, 10, 100, "CHF", "NESN"),
        Transaction(date(2024, 1, 2), TransactionType.BUY, 5, 100, "USD", "VT"),
    ]
    quotes = [
        PriceQuote("NESN", date(2024, 1, 2), 100.0),
        PriceQuote("NESN", date(2024, 2, 28), 110.0),
        PriceQuote("VT", date(2024, 1, 2), 100.0),
        PriceQuote("USDCHF", date(2024, 1, 1), 1.0),
    ]
    report = build_report(
        ledger, [chf_stock, usd_etf], quotes, DEFAULT_INDICATORS, as_of=date(2024, 2, 29), settings=settings
    )

    assert report.state.total_value == pytest.approx(1600)
    assert [p.value for p in report.history.points] == pytest.approx([1500, 1600])
    assert report.history.points[-1].value == pytest.approx(report.state.total_value)
    assert report.analytics.max_drawdown == 0
    assert [s.key for s in report.currency_exposure] == ["CHF", "USD"]
    assert report.macro is not None
    assert isinstance(report.macro.phase, MacroPhase)


def test_report_serializes_to_json(chf_stock, settings):
    ledger = [Transaction(date(2024, 1, 2), TransactionType.BUY, 1, 100, "CHF", "NESN")]
    quotes = [PriceQuote("NESN", date(2024, 1, 2), 100.0)]
    report = build_report(ledger, [chf_stock], quotes, as_of=date(2024, 1, 31), settings=settings)

    payload = json.loads(to_json(report))
    assert payload["state"]["as_of"] == "2024-01-31"
    assert payload["state"]["positions"][0]["instrument"]["asset_type"] == "Stock"
    assert payload["macro"] is None


def _write(path, records):
    path.write_text(json.dumps(records), encoding="utf-8")
    return str(path)


def test_cli_report(tmp_path, capsys):
    argv = [
        "report",
        "--ledger",
        _write(tmp_path / "ledger.json", LEDGER),
        "--instruments",
        _write(tmp_path / "instruments.json", INSTRUMENTS),
        "--prices",
        _write(tmp_path / "prices.json", PRICES),
        "--as-of",
        "2024-02-29",
    ]
    assert main(argv) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["state"]["total_value"] == pytest.approx(1600)
    assert len(payload["history"]["points"]) == 2


def test_cli_macro_uses_default_indicators(capsys):
    assert main(["macro"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert 0 <= payload["index"] <= 1
    assert payload["phase"] in {phase.value for phase in MacroPhase}
    assert 0 <= payload["gauge_score"] <= 100


def test_cli_reports_invalid_records(tmp_path):
    bad_ledger = [{"date": "2024-01-02", "type": "BUY"}]
    argv = [
        "report",
        "--ledger",
        _write(tmp_path / "ledger.json", bad_ledger),
        "--instruments",
        _write(tmp_path / "instruments.json", INSTRUMENTS),
        "--prices",
        _write(tmp_path / "prices.json", PRICES),
    ]
    assert main(argv) == 1


def test_report_includes_region_exposure(chf_stock, settings):
    ledger = [Transaction(date(2024, 1, 2), TransactionType.BUY, 1, 100, "CHF", "NESN")]
    quotes = [PriceQuote("NESN", date(2024, 1, 2), 100.0)]
    report = build_report(ledger, [chf_stock], quotes, as_of=date(2024, 1, 31), settings=settings)
    assert [(s.key, s.pct) for s in report.region_exposure] == [("UNASSIGNED", pytest.approx(100))]


def test_cli_daily_report(tmp_path, capsys):
    argv = [
        "report",
        "--ledger",
        _write(tmp_path / "ledger.json", LEDGER),
        "--instruments",
        _write(tmp_path / "instruments.json", INSTRUMENTS),
        "--prices",
        _write(tmp_path / "prices.json", PRICES),
        "--as-of",
        "2024-01-10",
        "--granularity",
        "daily",
    ]
    assert main(argv) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["history"]["granularity"] == "daily"
    assert len(payload["history"]["points"]) == 9

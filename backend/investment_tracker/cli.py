"""Command line entry point for running the engine over JSON exports."""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
import sys
from datetime import date
from typing import Any, List, Sequence

from .config import get_settings
from .core.logging import setup_logging
from .errors import TrackerError
from .loaders import load_indicators, load_instruments, load_quotes, load_transactions
from .macro import DEFAULT_INDICATORS, compute_macro_index
from .models import Granularity
from .report import build_report, to_json

logger = logging.getLogger(__name__)


def _read_records(path: pathlib.Path) -> List[Any]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON list of records")
    return payload


def _run_report(args: argparse.Namespace) -> str:
    indicators = None
    if args.indicators:
        indicators = load_indicators(_read_records(args.indicators))
    report = build_report(
        load_transactions(_read_records(args.ledger)),
        load_instruments(_read_records(args.instruments)),
        load_quotes(_read_records(args.prices)),
        indicators=indicators,
        as_of=args.as_of,
        granularity=args.granularity,
    )
    return to_json(report)


def _run_macro(args: argparse.Namespace) -> str:
    if args.indicators:
        indicators = load_indicators(_read_records(args.indicators))
    else:
        indicators = DEFAULT_INDICATORS
    result = compute_macro_index(indicators)
    return json.dumps(
        {"index": result.index, "phase": result.phase.value, "gauge_score": result.gauge_score},
        indent=2,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="investment-tracker", description="Portfolio valuation and macro analytics"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="Value the portfolio and compute history and risk statistics")
    report.add_argument("--ledger", type=pathlib.Path, required=True)
    report.add_argument("--instruments", type=pathlib.Path, required=True)
    report.add_argument("--prices", type=pathlib.Path, required=True)
    report.add_argument("--indicators", type=pathlib.Path)
    report.add_argument("--as-of", type=date.fromisoformat, default=None)
    report.add_argument(
        "--granularity", choices=[g.value for g in Granularity], default=Granularity.MONTHLY.value
    )
    report.set_defaults(handler=_run_report)

    macro = sub.add_parser("macro", help="Compute the composite macro index")
    macro.add_argument("--indicators", type=pathlib.Path, help="Defaults to the built-in indicator set")
    macro.set_defaults(handler=_run_macro)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(get_settings().log_level)
    try:
        output = args.handler(args)
    except (TrackerError, ValueError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())

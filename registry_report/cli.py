"""Command line entry point for exporting an event's report workbook."""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
from typing import Iterable

from .currency import currency_symbol
from .errors import ExportError
from .formatting import format_category_totals, format_currency_summary
from .loader import load_event
from .logging_setup import configure_logging, get_logger
from .report import ExportOptions, export_event
from .summary import build_report

logger = get_logger("registry_report.cli")


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Export an event's sales ledger (JSON event export) as an Excel "
            "workbook with Registry, Currencies, Products and Groups sheets."
        )
    )
    parser.add_argument(
        "event_path",
        type=Path,
        help="Path to the event export JSON file.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Where to write the workbook (defaults to <event file>.xlsx).",
    )
    parser.add_argument(
        "--day",
        type=date.fromisoformat,
        help="Only report transactions recorded on this day (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--operator",
        default="",
        help="Name recorded as the workbook author.",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Also print currency and category totals to stdout.",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (defaults to REGISTRY_REPORT_LOG_LEVEL or INFO).",
    )
    return parser.parse_args(argv)


def run(argv: Iterable[str] | None = None) -> Path:
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        event = load_event(args.event_path)
    except FileNotFoundError as exc:
        raise SystemExit(str(exc))
    except ValueError as exc:
        raise SystemExit(f"Invalid event export: {exc}")

    options = ExportOptions(day=args.day)
    try:
        data = export_event(event, operator=args.operator, options=options)
    except ExportError as exc:
        raise SystemExit(f"Failed to export workbook: {exc}")

    output = args.output or args.event_path.with_suffix(".xlsx")
    output.write_bytes(data)
    logger.info("Wrote %s", output)

    if args.summary:
        report = build_report(event, day=args.day)
        symbol = currency_symbol(event.main_currency_code, event)
        print("Currencies\n" + format_currency_summary(report.currencies))
        print("\nCategories\n" + format_category_totals(report.category_totals, symbol))
    return output


def main() -> None:
    run()


if __name__ == "__main__":
    main()

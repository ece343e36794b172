"""Utility helpers for turning report structures into text tables."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from .summary import CategoryTotal, CurrencyGroup


def _column_widths(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> Sequence[int]:
    widths = [len(h) for h in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))
    return widths


def _format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = _column_widths(headers, rows)

    def format_row(row: Sequence[str]) -> str:
        return " | ".join(cell.ljust(widths[idx]) for idx, cell in enumerate(row))

    header_line = format_row(headers)
    separator = "-+-".join("-" * w for w in widths)
    body = "\n".join(format_row(row) for row in rows)
    return "\n".join([header_line, separator, body]) if body else "\n".join(
        [header_line, separator]
    )


def format_units(units: Decimal) -> str:
    """Whole counts print as integers, split shares with two decimals."""

    if units == units.to_integral_value():
        return f"{int(units)}"
    return f"{units:.2f}"


def format_currency_summary(groups: Iterable[CurrencyGroup]) -> str:
    headers = ["Currency", "Payment Method", "Units", "Total"]
    data_rows = []
    for group in groups:
        for row in group.payment_methods:
            data_rows.append(
                [
                    group.currency_code,
                    row.method,
                    format_units(row.units),
                    f"{group.currency_symbol}{row.subtotal:,.2f}",
                ]
            )
        data_rows.append([group.currency_code, "Total", "", f"{group.currency_symbol}{group.total:,.2f}"])
    return _format_table(headers, data_rows)


def format_category_totals(rows: Iterable[CategoryTotal], symbol: str) -> str:
    rows = list(rows)
    data_rows = [[row.label, f"{symbol}{row.total:,.2f}"] for row in rows]
    grand_total = sum((row.total for row in rows), Decimal("0"))
    if data_rows:
        data_rows.append(["Total", f"{symbol}{grand_total:,.2f}"])
    return _format_table(["Category", "Subtotal"], data_rows)

"""Assemble an event's report workbook: Registry, Currencies, Products, Groups."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import ExportError, WorkbookWriteError
from .excel import serialize
from .logging_setup import get_logger
from .models import Event, Product, Transaction
from .payments import transaction_method_label
from .summary import EventReport, ItemGroup, build_report
from .workbook import EMPTY, Cell, CurrencyCell, NumberCell, TextCell, Workbook

logger = get_logger("registry_report.report")

REGISTRY_SHEET = "Registry"
CURRENCIES_SHEET = "Currencies"
PRODUCTS_SHEET = "Products"
GROUPS_SHEET = "Groups"
SHEET_ORDER = (REGISTRY_SHEET, CURRENCIES_SHEET, PRODUCTS_SHEET, GROUPS_SHEET)

REGISTRY_HEADERS = (
    "TX ID",
    "Date",
    "Time",
    "Payment Method",
    "Currency",
    "Total",
    "Discount",
    "Subtotal",
    "Note",
    "Email",
)
REGISTRY_WIDTHS = (12, 12, 10, 18, 10, 12, 12, 12, 32, 28)
CURRENCIES_HEADERS = ("Currency", "Payment Method", "Units", "Total", "Currency Total")
GROUP_HEADERS = ("Currency", "Payment Method", "Units", "Total")
SUMMARY_WIDTHS = (28, 12, 18, 10, 14, 14)

_ZERO = Decimal("0")

__all__ = [
    "ExportError",
    "ExportOptions",
    "SHEET_ORDER",
    "WorkbookWriteError",
    "build_workbook",
    "export_event",
]


@dataclass(frozen=True)
class ExportOptions:
    """Formatting choices for one export."""

    day: Optional[date] = None
    date_format: str = "%Y-%m-%d"
    time_format: str = "%H:%M:%S"


def _header(labels: Sequence[str]) -> List[Cell]:
    return [TextCell(label, bold=True, centered=True) for label in labels]


def _set_widths(workbook: Workbook, sheet: int, widths: Sequence[float]) -> None:
    for column, width in enumerate(widths):
        workbook.set_column_width(sheet, column, width)


def _product_columns(products: Sequence[Product]) -> Dict[Tuple[str, Optional[str]], int]:
    columns: Dict[Tuple[str, Optional[str]], int] = {}
    for index, product in enumerate(products):
        columns.setdefault((product.name, product.subgroup), index)
        columns.setdefault((product.name, None), index)
    return columns


def _registry_quantities(
    transaction: Transaction,
    columns: Dict[Tuple[str, Optional[str]], int],
) -> Counter:
    quantities: Counter = Counter()
    for item in transaction.line_items:
        index = columns.get((item.product_name, item.subgroup))
        if index is None:
            index = columns.get((item.product_name, None))
        if index is not None:
            quantities[index] += item.quantity
    return quantities


def _add_registry(workbook: Workbook, event: Event, report: EventReport, options: ExportOptions) -> None:
    sheet = workbook.add_worksheet(REGISTRY_SHEET, frozen_rows=1)
    products = event.active_products
    workbook.add_row(sheet, _header(REGISTRY_HEADERS) + [TextCell(p.name, bold=True) for p in products])
    _set_widths(workbook, sheet, REGISTRY_WIDTHS)
    for offset, product in enumerate(products):
        workbook.set_column_width(sheet, len(REGISTRY_HEADERS) + offset, min(max(len(product.name) + 2, 8), 40))

    columns = _product_columns(products)
    for tx in report.transactions:
        subtotal = tx.items_subtotal
        row: List[Cell] = [
            TextCell(tx.display_ref),
            TextCell(tx.timestamp.strftime(options.date_format)),
            TextCell(tx.timestamp.strftime(options.time_format)),
            TextCell(transaction_method_label(tx)),
            TextCell(tx.currency_code),
            CurrencyCell(tx.total_amount, tx.currency_code),
            CurrencyCell(subtotal - tx.total_amount, tx.currency_code),
            CurrencyCell(subtotal, tx.currency_code),
            TextCell(tx.note or ""),
            TextCell(tx.receipt_email or ""),
        ]
        quantities = _registry_quantities(tx, columns)
        row.extend(NumberCell(quantities.get(index, 0)) for index in range(len(products)))
        workbook.add_row(sheet, row)


def _add_currencies(workbook: Workbook, event: Event, report: EventReport) -> None:
    sheet = workbook.add_worksheet(CURRENCIES_SHEET, frozen_rows=1)
    workbook.add_row(sheet, _header(CURRENCIES_HEADERS))
    _set_widths(workbook, sheet, (14, 18, 10, 14, 16))

    for group in report.currencies:
        last = len(group.payment_methods) - 1
        for index, method in enumerate(group.payment_methods):
            workbook.add_row(
                sheet,
                [
                    TextCell(group.currency_code),
                    TextCell(method.method),
                    NumberCell(method.units),
                    CurrencyCell(method.subtotal, group.currency_code),
                    CurrencyCell(group.total, group.currency_code, bold=True) if index == last else EMPTY,
                ],
            )

    if report.is_empty:
        return

    main_code = event.main_currency_code
    workbook.add_row(sheet, [EMPTY] * 5)
    workbook.add_row(
        sheet,
        [TextCell("Category Totals", bold=True, centered=True), EMPTY, EMPTY,
         TextCell("Subtotal", bold=True, centered=True), EMPTY],
    )
    grand_total = _ZERO
    for row in report.category_totals:
        workbook.add_row(sheet, [TextCell(row.label), EMPTY, EMPTY, CurrencyCell(row.total, main_code), EMPTY])
        grand_total += row.total
    workbook.add_row(
        sheet,
        [TextCell("Total", bold=True), EMPTY, EMPTY, CurrencyCell(grand_total, main_code, bold=True), EMPTY],
    )


def _add_groups(workbook: Workbook, sheet: int, groups: Sequence[ItemGroup], main_code: str) -> None:
    for group in groups:
        workbook.add_row(
            sheet,
            [
                TextCell(group.label, bold=True),
                EMPTY,
                EMPTY,
                NumberCell(group.units, bold=True),
                CurrencyCell(group.total, main_code, bold=True),
            ],
        )
        for section in group.currency_sections:
            for method in section.payment_methods:
                workbook.add_row(
                    sheet,
                    [
                        EMPTY,
                        TextCell(section.currency_code),
                        TextCell(method.method),
                        NumberCell(method.units),
                        CurrencyCell(method.subtotal, section.currency_code),
                    ],
                )


def _add_products(workbook: Workbook, event: Event, report: EventReport) -> None:
    sheet = workbook.add_worksheet(PRODUCTS_SHEET, frozen_rows=1)
    workbook.add_row(sheet, _header(("Product",) + GROUP_HEADERS))
    _set_widths(workbook, sheet, SUMMARY_WIDTHS)
    if report.is_empty:
        return

    main_code = event.main_currency_code
    _add_groups(workbook, sheet, report.products, main_code)
    units = sum((group.units for group in report.products), _ZERO)
    total = sum((group.total for group in report.products), _ZERO)
    workbook.add_row(
        sheet,
        [
            TextCell("TOTAL", bold=True, centered=True),
            EMPTY,
            EMPTY,
            NumberCell(units, bold=True),
            CurrencyCell(total, main_code, bold=True),
        ],
    )


def _add_group_sheet(workbook: Workbook, event: Event, report: EventReport) -> None:
    sheet = workbook.add_worksheet(GROUPS_SHEET, frozen_rows=1)
    workbook.add_row(sheet, _header(("Group",) + GROUP_HEADERS))
    _set_widths(workbook, sheet, SUMMARY_WIDTHS)
    if report.is_empty:
        return

    main_code = event.main_currency_code
    workbook.add_row(sheet, [TextCell("Categories", bold=True, centered=True)])
    _add_groups(workbook, sheet, report.categories, main_code)
    if report.subgroups:
        workbook.add_row(sheet, [EMPTY] * 5)
        workbook.add_row(sheet, [TextCell("Subgroups", bold=True, centered=True)])
        _add_groups(workbook, sheet, report.subgroups, main_code)


def build_workbook(event: Event, operator: str = "", options: ExportOptions | None = None) -> Workbook:
    """Lay the event's report out as a four-sheet workbook."""

    options = options or ExportOptions()
    report = build_report(event, day=options.day)

    workbook = Workbook(title=event.name, creator=operator)
    _add_registry(workbook, event, report, options)
    _add_currencies(workbook, event, report)
    _add_products(workbook, event, report)
    _add_group_sheet(workbook, event, report)

    for sheet in workbook.worksheets:
        logger.info("Sheet %s: %d rows x %d columns", sheet.name, sheet.row_count, sheet.column_count)
    return workbook


def export_event(event: Event, operator: str = "", options: ExportOptions | None = None) -> bytes:
    """Build and serialize the report workbook for ``event``.

    Returns the complete ``.xlsx`` bytes; a serialization failure raises
    ``WorkbookWriteError`` and nothing is returned.
    """

    workbook = build_workbook(event, operator, options)
    data = serialize(workbook)
    logger.info("Exported %s (%d transactions) as %d bytes", event.name, len(event.transactions), len(data))
    return data

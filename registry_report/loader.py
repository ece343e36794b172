"""Helpers for loading an event snapshot from its JSON export."""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .currency import coerce_decimal
from .models import (
    Category,
    Currency,
    Event,
    LineItem,
    PaymentMethod,
    PaymentMethodOption,
    Product,
    SplitEntry,
    Transaction,
)
from .periods import day_range

REQUIRED_KEYS = ("name", "currencies", "transactions")


def _decimal(value: Any, default: str = "0") -> Decimal:
    if value is None or value == "":
        return Decimal(default)
    return coerce_decimal(value)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _timestamp(value: Any) -> datetime:
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid transaction timestamp: {value!r}")
    # fromisoformat only accepts a trailing "Z" from Python 3.11 on.
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _payment_method(value: Any) -> PaymentMethod:
    try:
        return PaymentMethod(str(value or "cash").lower())
    except ValueError:
        return PaymentMethod.OTHER


def _load_currency(raw: Mapping[str, Any]) -> Currency:
    return Currency(
        code=raw["code"],
        symbol=raw.get("symbol") or raw["code"],
        name=raw.get("name") or "",
        rate=_decimal(raw.get("rate"), default="1"),
        is_main=bool(raw.get("isMain", False)),
        sort_order=int(raw.get("sortOrder") or 0),
    )


def _load_category(raw: Mapping[str, Any]) -> Category:
    return Category(
        id=str(raw.get("id") or raw["name"]),
        name=raw["name"],
        color=raw.get("hexColor") or "#FF0000",
        sort_order=int(raw.get("sortOrder") or 0),
    )


def _load_product(raw: Mapping[str, Any], categories: Mapping[str, Category]) -> Product:
    category_id = raw.get("categoryId")
    return Product(
        id=str(raw.get("id") or raw["name"]),
        name=raw["name"],
        price=_decimal(raw.get("price")),
        # A dangling categoryId leaves the product uncategorised.
        category=categories.get(str(category_id)) if category_id else None,
        subgroup=_text(raw.get("subgroup")),
        sort_order=int(raw.get("sortOrder") or 0),
        is_deleted=bool(raw.get("isDeleted", False)),
    )


def _load_payment_option(raw: Mapping[str, Any]) -> PaymentMethodOption:
    return PaymentMethodOption(
        id=str(raw.get("id") or raw["name"]),
        name=raw["name"],
        icon=raw.get("icon") or "",
        color=raw.get("colorHex") or "#808080",
        is_enabled=bool(raw.get("isEnabled", True)),
    )


def _load_split_entry(raw: Mapping[str, Any]) -> SplitEntry:
    return SplitEntry(
        method=str(raw.get("method") or ""),
        method_icon=raw.get("methodIcon") or "",
        color=raw.get("colorHex") or "",
        amount_in_main=_decimal(raw.get("amountInMain")),
        charge_amount=_decimal(raw.get("chargeAmount")),
        currency_code=raw.get("currencyCode") or "",
        card_last4=_text(raw.get("cardLast4")),
    )


def _load_line_item(raw: Mapping[str, Any]) -> LineItem:
    return LineItem(
        product_name=raw["productName"],
        quantity=int(raw.get("quantity") or 0),
        unit_price=_decimal(raw.get("unitPrice")),
        subgroup=_text(raw.get("subgroup")),
    )


def _load_transaction(raw: Mapping[str, Any], index: int) -> Transaction:
    return Transaction(
        id=str(raw.get("id") or f"tx-{index}"),
        timestamp=_timestamp(raw.get("timestamp")),
        total_amount=_decimal(raw.get("totalAmount")),
        currency_code=raw["currencyCode"],
        payment_method=_payment_method(raw.get("paymentMethod")),
        payment_method_icon=_text(raw.get("paymentMethodIcon")),
        transaction_ref=_text(raw.get("transactionRef")),
        note=_text(raw.get("note")),
        receipt_email=_text(raw.get("receiptEmail")),
        card_last4=_text(raw.get("cardLast4")),
        line_items=tuple(_load_line_item(item) for item in raw.get("lineItems") or ()),
        split_entries=tuple(_load_split_entry(entry) for entry in raw.get("splitEntries") or ()),
        is_refund=bool(raw.get("isRefund", False)),
        refunded_transaction_id=_text(raw.get("refundedTransactionId")),
    )


def event_from_dict(data: Mapping[str, Any]) -> Event:
    """Build an ``Event`` from the decoded JSON export."""

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ValueError(f"Event export is missing keys: {', '.join(missing)}")

    try:
        currencies = tuple(_load_currency(raw) for raw in data["currencies"])
        categories = tuple(_load_category(raw) for raw in data.get("categories") or ())
        by_id: Dict[str, Category] = {category.id: category for category in categories}
        products = tuple(_load_product(raw, by_id) for raw in data.get("products") or ())
        payment_methods = tuple(
            _load_payment_option(raw) for raw in data.get("paymentMethods") or ()
        )
        transactions = tuple(
            _load_transaction(raw, index) for index, raw in enumerate(data["transactions"])
        )
    except KeyError as exc:
        raise ValueError(f"Event export entry is missing field {exc}") from exc

    main_codes = [currency.code for currency in currencies if currency.is_main]
    if len(main_codes) > 1:
        raise ValueError(f"Event export declares several main currencies: {main_codes}")

    return Event(
        name=data["name"],
        currency_code=data.get("currencyCode") or (main_codes[0] if main_codes else "USD"),
        currencies=currencies,
        categories=categories,
        products=products,
        transactions=transactions,
        payment_methods=payment_methods,
        round_totals_up=bool(data.get("isTotalRoundUp", False)),
    )


def load_event(path: str | Path) -> Event:
    """Load an event snapshot from a JSON export file."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Event export not found: {path}")
    with path.open(encoding="utf-8-sig") as handle:
        try:
            data = json.load(handle, parse_float=Decimal)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Event export is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Event export must be a JSON object")
    return event_from_dict(data)


def filter_by_day(transactions: Iterable[Transaction], day: date) -> List[Transaction]:
    """Return transactions recorded on ``day``."""

    selected = []
    for tx in transactions:
        start, end = day_range(day, tx.timestamp.tzinfo)
        if start <= tx.timestamp < end:
            selected.append(tx)
    return selected

"""Group an event's transactions into the report structures behind each sheet."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

from .allocation import allocate
from .currency import convert_to_main, currency_symbol
from .loader import filter_by_day
from .models import Category, Event, LineItem, Transaction
from .payments import payment_method_label, transaction_method_label

NO_CATEGORY = "No Category"

_ZERO = Decimal("0")


@dataclass(frozen=True)
class PaymentMethodRow:
    method: str
    # Fractional when a split payment shares out an item's quantity.
    units: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class CurrencyGroup:
    currency_code: str
    currency_symbol: str
    total: Decimal
    payment_methods: Tuple[PaymentMethodRow, ...]


@dataclass(frozen=True)
class CurrencySection:
    currency_code: str
    currency_symbol: str
    payment_methods: Tuple[PaymentMethodRow, ...]

    @property
    def subtotal(self) -> Decimal:
        return sum((row.subtotal for row in self.payment_methods), _ZERO)


@dataclass(frozen=True)
class ItemGroup:
    """Line items sharing a product name, category or subgroup.

    ``total`` is in the main currency; the sections keep the amounts in the
    currency each sale was charged in.
    """

    label: str
    units: Decimal
    total: Decimal
    currency_sections: Tuple[CurrencySection, ...]
    category: Optional[Category] = None


ProductGroup = ItemGroup
CategoryGroup = ItemGroup
SubgroupGroup = ItemGroup


@dataclass(frozen=True)
class CategoryTotal:
    label: str
    total: Decimal


@dataclass(frozen=True)
class EventReport:
    transactions: Tuple[Transaction, ...]
    currencies: Tuple[CurrencyGroup, ...]
    products: Tuple[ItemGroup, ...]
    categories: Tuple[ItemGroup, ...]
    subgroups: Tuple[ItemGroup, ...]
    category_totals: Tuple[CategoryTotal, ...]

    @property
    def is_empty(self) -> bool:
        return not self.transactions


Share = Tuple[str, Decimal, Decimal]
MethodBuckets = Dict[str, Dict[str, Dict[str, Decimal]]]


def _method_buckets() -> MethodBuckets:
    return defaultdict(lambda: defaultdict(lambda: {"units": _ZERO, "subtotal": _ZERO}))


def _add_shares(buckets: MethodBuckets, currency_code: str, shares: Iterable[Share]) -> None:
    for method, units, subtotal in shares:
        bucket = buckets[currency_code][method]
        bucket["units"] += units
        bucket["subtotal"] += subtotal


def _method_rows(methods: Dict[str, Dict[str, Decimal]]) -> Tuple[PaymentMethodRow, ...]:
    return tuple(
        PaymentMethodRow(method=method, units=values["units"], subtotal=values["subtotal"])
        for method, values in sorted(methods.items())
    )


def _currency_sections(buckets: MethodBuckets, event: Event) -> Tuple[CurrencySection, ...]:
    return tuple(
        CurrencySection(
            currency_code=code,
            currency_symbol=currency_symbol(code, event),
            payment_methods=_method_rows(methods),
        )
        for code, methods in sorted(buckets.items())
    )


def _split_shares(transaction: Transaction, amount: Decimal, quantity: Decimal | int) -> List[Share]:
    return [
        (payment_method_label(share.method, share.method_icon), share.quantity, share.amount)
        for share in allocate(amount, quantity, transaction.split_entries)
    ]


def _item_shares(transaction: Transaction, item: LineItem) -> List[Share]:
    if transaction.is_split:
        return _split_shares(transaction, item.subtotal, item.quantity)
    label = transaction_method_label(transaction)
    return [(label, Decimal(item.quantity), item.subtotal)]


def chronological(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Newest first, with every refund right before the sale it reverses.

    Refunds whose original is not among ``transactions`` lead the list.
    """

    ordered = sorted(transactions, key=lambda tx: tx.timestamp, reverse=True)
    known_ids = {tx.id for tx in ordered}
    refunds_by_original: Dict[str, List[Transaction]] = defaultdict(list)
    orphans: List[Transaction] = []
    for tx in ordered:
        if not tx.is_refund:
            continue
        original_id = tx.refunded_transaction_id
        if original_id and original_id != tx.id and original_id in known_ids:
            refunds_by_original[original_id].append(tx)
        else:
            orphans.append(tx)

    result: List[Transaction] = []
    placed: set[int] = set()

    def place(tx: Transaction) -> None:
        if id(tx) in placed:
            return
        placed.add(id(tx))
        for refund in refunds_by_original.get(tx.id, ()):
            place(refund)
        result.append(tx)

    for tx in orphans:
        place(tx)
    for tx in ordered:
        if not tx.is_refund:
            place(tx)
    # Refund chains that loop back on themselves have no anchor.
    for tx in ordered:
        place(tx)
    return result


def group_by_currency(transactions: Iterable[Transaction], event: Event) -> List[CurrencyGroup]:
    buckets = _method_buckets()
    for tx in transactions:
        if tx.is_split:
            shares: List[Share] = []
            for item in tx.line_items:
                shares.extend(_split_shares(tx, item.subtotal, item.quantity))
            adjustment = tx.total_amount - tx.items_subtotal
            if adjustment:
                shares.extend(_split_shares(tx, adjustment, 0))
        else:
            shares = [(transaction_method_label(tx), Decimal(tx.quantity), tx.total_amount)]
        _add_shares(buckets, tx.currency_code, shares)

    groups = []
    for section in _currency_sections(buckets, event):
        groups.append(
            CurrencyGroup(
                currency_code=section.currency_code,
                currency_symbol=section.currency_symbol,
                total=section.subtotal,
                payment_methods=section.payment_methods,
            )
        )
    return groups


class _GroupTotals:
    def __init__(self, label: str, category: Optional[Category]) -> None:
        self.label = label
        self.category = category
        self.units = _ZERO
        self.total = _ZERO
        self.methods = _method_buckets()


GroupKey = Callable[[LineItem], Optional[Tuple[Hashable, str, Optional[Category]]]]
SortKey = Callable[[Hashable, str], tuple]


def _group_items(
    transactions: Iterable[Transaction],
    event: Event,
    key_for: GroupKey,
    sort_key: SortKey,
) -> List[ItemGroup]:
    groups: Dict[Hashable, _GroupTotals] = {}
    for tx in transactions:
        for item in tx.line_items:
            resolved = key_for(item)
            if resolved is None:
                continue
            key, label, category = resolved
            totals = groups.get(key)
            if totals is None:
                totals = groups[key] = _GroupTotals(label, category)
            totals.units += item.quantity
            totals.total += convert_to_main(item.subtotal, tx.currency_code, event)
            _add_shares(totals.methods, tx.currency_code, _item_shares(tx, item))

    ordered = sorted(groups.items(), key=lambda pair: sort_key(pair[0], pair[1].label))
    return [
        ItemGroup(
            label=totals.label,
            units=totals.units,
            total=totals.total,
            currency_sections=_currency_sections(totals.methods, event),
            category=totals.category,
        )
        for _, totals in ordered
    ]


def _product_category(event: Event, name: str) -> Optional[Category]:
    product = event.find_product(name)
    return product.category if product is not None else None


def group_by_product(transactions: Iterable[Transaction], event: Event) -> List[ItemGroup]:
    def key_for(item: LineItem):
        return item.product_name, item.product_name, _product_category(event, item.product_name)

    def sort_key(key, label):
        product = event.find_product(label)
        if product is None:
            return (1, 0, label)
        return (0, product.sort_order, label)

    return _group_items(transactions, event, key_for, sort_key)


def group_by_category(transactions: Iterable[Transaction], event: Event) -> List[ItemGroup]:
    categories = {category.id: category for category in event.categories}

    def key_for(item: LineItem):
        category = _product_category(event, item.product_name)
        if category is None:
            return None, NO_CATEGORY, None
        return category.id, category.name, category

    def sort_key(key, label):
        if key is None:
            return (2, 0, label)
        category = categories.get(key)
        if category is None:
            return (1, 0, label)
        return (0, category.sort_order, label)

    return _group_items(transactions, event, key_for, sort_key)


def group_by_subgroup(transactions: Iterable[Transaction], event: Event) -> List[ItemGroup]:
    def key_for(item: LineItem):
        if not item.subgroup:
            return None
        return item.subgroup, item.subgroup, _product_category(event, item.product_name)

    def sort_key(key, label):
        orders = [product.sort_order for product in event.products if product.subgroup == label]
        if not orders:
            return (1, 0, label)
        return (0, min(orders), label)

    return _group_items(transactions, event, key_for, sort_key)


def category_totals(transactions: Iterable[Transaction], event: Event) -> List[CategoryTotal]:
    return [
        CategoryTotal(label=group.label, total=group.total)
        for group in group_by_category(transactions, event)
    ]


def build_report(event: Event, day: date | None = None) -> EventReport:
    """Run every grouping pass over the event, optionally limited to ``day``."""

    transactions: Sequence[Transaction] = list(event.transactions)
    if day is not None:
        transactions = filter_by_day(transactions, day)

    categories = group_by_category(transactions, event)
    return EventReport(
        transactions=tuple(chronological(transactions)),
        currencies=tuple(group_by_currency(transactions, event)),
        products=tuple(group_by_product(transactions, event)),
        categories=tuple(categories),
        subgroups=tuple(group_by_subgroup(transactions, event)),
        category_totals=tuple(
            CategoryTotal(label=group.label, total=group.total) for group in categories
        ),
    )

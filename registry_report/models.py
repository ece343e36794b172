"""Data models describing one event's ledger snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence, Tuple


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    OTHER = "other"


@dataclass(frozen=True)
class Currency:
    """A currency accepted at the event, rated against the main currency."""

    code: str
    symbol: str
    rate: Decimal = Decimal("1")
    is_main: bool = False
    name: str = ""
    sort_order: int = 0


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: str = "#FF0000"
    sort_order: int = 0


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: Decimal
    category: Optional[Category] = None
    subgroup: Optional[str] = None
    sort_order: int = 0
    is_deleted: bool = False


@dataclass(frozen=True)
class PaymentMethodOption:
    """Operator-configured payment option, decoded from the event settings."""

    id: str
    name: str
    icon: str
    color: str = "#808080"
    is_enabled: bool = True


@dataclass(frozen=True)
class SplitEntry:
    """One leg of a transaction paid with several instruments."""

    method: str
    method_icon: str
    amount_in_main: Decimal
    charge_amount: Decimal
    currency_code: str
    color: str = ""
    card_last4: Optional[str] = None


@dataclass(frozen=True)
class LineItem:
    # Historical snapshot: joined to products by name, never by id.
    product_name: str
    quantity: int
    unit_price: Decimal
    subgroup: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Transaction:
    """A single sale (or refund) recorded in the event ledger."""

    id: str
    timestamp: datetime
    total_amount: Decimal
    currency_code: str
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_method_icon: Optional[str] = None
    transaction_ref: Optional[str] = None
    note: Optional[str] = None
    receipt_email: Optional[str] = None
    card_last4: Optional[str] = None
    line_items: Tuple[LineItem, ...] = ()
    split_entries: Tuple[SplitEntry, ...] = ()
    is_refund: bool = False
    refunded_transaction_id: Optional[str] = None

    @property
    def is_split(self) -> bool:
        """Return ``True`` when two or more instruments paid this transaction."""

        return len(self.split_entries) >= 2

    @property
    def quantity(self) -> int:
        return sum(item.quantity for item in self.line_items)

    @property
    def items_subtotal(self) -> Decimal:
        return sum((item.subtotal for item in self.line_items), Decimal("0"))

    @property
    def display_ref(self) -> str:
        if self.transaction_ref:
            return self.transaction_ref
        return self.id.replace("-", "")[:8].upper()


@dataclass(frozen=True)
class Event:
    """Read-only snapshot of everything the report engine needs."""

    name: str
    currency_code: str
    currencies: Sequence[Currency] = field(default_factory=tuple)
    categories: Sequence[Category] = field(default_factory=tuple)
    products: Sequence[Product] = field(default_factory=tuple)
    transactions: Sequence[Transaction] = field(default_factory=tuple)
    payment_methods: Sequence[PaymentMethodOption] = field(default_factory=tuple)
    round_totals_up: bool = False

    @property
    def main_currency(self) -> Optional[Currency]:
        for currency in self.currencies:
            if currency.is_main:
                return currency
        return None

    @property
    def main_currency_code(self) -> str:
        main = self.main_currency
        return main.code if main is not None else self.currency_code

    def find_currency(self, code: str) -> Optional[Currency]:
        for currency in self.currencies:
            if currency.code == code:
                return currency
        return None

    def find_product(self, name: str) -> Optional[Product]:
        """Return the product currently carrying ``name``.

        Live products win over soft-deleted ones so a recreated product
        picks up its old sales; a deleted product still resolves when it is
        the only one left with that name.
        """

        deleted = None
        for product in self.products:
            if product.name != name:
                continue
            if not product.is_deleted:
                return product
            if deleted is None:
                deleted = product
        return deleted

    @property
    def active_products(self) -> Tuple[Product, ...]:
        live = [product for product in self.products if not product.is_deleted]
        live.sort(key=lambda product: product.sort_order)
        return tuple(live)

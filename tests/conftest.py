"""Shared fixtures: a small two-currency event and its products."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

import pytest

from registry_report import logging_setup
from registry_report.models import (
    Currency,
    Event,
    LineItem,
    PaymentMethod,
    Product,
    SplitEntry,
    Transaction,
)

USD = Currency(code="USD", symbol="$", rate=Decimal("1"), is_main=True)
EUR = Currency(code="EUR", symbol="€", rate=Decimal("0.90"))


@pytest.fixture
def water() -> Product:
    return Product(id="p-water", name="Water", price=Decimal("2.00"), sort_order=0)


@pytest.fixture
def beer() -> Product:
    return Product(id="p-beer", name="Beer", price=Decimal("5.00"), sort_order=1)


@pytest.fixture
def split_sale() -> Transaction:
    """3 x Water + 1 x Beer, paid $6.00 cash and $5.00 card."""

    return Transaction(
        id="tx-1",
        timestamp=datetime(2025, 6, 14, 18, 30, 0),
        total_amount=Decimal("11.00"),
        currency_code="USD",
        payment_method=PaymentMethod.CASH,
        transaction_ref="52D4A",
        line_items=(
            LineItem(product_name="Water", quantity=3, unit_price=Decimal("2.00")),
            LineItem(product_name="Beer", quantity=1, unit_price=Decimal("5.00")),
        ),
        split_entries=(
            SplitEntry(
                method="cash",
                method_icon="banknote",
                amount_in_main=Decimal("6.00"),
                charge_amount=Decimal("6.00"),
                currency_code="USD",
            ),
            SplitEntry(
                method="card",
                method_icon="creditcard",
                amount_in_main=Decimal("5.00"),
                charge_amount=Decimal("5.00"),
                currency_code="USD",
                card_last4="4242",
            ),
        ),
    )


@pytest.fixture
def scenario_event(water, beer, split_sale) -> Event:
    return Event(
        name="Summer Fair",
        currency_code="USD",
        currencies=(USD, EUR),
        products=(water, beer),
        transactions=(split_sale,),
    )


@pytest.fixture(autouse=True)
def reset_package_logging():
    yield
    logger = logging.getLogger("registry_report")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    logging_setup._CONFIGURED = False

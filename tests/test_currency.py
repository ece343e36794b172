from decimal import Decimal

import pytest

from registry_report.currency import (
    coerce_decimal,
    convert_to_main,
    currency_symbol,
    quantize_money,
)
from registry_report.models import Currency, Event

USD = Currency(code="USD", symbol="$", rate=Decimal("1"), is_main=True)
EUR = Currency(code="EUR", symbol="€", rate=Decimal("0.90"))


def make_event(**kwargs):
    base = dict(name="Fair", currency_code="USD", currencies=(USD, EUR))
    base.update(kwargs)
    return Event(**base)


@pytest.mark.parametrize(
    "amount",
    [Decimal("0"), Decimal("11.00"), Decimal("-3.27"), Decimal("0.1"), Decimal("1234567.891")],
)
@pytest.mark.parametrize("round_up", [False, True])
def test_main_currency_passes_through_unchanged(amount, round_up):
    event = make_event(round_totals_up=round_up)
    result = convert_to_main(amount, "USD", event)
    assert result == amount
    assert str(result) == str(amount)


def test_secondary_currency_divides_by_rate():
    event = make_event()
    assert convert_to_main(Decimal("9.00"), "EUR", event) == Decimal("10")


def test_unknown_currency_converts_at_one():
    event = make_event()
    assert convert_to_main(Decimal("7.50"), "GBP", event) == Decimal("7.50")


def test_round_up_applies_after_conversion():
    event = make_event(round_totals_up=True)
    # 10 / 0.90 = 11.11...
    assert convert_to_main(Decimal("10"), "EUR", event) == Decimal("12")
    assert convert_to_main(Decimal("-10"), "EUR", event) == Decimal("-12")
    assert convert_to_main(Decimal("9.00"), "EUR", event) == Decimal("10")


def test_main_currency_falls_back_to_event_code():
    event = Event(name="Fair", currency_code="EUR", currencies=(Currency(code="USD", symbol="$", rate=Decimal("1.1")),))
    assert event.main_currency is None
    assert convert_to_main(Decimal("5"), "EUR", event) == Decimal("5")


def test_currency_symbol_falls_back_to_code():
    event = make_event()
    assert currency_symbol("EUR", event) == "€"
    assert currency_symbol("JPY", event) == "JPY"


def test_coerce_decimal_normalizes_inputs():
    assert coerce_decimal(None) == Decimal("0")
    assert coerce_decimal(3) == Decimal("3")
    assert coerce_decimal(0.1) == Decimal("0.1")
    assert coerce_decimal("2.50") == Decimal("2.50")
    with pytest.raises(ValueError):
        coerce_decimal(True)


def test_quantize_money_rounds_half_away_from_zero():
    assert quantize_money(Decimal("2.725")) == Decimal("2.73")
    assert quantize_money(Decimal("-2.725")) == Decimal("-2.73")
    assert quantize_money(Decimal("2.724")) == Decimal("2.72")


def test_coerce_decimal_rejects_text():
    with pytest.raises(ValueError):
        coerce_decimal("n/a")

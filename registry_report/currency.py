"""Currency conversion into the event's main currency."""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation

from .logging_setup import get_logger
from .models import Event

logger = get_logger("registry_report.currency")

CENT = Decimal("0.01")
_ONE = Decimal("1")


def coerce_decimal(value) -> Decimal:
    """Normalize numeric values to ``Decimal``."""

    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Expected a number, got {value!r}") from exc


def quantize_money(value: Decimal) -> Decimal:
    """Round to two places, halves away from zero."""

    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _round_up_whole(value: Decimal) -> Decimal:
    # Magnitude is rounded up so a refund mirrors the sale it reverses.
    rounding = ROUND_CEILING if value >= 0 else ROUND_FLOOR
    return value.to_integral_value(rounding=rounding)


def convert_to_main(amount: Decimal, from_code: str, event: Event) -> Decimal:
    """Convert ``amount`` expressed in ``from_code`` into the main currency.

    The main currency passes through untouched. Unknown currencies (removed
    from the event after the sale) convert at a rate of one. When the event
    rounds totals up, the ceiling is taken after the division, in main
    currency units.
    """

    if from_code == event.main_currency_code:
        return amount

    currency = event.find_currency(from_code)
    if currency is None:
        logger.debug("No rate for %s, converting at 1", from_code)
        rate = _ONE
    else:
        rate = currency.rate
    if not rate:
        logger.debug("Zero rate for %s, converting at 1", from_code)
        rate = _ONE

    converted = amount / rate
    if event.round_totals_up:
        converted = _round_up_whole(converted)
    return converted


def currency_symbol(code: str, event: Event) -> str:
    currency = event.find_currency(code)
    return currency.symbol if currency is not None else code

"""Proportional allocation of amounts across split payment entries."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import List, Sequence

from .currency import quantize_money
from .models import SplitEntry

_ZERO = Decimal("0")


@dataclass(frozen=True)
class Allocation:
    method: str
    method_icon: str
    quantity: Decimal
    amount: Decimal


def _weights(entries: Sequence[SplitEntry]) -> List[Decimal]:
    total = sum((entry.amount_in_main for entry in entries), _ZERO)
    if total == 0:
        return [Decimal(1) / Decimal(len(entries))] * len(entries)
    return [entry.amount_in_main / total for entry in entries]


def allocate(
    sub_amount: Decimal,
    sub_quantity: Decimal | int,
    entries: Sequence[SplitEntry],
) -> List[Allocation]:
    """Share ``sub_amount`` and ``sub_quantity`` across ``entries``.

    Each entry is weighted by its main-currency amount (equal weights when
    those sum to zero). Every entry but the last gets its share rounded to
    two places; the last takes whatever is left, so the shares always add up
    to exactly ``sub_amount``. Entries whose amount share is zero are
    dropped and their units stay with the last share emitted, so the
    quantities add up to ``sub_quantity`` whenever anything is emitted. A
    zero ``sub_amount`` allocates nothing.
    """

    if not entries:
        return []

    sub_quantity = Decimal(sub_quantity)
    weights = _weights(entries)
    remaining_amount = sub_amount
    remaining_quantity = sub_quantity
    last = len(entries) - 1

    allocations: List[Allocation] = []
    for index, (entry, weight) in enumerate(zip(entries, weights)):
        if index == last:
            amount = remaining_amount
            quantity = remaining_quantity
        else:
            amount = quantize_money(sub_amount * weight)
            quantity = quantize_money(sub_quantity * weight)
        if amount == 0:
            continue
        remaining_amount -= amount
        remaining_quantity -= quantity
        allocations.append(
            Allocation(
                method=entry.method,
                method_icon=entry.method_icon,
                quantity=quantity,
                amount=amount,
            )
        )

    if allocations and remaining_quantity:
        tail = allocations[-1]
        allocations[-1] = replace(tail, quantity=tail.quantity + remaining_quantity)
    return allocations

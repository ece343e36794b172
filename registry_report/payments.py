"""Display labels for payment methods."""

from __future__ import annotations

from typing import Optional

from .models import PaymentMethod, Transaction

# Checked in order; the icon is the operator's explicit choice and wins
# over the generic method enum.
ICON_LABELS = (
    ("phone", "Bizum"),
    ("qrcode", "QR"),
)

METHOD_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.CARD: "Card",
    PaymentMethod.TRANSFER: "Transfer",
    PaymentMethod.OTHER: "QR",
}


def _label_from_icon(icon: Optional[str]) -> Optional[str]:
    if not icon:
        return None
    for fragment, label in ICON_LABELS:
        if fragment in icon:
            return label
    return None


def payment_method_label(method: PaymentMethod | str, icon: Optional[str] = None) -> str:
    """Resolve the label a report shows for a payment method.

    ``method`` may be a ``PaymentMethod`` or the free-form name stored on a
    split entry; names that are not enum values are shown as they are.
    """

    label = _label_from_icon(icon)
    if label:
        return label
    if isinstance(method, PaymentMethod):
        return METHOD_LABELS[method]
    try:
        return METHOD_LABELS[PaymentMethod(method)]
    except ValueError:
        return method.strip() or "Other"


def transaction_method_label(transaction: Transaction) -> str:
    if transaction.is_split:
        labels = [
            payment_method_label(entry.method, entry.method_icon)
            for entry in transaction.split_entries
        ]
        return " + ".join(labels)
    return payment_method_label(transaction.payment_method, transaction.payment_method_icon)

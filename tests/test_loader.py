import json
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from registry_report.loader import event_from_dict, filter_by_day, load_event
from registry_report.models import PaymentMethod, Transaction


def make_export(**overrides):
    data = {
        "name": "Summer Fair",
        "currencyCode": "USD",
        "isTotalRoundUp": False,
        "currencies": [
            {"code": "USD", "symbol": "$", "rate": 1, "isMain": True},
            {"code": "EUR", "symbol": "€", "rate": 0.9, "sortOrder": 1},
        ],
        "categories": [{"id": "c1", "name": "Drinks", "hexColor": "#00FF00", "sortOrder": 2}],
        "products": [
            {"id": "p1", "name": "Water", "price": 2.0, "categoryId": "c1", "sortOrder": 0},
            {"id": "p2", "name": "Beer", "price": 5.0, "categoryId": "gone", "isDeleted": True},
        ],
        "paymentMethods": [{"id": "m1", "name": "Bizum", "icon": "phone.fill", "isEnabled": True}],
        "transactions": [
            {
                "id": "8c2f-41aa",
                "timestamp": "2025-06-14T18:30:00Z",
                "totalAmount": 11.0,
                "currencyCode": "USD",
                "paymentMethod": "cash",
                "transactionRef": "52D4A",
                "lineItems": [
                    {"productName": "Water", "quantity": 3, "unitPrice": 2.0},
                    {"productName": "Beer", "quantity": 1, "unitPrice": 5.0, "subgroup": "Pint"},
                ],
                "splitEntries": [
                    {"method": "cash", "methodIcon": "banknote", "amountInMain": 6.0,
                     "chargeAmount": 6.0, "currencyCode": "USD"},
                    {"method": "card", "methodIcon": "creditcard", "amountInMain": 5.0,
                     "chargeAmount": 5.0, "currencyCode": "USD", "cardLast4": "4242"},
                ],
            },
            {
                "timestamp": "2025-06-14T19:00:00+00:00",
                "totalAmount": -5.0,
                "currencyCode": "USD",
                "paymentMethod": "voucher",
                "isRefund": True,
                "refundedTransactionId": "8c2f-41aa",
            },
        ],
    }
    data.update(overrides)
    return data


def write_export(tmp_path, data):
    path = tmp_path / "event.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_event_reads_every_entity(tmp_path):
    event = load_event(write_export(tmp_path, make_export()))

    assert event.name == "Summer Fair"
    assert event.main_currency_code == "USD"
    assert event.find_currency("EUR").rate == Decimal("0.9")
    assert event.categories[0].color == "#00FF00"
    water, beer = event.products
    assert water.category.name == "Drinks"
    assert beer.category is None
    assert beer.is_deleted
    assert event.payment_methods[0].icon == "phone.fill"

    sale, refund = event.transactions
    assert sale.timestamp == datetime(2025, 6, 14, 18, 30, tzinfo=timezone.utc)
    assert sale.total_amount == Decimal("11.0")
    assert sale.is_split
    assert sale.split_entries[1].card_last4 == "4242"
    assert sale.line_items[1].subgroup == "Pint"
    assert sale.display_ref == "52D4A"
    assert refund.is_refund
    assert refund.refunded_transaction_id == "8c2f-41aa"


def test_transactions_without_id_get_positional_ids(tmp_path):
    event = load_event(write_export(tmp_path, make_export()))

    refund = event.transactions[1]
    assert refund.id == "tx-1"
    assert refund.display_ref == "TX1"


def test_unknown_payment_methods_load_as_other(tmp_path):
    event = load_event(write_export(tmp_path, make_export()))

    assert event.transactions[0].payment_method is PaymentMethod.CASH
    assert event.transactions[1].payment_method is PaymentMethod.OTHER


def test_amounts_are_decimal(tmp_path):
    event = load_event(write_export(tmp_path, make_export()))

    for tx in event.transactions:
        assert isinstance(tx.total_amount, Decimal)
        for item in tx.line_items:
            assert isinstance(item.unit_price, Decimal)


def test_round_up_flag_and_currency_fallback():
    data = make_export(isTotalRoundUp=True)
    del data["currencyCode"]

    event = event_from_dict(data)

    assert event.round_totals_up
    assert event.currency_code == "USD"


def test_missing_keys_are_reported():
    data = make_export()
    del data["currencies"]

    with pytest.raises(ValueError, match="currencies"):
        event_from_dict(data)


def test_entry_missing_field_is_reported():
    data = make_export()
    data["transactions"][0]["lineItems"][0].pop("productName")

    with pytest.raises(ValueError, match="productName"):
        event_from_dict(data)


def test_several_main_currencies_are_rejected():
    data = make_export()
    data["currencies"][1]["isMain"] = True

    with pytest.raises(ValueError, match="main currencies"):
        event_from_dict(data)


def test_load_event_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_event(tmp_path / "absent.json")


def test_load_event_rejects_invalid_json(tmp_path):
    path = tmp_path / "event.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError, match="not valid JSON"):
        load_event(path)


def test_load_event_rejects_non_object(tmp_path):
    path = write_export(tmp_path, [1, 2, 3])

    with pytest.raises(ValueError, match="JSON object"):
        load_event(path)


def test_load_event_accepts_byte_order_mark(tmp_path):
    path = tmp_path / "event.json"
    path.write_text("\ufeff" + json.dumps(make_export()), encoding="utf-8")

    assert load_event(path).name == "Summer Fair"


def test_filter_by_day_uses_half_open_range():
    event = event_from_dict(make_export())
    late = event.transactions[0]
    next_day = Transaction(
        id="midnight",
        timestamp=datetime(2025, 6, 15, tzinfo=timezone.utc),
        total_amount=Decimal("1"),
        currency_code="USD",
    )

    selected = filter_by_day([late, next_day], date(2025, 6, 14))

    assert selected == [late]


def test_malformed_amount_is_reported():
    data = make_export()
    data["transactions"][0]["totalAmount"] = "eleven"

    with pytest.raises(ValueError, match="eleven"):
        event_from_dict(data)

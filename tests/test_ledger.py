"""
Tests for cart aggregation in ItemLedger.
"""

from decimal import Decimal

import pytest

from payments.errors import InvalidItemError
from payments.ledger import ItemLedger, to_decimal
from payments.models import LineItem, Money


def test_widget_gadget_total(widget_cart):
    ledger = ItemLedger("USD")
    ledger.add_items(widget_cart)

    assert ledger.total == Decimal("24.98")
    assert [item.sku for item in ledger.items] == ["W1", "G1"]
    assert all(item.currency == "USD" for item in ledger.items)


def test_one_by_one_matches_batch(widget_cart):
    one_by_one = ItemLedger()
    for item in widget_cart:
        one_by_one.add_item(item)

    batch = ItemLedger()
    batch.add_items(widget_cart)

    assert one_by_one.total == batch.total
    assert one_by_one.items == batch.items


def test_float_prices_do_not_drift():
    """Adding 0.1 ten times must land exactly on 1.00."""
    ledger = ItemLedger()
    for i in range(10):
        ledger.add_item({"name": f"Item {i}", "sku": f"S{i}", "quantity": 1, "price": 0.1})

    assert ledger.total == Decimal("1.0")
    assert isinstance(ledger.total, Decimal)


def test_accepts_line_items_and_unit_price_key():
    ledger = ItemLedger()
    ledger.add_item(LineItem("Widget", "W1", 3, Decimal("1.50")))
    ledger.add_item({"name": "Gadget", "sku": "G1", "quantity": 1, "unit_price": "2.25"})

    assert ledger.total == Decimal("6.75")
    assert len(ledger) == 2


@pytest.mark.parametrize(
    "bad_item",
    [
        {"name": "Widget", "sku": "W1", "quantity": 0, "price": "1.00"},
        {"name": "Widget", "sku": "W1", "quantity": -2, "price": "1.00"},
        {"name": "Widget", "sku": "W1", "quantity": 1.5, "price": "1.00"},
        {"name": "Widget", "sku": "W1", "quantity": True, "price": "1.00"},
        {"name": "Widget", "sku": "W1", "quantity": 1, "price": "-0.01"},
        {"name": "Widget", "sku": "W1", "quantity": 1, "price": "NaN"},
        {"name": "Widget", "sku": "W1", "quantity": 1, "price": "abc"},
        {"name": "Widget", "quantity": 1, "price": "1.00"},
        {"name": "", "sku": "W1", "quantity": 1, "price": "1.00"},
    ],
)
def test_invalid_item_rejected(bad_item):
    ledger = ItemLedger()
    ledger.add_item({"name": "Keep", "sku": "K1", "quantity": 1, "price": "3.00"})

    with pytest.raises(InvalidItemError):
        ledger.add_item(bad_item)

    assert ledger.total == Decimal("3.00")
    assert len(ledger) == 1


def test_bad_item_in_batch_leaves_ledger_untouched(widget_cart):
    ledger = ItemLedger()
    batch = widget_cart + [{"name": "Broken", "sku": "B1", "quantity": 0, "price": "1"}]

    with pytest.raises(InvalidItemError):
        ledger.add_items(batch)

    assert ledger.is_empty()
    assert ledger.total == Decimal("0")


def test_add_items_rejects_single_mapping(widget_cart):
    ledger = ItemLedger()
    with pytest.raises(InvalidItemError):
        ledger.add_items(widget_cart[0])


def test_zero_price_is_allowed():
    ledger = ItemLedger()
    ledger.add_item({"name": "Sample", "sku": "FREE", "quantity": 1, "price": 0})
    assert ledger.total == Decimal("0")
    assert not ledger.is_empty()


def test_set_currency_only_affects_later_items():
    ledger = ItemLedger("usd")
    ledger.add_item({"name": "Widget", "sku": "W1", "quantity": 1, "price": "10"})
    ledger.set_currency("EUR")
    ledger.add_item({"name": "Gadget", "sku": "G1", "quantity": 2, "price": "5"})

    assert ledger.currency == "EUR"
    assert [item.currency for item in ledger.items] == ["USD", "EUR"]
    assert ledger.total == Decimal("20")


def test_invalid_currency_code():
    ledger = ItemLedger()
    with pytest.raises(InvalidItemError):
        ledger.set_currency("DOLLARS")
    assert ledger.currency == "USD"


def test_items_view_is_read_only(widget_cart):
    ledger = ItemLedger()
    ledger.add_items(widget_cart)

    items = ledger.items
    assert isinstance(items, tuple)
    with pytest.raises(AttributeError):
        items[0].quantity = 100


def test_to_decimal_keeps_decimal_text():
    assert to_decimal(9.99) == Decimal("9.99")
    assert to_decimal("5.00") == Decimal("5.00")
    with pytest.raises(InvalidItemError):
        to_decimal(None)


def test_money_format():
    assert Money("USD", Decimal("24.98")).format() == "24.98"
    assert Money("USD", Decimal("5")).format() == "5.00"
    assert Money("USD", Decimal("0.125")).format() == "0.13"
    assert Money("JPY", Decimal("1500")).format() == "1500"


@pytest.mark.parametrize(
    "currency, price",
    [
        ("USD", "0.125"),
        ("EUR", "9.999"),
        ("JPY", "9.99"),
        ("HUF", "0.5"),
    ],
)
def test_price_finer_than_currency_rejected(currency, price):
    ledger = ItemLedger(currency)

    with pytest.raises(InvalidItemError):
        ledger.add_item({"name": "Bolt", "sku": "B1", "quantity": 8, "price": price})

    assert ledger.is_empty()


def test_price_at_currency_precision_accepted():
    usd = ItemLedger("USD").add_item(
        {"name": "Bolt", "sku": "B1", "quantity": 2, "price": "9.990"}
    )
    jpy = ItemLedger("JPY").add_item(
        {"name": "Bolt", "sku": "B1", "quantity": 2, "price": "1500"}
    )

    assert usd.total == Decimal("19.98")
    assert jpy.total == Decimal("3000")

"""
Item Ledger Module

Accumulates priced line items for one checkout attempt and keeps the
transaction total in step with them. Amounts are Decimal end to end.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from core.logging import BusinessEvents
from payments.errors import InvalidItemError
from payments.models import LineItem, currency_exponent

log = structlog.get_logger(__name__)

DEFAULT_CURRENCY = "USD"


def to_decimal(value: Any) -> Decimal:
    """Convert a price to Decimal without inheriting float noise (9.99 stays 9.99)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidItemError(f"Invalid price: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidItemError(f"Invalid price: {value!r}")


def normalize_currency(code: str) -> str:
    if not isinstance(code, str) or len(code.strip()) != 3 or not code.strip().isalpha():
        raise InvalidItemError(f"Invalid ISO 4217 currency code: {code!r}")
    return code.strip().upper()


class ItemLedger:
    """Ordered line items plus a running total in a single currency."""

    def __init__(self, currency: str = DEFAULT_CURRENCY):
        self._currency = normalize_currency(currency)
        self._items: list[LineItem] = []
        self._total = Decimal("0")

    @property
    def currency(self) -> str:
        return self._currency

    def set_currency(self, code: str) -> "ItemLedger":
        """Applies to items added from now on; existing items keep theirs."""
        self._currency = normalize_currency(code)
        return self

    def add_item(self, item: LineItem | Mapping[str, Any]) -> "ItemLedger":
        return self.add_items([item])

    def add_items(self, items: Iterable[LineItem | Mapping[str, Any]]) -> "ItemLedger":
        """
        Add several items in order.

        Every item is validated before anything is appended, so a bad entry
        anywhere in the batch leaves the ledger untouched.
        """
        if isinstance(items, (Mapping, LineItem)):
            raise InvalidItemError("add_items expects a sequence; use add_item")

        staged = [self._build(raw) for raw in items]
        increment = sum((item.subtotal for item in staged), Decimal("0"))

        self._items.extend(staged)
        self._total += increment

        for item in staged:
            log.debug(
                BusinessEvents.ITEM_ADDED,
                sku=item.sku,
                quantity=item.quantity,
                unit_price=str(item.unit_price),
                currency=item.currency,
            )
        return self

    @property
    def items(self) -> tuple[LineItem, ...]:
        return tuple(self._items)

    @property
    def total(self) -> Decimal:
        return self._total

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def _build(self, raw: LineItem | Mapping[str, Any]) -> LineItem:
        if isinstance(raw, LineItem):
            name, sku, quantity, price = raw.name, raw.sku, raw.quantity, raw.unit_price
        elif isinstance(raw, Mapping):
            try:
                name = raw["name"]
                sku = raw["sku"]
                quantity = raw["quantity"]
                price = raw["price"] if "price" in raw else raw["unit_price"]
            except KeyError as e:
                raise InvalidItemError(f"Item is missing field {e.args[0]!r}")
        else:
            raise InvalidItemError(f"Unsupported item type: {type(raw).__name__}")

        if not name or not sku:
            raise InvalidItemError("Item name and sku are required")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidItemError(f"Quantity must be a positive integer, got {quantity!r}")

        unit_price = to_decimal(price)
        if not unit_price.is_finite() or unit_price < 0:
            raise InvalidItemError(f"Unit price must be non-negative, got {price!r}")
        try:
            exact = unit_price == unit_price.quantize(currency_exponent(self._currency))
        except InvalidOperation:
            raise InvalidItemError(f"Unit price out of range: {price!r}")
        if not exact:
            raise InvalidItemError(
                f"Unit price {price!r} is finer than {self._currency} allows"
            )

        # Currency is captured from the ledger at add time
        return LineItem(
            name=str(name),
            sku=str(sku),
            quantity=quantity,
            unit_price=unit_price,
            currency=self._currency,
        )

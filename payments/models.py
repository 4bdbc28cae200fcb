"""
Checkout Value Types

Immutable records shared by the ledger, the coordinator and the gateway:
- Money and LineItem (priced cart lines)
- PaymentIntentRequest (what gets sent to PayPal on create)
- SessionToken (correlation id staged in the user session)
- CallbackParams (query string PayPal redirects back with)
- PaymentDetails / IntentCreated (what the gateway hands back)
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

# PayPal rejects fractional amounts for these
ZERO_DECIMAL_CURRENCIES = frozenset({"HUF", "JPY", "TWD"})


def currency_exponent(currency: str) -> Decimal:
    """Smallest unit PayPal accepts for the currency."""
    return Decimal("1") if currency in ZERO_DECIMAL_CURRENCIES else Decimal("0.01")


class CheckoutState(str, Enum):
    idle = "idle"
    pending_approval = "pending_approval"
    captured = "captured"
    failed = "failed"


@dataclass(frozen=True)
class Money:
    currency: str
    amount: Decimal

    def format(self) -> str:
        """Render the amount the way the PayPal REST API expects it."""
        return str(
            self.amount.quantize(currency_exponent(self.currency), rounding=ROUND_HALF_UP)
        )

    def to_api(self) -> dict[str, str]:
        return {"currency": self.currency, "total": self.format()}


@dataclass(frozen=True)
class LineItem:
    name: str
    sku: str
    quantity: int
    unit_price: Decimal
    currency: str = "USD"

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_api(self) -> dict[str, str]:
        return {
            "name": self.name,
            "sku": self.sku,
            "price": Money(self.currency, self.unit_price).format(),
            "currency": self.currency,
            "quantity": str(self.quantity),
        }


@dataclass(frozen=True)
class PaymentIntentRequest:
    currency: str
    total: Decimal
    line_items: tuple[LineItem, ...]
    description: str
    return_url: str
    cancel_url: str

    def to_payment_body(self) -> dict[str, Any]:
        """Build the body for POST /v1/payments/payment."""
        return {
            "intent": "sale",
            "payer": {"payment_method": "paypal"},
            "redirect_urls": {
                "return_url": self.return_url,
                "cancel_url": self.cancel_url,
            },
            "transactions": [
                {
                    "item_list": {"items": [item.to_api() for item in self.line_items]},
                    "amount": Money(self.currency, self.total).to_api(),
                    "description": self.description,
                }
            ],
        }


@dataclass(frozen=True)
class SessionToken:
    intent_id: str
    created_at: datetime

    def is_expired(self, ttl_seconds: float | None, now: datetime) -> bool:
        if not ttl_seconds:
            return False
        return (now - self.created_at).total_seconds() > ttl_seconds

    def to_session(self) -> dict[str, str]:
        # Cookie-backed sessions only hold JSON types
        return {"intent_id": self.intent_id, "created_at": self.created_at.isoformat()}

    @classmethod
    def from_session(cls, value: Any) -> "SessionToken | None":
        if not isinstance(value, Mapping) or not value.get("intent_id"):
            return None
        created_at = value.get("created_at")
        if isinstance(created_at, str):
            try:
                created_at = datetime.fromisoformat(created_at)
            except ValueError:
                return None
        if not isinstance(created_at, datetime) or created_at.tzinfo is None:
            return None
        return cls(intent_id=value["intent_id"], created_at=created_at)


@dataclass(frozen=True)
class CallbackParams:
    payer_id: str | None = None
    token: str | None = None

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> "CallbackParams":
        """Accept PayPal's own spelling (PayerID) as well as snake_case."""
        return cls(
            payer_id=query.get("PayerID") or query.get("payer_id") or None,
            token=query.get("token") or None,
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.payer_id) and bool(self.token)


@dataclass(frozen=True)
class IntentCreated:
    intent_id: str
    approval_url: str


@dataclass(frozen=True)
class PaymentDetails:
    id: str | None
    state: str | None
    intent: str | None = None
    payer_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_resource(cls, resource: Any) -> "PaymentDetails":
        data = resource.to_dict() if hasattr(resource, "to_dict") else dict(resource)
        payer_info = (data.get("payer") or {}).get("payer_info") or {}
        return cls(
            id=data.get("id"),
            state=data.get("state"),
            intent=data.get("intent"),
            payer_id=payer_info.get("payer_id"),
            raw=data,
        )


class _NoPendingPayment:
    """Outcome of a callback that has nothing to capture."""

    __slots__ = ()

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_PENDING_PAYMENT"


NO_PENDING_PAYMENT = _NoPendingPayment()

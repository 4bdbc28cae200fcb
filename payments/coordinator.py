"""
Payment Session Coordinator

Drives the two-phase PayPal redirect flow for a single checkout attempt:

    create_payment  -> store correlation id, hand back the approval URL
    (buyer approves on PayPal, browser is redirected back)
    resolve_callback -> consume correlation id, execute the payment

The correlation id lives in the user's session under a key derived from the
checkout-attempt id, so several checkouts can be in flight per session.
The coordinator never redirects and never imposes timeouts itself; the
gateway's HTTP timeout bounds each call.
"""

from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from core.logging import BusinessEvents
from core.metrics import checkout_created, checkout_resolved
from payments.errors import ConfigurationError, EmptyCartError, GatewayError
from payments.ledger import DEFAULT_CURRENCY, ItemLedger
from payments.models import (
    NO_PENDING_PAYMENT,
    CallbackParams,
    CheckoutState,
    LineItem,
    PaymentDetails,
    PaymentIntentRequest,
    SessionToken,
)
from payments.session_store import SessionStore

log = structlog.get_logger(__name__)

SESSION_KEY = "paypal_payment_id"


def session_key(checkout_id: str) -> str:
    if not checkout_id:
        raise ConfigurationError("checkout_id is required")
    return f"{SESSION_KEY}:{checkout_id}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PaymentSessionCoordinator:
    def __init__(
        self,
        gateway,
        session_store: SessionStore,
        currency: str = DEFAULT_CURRENCY,
        token_ttl: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            gateway: Object exposing create_intent / execute_intent (see PayPalGateway)
            session_store: Transient per-user state (put/get/remove)
            currency: Initial ledger currency
            token_ttl: Seconds a stored correlation id stays valid; None or 0 keeps it forever
            clock: Source of "now", injectable for tests
        """
        self.gateway = gateway
        self.session_store = session_store
        self.ledger = ItemLedger(currency)
        self.token_ttl = token_ttl
        self.clock = clock
        self.return_url: str | None = None
        self.cancel_url: str | None = None
        self.state = CheckoutState.idle

    # Configuration

    def set_currency(self, code: str) -> "PaymentSessionCoordinator":
        self.ledger.set_currency(code)
        return self

    def set_return_url(self, url: str) -> "PaymentSessionCoordinator":
        self.return_url = url
        return self

    def set_cancel_url(self, url: str | None) -> "PaymentSessionCoordinator":
        self.cancel_url = url
        return self

    def add_item(self, item: LineItem | Mapping[str, Any]) -> "PaymentSessionCoordinator":
        self.ledger.add_item(item)
        return self

    def add_items(
        self, items: Iterable[LineItem | Mapping[str, Any]]
    ) -> "PaymentSessionCoordinator":
        self.ledger.add_items(items)
        return self

    # Phase one

    def build_intent_request(self, description: str) -> PaymentIntentRequest:
        if not self.return_url:
            raise ConfigurationError("return_url must be set before creating a payment")
        if self.ledger.is_empty():
            raise EmptyCartError("Cannot create a payment without items")

        return PaymentIntentRequest(
            currency=self.ledger.currency,
            total=self.ledger.total,
            line_items=self.ledger.items,
            description=description,
            return_url=self.return_url,
            # Resolved here only; self.cancel_url stays unset
            cancel_url=self.cancel_url or self.return_url,
        )

    def create_payment(self, checkout_id: str, description: str) -> str:
        """
        Create the PayPal payment and stage its id in the session.

        Returns:
            Approval URL the caller must redirect the buyer to

        Raises:
            ConfigurationError: return_url unset or checkout_id empty
            EmptyCartError: no items in the ledger
            GatewayError: PayPal rejected the payment or was unreachable
        """
        key = session_key(checkout_id)
        request = self.build_intent_request(description)

        log.info(
            BusinessEvents.PAYMENT_ATTEMPT,
            checkout_id=checkout_id,
            amount=str(request.total),
            currency=request.currency,
            items=len(request.line_items),
            provider="paypal",
        )

        try:
            created = self.gateway.create_intent(request)
        except GatewayError:
            # The gateway has already logged the failure
            self.state = CheckoutState.failed
            raise

        previous = self.session_store.get(key)
        if previous:
            log.warning(
                BusinessEvents.TOKEN_OVERWRITTEN,
                checkout_id=checkout_id,
                previous=previous.get("intent_id") if isinstance(previous, Mapping) else previous,
                intent_id=created.intent_id,
            )

        token = SessionToken(intent_id=created.intent_id, created_at=self.clock())
        self.session_store.put(key, token.to_session())
        self.state = CheckoutState.pending_approval
        checkout_created.inc()

        log.info(
            BusinessEvents.PAYMENT_CREATED,
            checkout_id=checkout_id,
            intent_id=created.intent_id,
            provider="paypal",
        )
        return created.approval_url

    # Phase two

    def pending_intent(self, checkout_id: str) -> str | None:
        """Peek at the stored intent id without consuming it."""
        token = SessionToken.from_session(self.session_store.get(session_key(checkout_id)))
        if token is None or token.is_expired(self.token_ttl, self.clock()):
            return None
        return token.intent_id

    def resolve_callback(
        self, checkout_id: str, params: CallbackParams | Mapping[str, Any]
    ) -> PaymentDetails | Any:
        """
        Reconcile PayPal's redirect back against the staged payment and execute it.

        Returns:
            PaymentDetails once captured, or NO_PENDING_PAYMENT for stray,
            replayed, expired or incomplete callbacks.

        Raises:
            GatewayError: execution failed; the token is already consumed, so
            the caller has to start a fresh create_payment.
        """
        if not isinstance(params, CallbackParams):
            params = CallbackParams.from_query(params)

        key = session_key(checkout_id)
        token = SessionToken.from_session(self.session_store.get(key))

        if token is None:
            self.session_store.remove(key)
            return self._no_pending(checkout_id, reason="no_token")

        if token.is_expired(self.token_ttl, self.clock()):
            self.session_store.remove(key)
            return self._no_pending(checkout_id, reason="expired", intent_id=token.intent_id)

        # Consumed before the gateway call so a failed capture cannot be replayed
        self.session_store.remove(key)

        if not params.is_complete:
            return self._no_pending(
                checkout_id, reason="missing_params", intent_id=token.intent_id
            )

        try:
            details = self.gateway.execute_intent(token.intent_id, params.payer_id)
        except GatewayError:
            self.state = CheckoutState.failed
            checkout_resolved.labels(outcome="failed").inc()
            raise

        self.state = CheckoutState.captured
        checkout_resolved.labels(outcome="captured").inc()
        log.info(
            BusinessEvents.PAYMENT_SUCCESS,
            checkout_id=checkout_id,
            intent_id=token.intent_id,
            state=details.state,
            provider="paypal",
        )
        return details

    def _no_pending(self, checkout_id: str, reason: str, intent_id: str | None = None):
        checkout_resolved.labels(outcome="no_pending").inc()
        log.info(
            BusinessEvents.NO_PENDING_PAYMENT,
            checkout_id=checkout_id,
            reason=reason,
            intent_id=intent_id,
        )
        return NO_PENDING_PAYMENT

"""
PayPal Gateway

This module wraps the classic PayPal REST SDK (paypalrestsdk) behind the
narrow interface the checkout coordinator depends on:
- Payment create / execute / find / list
- Billing plan create / get / list / activate / delete
- Billing agreement create / execute / get / suspend / reactivate / cancel
- Billing agreement transaction search

Every SDK failure, whether a falsy create()/execute() with resource.error set,
an HTTP error raised by the SDK, or a network error from requests, surfaces as
GatewayError carrying the operation name and correlation id.
"""

from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Any
from urllib.parse import parse_qs, urlparse

import paypalrestsdk
import requests
import structlog
from paypalrestsdk import exceptions as paypal_exceptions

from core.logging import BusinessEvents
from core.settings import Settings
from payments.errors import ConfigurationError, GatewayError
from payments.models import IntentCreated, Money, PaymentDetails, PaymentIntentRequest

log = structlog.get_logger(__name__)


class TimeoutApi(paypalrestsdk.Api):
    """paypalrestsdk.Api that applies a fixed timeout to every HTTP call."""

    def __init__(self, options=None, timeout: float | None = None, **kwargs):
        super().__init__(options, **kwargs)
        self.timeout = timeout

    def http_call(self, url, method, **kwargs):
        if self.timeout:
            kwargs.setdefault("timeout", self.timeout)
        return super().http_call(url, method, **kwargs)


def approval_link(resource: Any) -> str | None:
    for link in resource.links or []:
        if link.rel == "approval_url":
            return link.href
    return None


def _resource_error(resource: Any) -> tuple[str | None, str]:
    error = resource.error or {}
    if isinstance(error, dict):
        return error.get("name"), error.get("message") or str(error)
    return None, str(error)


class PayPalGateway:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        mode: str = "sandbox",
        timeout: float | None = None,
        api: paypalrestsdk.Api | None = None,
    ):
        if api is None:
            if not client_id or not client_secret:
                raise ConfigurationError("PayPal client id and secret are required")
            api = TimeoutApi(
                mode=mode,
                client_id=client_id,
                client_secret=client_secret,
                timeout=timeout,
            )
        self.api = api
        self.mode = mode

    @classmethod
    def from_settings(cls, settings: Settings) -> "PayPalGateway":
        return cls(
            client_id=settings.PAYPAL_CLIENT_ID,
            client_secret=settings.PAYPAL_SECRET,
            mode=settings.PAYPAL_MODE,
            timeout=settings.PAYPAL_HTTP_TIMEOUT,
        )

    def _call(
        self, operation: str, fn: Callable[[], Any], correlation_id: str | None = None
    ) -> Any:
        try:
            return fn()
        except GatewayError:
            raise
        except paypal_exceptions.ConnectionError as e:
            response = getattr(e, "response", None)
            code = getattr(response, "status_code", None)
            message = getattr(e, "content", None) or str(e)
            raise self._fail(operation, code, message, correlation_id) from e
        except paypal_exceptions.MissingConfig as e:
            raise ConfigurationError(str(e)) from e
        except requests.RequestException as e:
            raise self._fail(operation, "connection_error", str(e), correlation_id) from e

    def _check(
        self, ok: bool, resource: Any, operation: str, correlation_id: str | None = None
    ) -> None:
        if not ok:
            code, message = _resource_error(resource)
            raise self._fail(operation, code, message, correlation_id)

    @staticmethod
    def _fail(operation, code, message, correlation_id) -> GatewayError:
        log.error(
            BusinessEvents.PAYMENT_FAILURE,
            provider="paypal",
            operation=operation,
            code=code,
            error=message,
            correlation_id=correlation_id,
        )
        return GatewayError(code, message, operation=operation, correlation_id=correlation_id)

    def test_connection(self) -> bool:
        """Test the PayPal API connection."""
        try:
            self.list_intents(limit=1)
            return True
        except GatewayError:
            return False

    # Payments

    def create_intent(self, request: PaymentIntentRequest) -> IntentCreated:
        payment = paypalrestsdk.Payment(request.to_payment_body(), api=self.api)

        def _create():
            self._check(payment.create(), payment, "create_intent")
            url = approval_link(payment)
            if not url:
                raise GatewayError(
                    None,
                    "PayPal response carried no approval_url link",
                    operation="create_intent",
                    correlation_id=payment.id,
                )
            return IntentCreated(intent_id=payment.id, approval_url=url)

        return self._call("create_intent", _create)

    def execute_intent(self, intent_id: str, payer_id: str) -> PaymentDetails:
        def _execute():
            payment = paypalrestsdk.Payment.find(intent_id, api=self.api)
            self._check(
                payment.execute({"payer_id": payer_id}),
                payment,
                "execute_intent",
                intent_id,
            )
            return PaymentDetails.from_resource(payment)

        return self._call("execute_intent", _execute, intent_id)

    def get_intent(self, intent_id: str) -> PaymentDetails:
        return self._call(
            "get_intent",
            lambda: PaymentDetails.from_resource(
                paypalrestsdk.Payment.find(intent_id, api=self.api)
            ),
            intent_id,
        )

    def list_intents(self, limit: int = 10, offset: int = 0) -> list[PaymentDetails]:
        history = self._call(
            "list_intents",
            lambda: paypalrestsdk.Payment.all(
                {"count": limit, "start_index": offset}, api=self.api
            ),
        )
        return [PaymentDetails.from_resource(p) for p in history.payments or []]

    # Billing plans

    def create_plan(
        self,
        name: str,
        description: str,
        amount: Decimal,
        currency: str,
        return_url: str,
        cancel_url: str | None = None,
        frequency: str = "DAY",
        frequency_interval: int = 1,
        cycles: int = 0,
        trial_amount: Decimal | None = None,
        trial_cycles: int = 1,
        plan_type: str = "INFINITE",
        max_fail_attempts: int = 0,
    ) -> dict[str, Any]:
        definitions = [
            {
                "name": "Regular Payments",
                "type": "REGULAR",
                "frequency": frequency,
                "frequency_interval": str(frequency_interval),
                "cycles": str(cycles),
                "amount": {"value": Money(currency, amount).format(), "currency": currency},
            }
        ]
        if trial_amount is not None:
            definitions.append(
                {
                    "name": "Trial Payments",
                    "type": "TRIAL",
                    "frequency": frequency,
                    "frequency_interval": str(frequency_interval),
                    "cycles": str(trial_cycles),
                    "amount": {
                        "value": Money(currency, trial_amount).format(),
                        "currency": currency,
                    },
                }
            )

        plan = paypalrestsdk.BillingPlan(
            {
                "name": name,
                "description": description,
                "type": plan_type,
                "payment_definitions": definitions,
                "merchant_preferences": {
                    "return_url": return_url,
                    "cancel_url": cancel_url or return_url,
                    "auto_bill_amount": "YES",
                    "initial_fail_amount_action": "CONTINUE",
                    "max_fail_attempts": str(max_fail_attempts),
                },
            },
            api=self.api,
        )

        def _create():
            self._check(plan.create(), plan, "create_plan")
            return plan.to_dict()

        created = self._call("create_plan", _create)
        log.info(BusinessEvents.PLAN_CHANGED, plan_id=created.get("id"), state="CREATED")
        return created

    def get_plan(self, plan_id: str) -> dict[str, Any]:
        return self._call(
            "get_plan",
            lambda: paypalrestsdk.BillingPlan.find(plan_id, api=self.api).to_dict(),
            plan_id,
        )

    def list_plans(
        self, status: str | None = None, page_size: int | None = None
    ) -> list[dict[str, Any]]:
        params = {}
        if status:
            params["status"] = status
        if page_size:
            params["page_size"] = page_size
        history = self._call(
            "list_plans",
            lambda: paypalrestsdk.BillingPlan.all(params or None, api=self.api),
        )
        return [p.to_dict() for p in history.plans or []]

    def _set_plan_state(self, plan_id: str, state: str, operation: str) -> None:
        def _replace():
            plan = paypalrestsdk.BillingPlan({"id": plan_id}, api=self.api)
            ok = plan.replace(
                [{"op": "replace", "path": "/", "value": {"state": state}}]
            )
            self._check(ok, plan, operation, plan_id)

        self._call(operation, _replace, plan_id)
        log.info(BusinessEvents.PLAN_CHANGED, plan_id=plan_id, state=state)

    def activate_plan(self, plan_id: str) -> dict[str, Any]:
        self._set_plan_state(plan_id, "ACTIVE", "activate_plan")
        return self.get_plan(plan_id)

    def delete_plan(self, plan_id: str) -> bool:
        # PayPal deletes billing plans by moving them to the DELETED state
        self._set_plan_state(plan_id, "DELETED", "delete_plan")
        return True

    # Billing agreements

    def create_agreement(
        self,
        plan_id: str,
        name: str = "Base Agreement",
        description: str = "Basic Agreement",
        start_date: datetime | None = None,
    ) -> IntentCreated:
        # PayPal requires a start date in the future
        start = start_date or datetime.now(UTC) + timedelta(minutes=1)
        agreement = paypalrestsdk.BillingAgreement(
            {
                "name": name,
                "description": description,
                "start_date": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "plan": {"id": plan_id},
                "payer": {"payment_method": "paypal"},
            },
            api=self.api,
        )

        def _create():
            self._check(agreement.create(), agreement, "create_agreement", plan_id)
            url = approval_link(agreement)
            if not url:
                raise GatewayError(
                    None,
                    "PayPal response carried no approval_url link",
                    operation="create_agreement",
                    correlation_id=plan_id,
                )
            # Agreement id only exists after execution; the EC token identifies it until then
            token = parse_qs(urlparse(url).query).get("token", [None])[0]
            return IntentCreated(intent_id=token, approval_url=url)

        created = self._call("create_agreement", _create, plan_id)
        log.info(
            BusinessEvents.AGREEMENT_CHANGED,
            plan_id=plan_id,
            token=created.intent_id,
            state="PENDING_APPROVAL",
        )
        return created

    def execute_agreement(self, token: str) -> dict[str, Any]:
        agreement = self._call(
            "execute_agreement",
            lambda: paypalrestsdk.BillingAgreement.execute(token, api=self.api),
            token,
        )
        if agreement.error:
            code, message = _resource_error(agreement)
            raise self._fail("execute_agreement", code, message, token)
        log.info(
            BusinessEvents.AGREEMENT_CHANGED,
            agreement_id=agreement.id,
            state=agreement.state,
        )
        return agreement.to_dict()

    def get_agreement(self, agreement_id: str) -> dict[str, Any]:
        return self._call(
            "get_agreement",
            lambda: paypalrestsdk.BillingAgreement.find(agreement_id, api=self.api).to_dict(),
            agreement_id,
        )

    def _change_agreement(self, agreement_id: str, action: str, note: str) -> dict[str, Any]:
        operation = f"{action}_agreement"

        def _post():
            agreement = paypalrestsdk.BillingAgreement.find(agreement_id, api=self.api)
            ok = getattr(agreement, action)({"note": note})
            self._check(ok, agreement, operation, agreement_id)

        self._call(operation, _post, agreement_id)
        log.info(BusinessEvents.AGREEMENT_CHANGED, agreement_id=agreement_id, action=action)
        return self.get_agreement(agreement_id)

    def suspend_agreement(
        self, agreement_id: str, note: str = "Suspending the agreement"
    ) -> dict[str, Any]:
        return self._change_agreement(agreement_id, "suspend", note)

    def reactivate_agreement(
        self, agreement_id: str, note: str = "Reactivating the agreement"
    ) -> dict[str, Any]:
        return self._change_agreement(agreement_id, "reactivate", note)

    def cancel_agreement(
        self, agreement_id: str, note: str = "Cancelling the agreement"
    ) -> dict[str, Any]:
        return self._change_agreement(agreement_id, "cancel", note)

    def list_agreement_transactions(
        self,
        agreement_id: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[dict[str, Any]]:
        now = datetime.now(UTC)
        start = (start_date or now - timedelta(days=365 * 15)).strftime("%Y-%m-%d")
        end = (end_date or now + timedelta(days=5)).strftime("%Y-%m-%d")

        def _search():
            agreement = paypalrestsdk.BillingAgreement({"id": agreement_id}, api=self.api)
            return agreement.search_transactions(start, end, api=self.api)

        result = self._call("list_agreement_transactions", _search, agreement_id)
        return [t.to_dict() for t in result.agreement_transaction_list or []]

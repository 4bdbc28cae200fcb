"""
API Routes Module

This module defines FastAPI routes for:
- Checkout: create a PayPal payment and resolve the approval callback
- Payment lookup and history
- Billing plan management
- Billing agreement lifecycle
"""

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from . import schemas
from core.dependencies import get_gateway, get_settings
from core.settings import Settings
from payments.coordinator import PaymentSessionCoordinator
from payments.errors import (
    CheckoutError,
    ConfigurationError,
    EmptyCartError,
    GatewayError,
    InvalidItemError,
)
from payments.gateway import PayPalGateway
from payments.models import CallbackParams
from payments.session_store import RequestSessionStore

router = APIRouter()

AGREEMENT_ACTIONS = ("suspend", "reactivate", "cancel")


def get_coordinator(
    request: Request,
    settings: Settings = Depends(get_settings),
    gateway: PayPalGateway = Depends(get_gateway),
) -> PaymentSessionCoordinator:
    """FastAPI dependency: one coordinator per request, backed by the cookie session."""
    return PaymentSessionCoordinator(
        gateway,
        RequestSessionStore(request.session),
        currency=settings.PAYPAL_CURRENCY,
        token_ttl=settings.PAYPAL_TOKEN_TTL or None,
    )


def to_http_error(error: CheckoutError) -> HTTPException:
    if isinstance(error, InvalidItemError):
        return HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))
    if isinstance(error, (EmptyCartError, ConfigurationError)):
        return HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, GatewayError):
        return HTTPException(status.HTTP_502_BAD_GATEWAY, detail=error.to_dict())
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


# Checkout routes
@router.post(
    "/checkouts/{checkout_id}/payments",
    response_model=schemas.CheckoutCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_checkout_payment(
    checkout_id: str,
    body: schemas.CheckoutCreate,
    coordinator: PaymentSessionCoordinator = Depends(get_coordinator),
):
    """Create a PayPal payment for the posted cart and return the approval URL."""
    try:
        if body.currency:
            coordinator.set_currency(body.currency)
        if body.return_url:
            coordinator.set_return_url(body.return_url)
        coordinator.set_cancel_url(body.cancel_url)
        coordinator.add_items([item.model_dump() for item in body.items])
        approval_url = coordinator.create_payment(checkout_id, body.description)
    except CheckoutError as e:
        raise to_http_error(e)
    return {"checkout_id": checkout_id, "approval_url": approval_url}


@router.get("/checkouts/{checkout_id}/callback", response_model=schemas.CallbackOut)
def resolve_checkout_callback(
    checkout_id: str,
    request: Request,
    coordinator: PaymentSessionCoordinator = Depends(get_coordinator),
):
    """Return URL PayPal redirects the buyer to after approval."""
    params = CallbackParams.from_query(request.query_params)
    try:
        result = coordinator.resolve_callback(checkout_id, params)
    except CheckoutError as e:
        raise to_http_error(e)
    if not result:
        return {"status": "no_pending_payment", "payment": None}
    return {"status": "captured", "payment": schemas.PaymentOut.from_details(result)}


# Payment routes
@router.get("/payments", response_model=list[schemas.PaymentOut])
def list_payments(
    limit: int = Query(10, ge=1, le=20),
    offset: int = Query(0, ge=0),
    gateway: PayPalGateway = Depends(get_gateway),
):
    try:
        payments = gateway.list_intents(limit=limit, offset=offset)
    except CheckoutError as e:
        raise to_http_error(e)
    return [schemas.PaymentOut.from_details(p) for p in payments]


@router.get("/payments/{payment_id}", response_model=schemas.PaymentOut)
def get_payment(payment_id: str, gateway: PayPalGateway = Depends(get_gateway)):
    try:
        payment = gateway.get_intent(payment_id)
    except CheckoutError as e:
        raise to_http_error(e)
    return schemas.PaymentOut.from_details(payment)


# Billing plan routes
@router.post("/plans", status_code=status.HTTP_201_CREATED)
def create_plan(
    body: schemas.PlanCreate,
    settings: Settings = Depends(get_settings),
    gateway: PayPalGateway = Depends(get_gateway),
) -> dict[str, Any]:
    try:
        return gateway.create_plan(
            name=body.name,
            description=body.description,
            amount=body.amount,
            currency=(body.currency or settings.PAYPAL_CURRENCY).upper(),
            return_url=body.return_url,
            cancel_url=body.cancel_url,
            frequency=body.frequency,
            frequency_interval=body.frequency_interval,
            cycles=body.cycles,
            trial_amount=body.trial_amount,
            trial_cycles=body.trial_cycles,
        )
    except CheckoutError as e:
        raise to_http_error(e)


@router.get("/plans")
def list_plans(
    plan_status: str | None = Query(None, alias="status"),
    page_size: int | None = Query(None, ge=1),
    gateway: PayPalGateway = Depends(get_gateway),
) -> list[dict[str, Any]]:
    try:
        return gateway.list_plans(status=plan_status, page_size=page_size)
    except CheckoutError as e:
        raise to_http_error(e)


@router.get("/plans/{plan_id}")
def get_plan(plan_id: str, gateway: PayPalGateway = Depends(get_gateway)) -> dict[str, Any]:
    try:
        return gateway.get_plan(plan_id)
    except CheckoutError as e:
        raise to_http_error(e)


@router.post("/plans/{plan_id}/activate")
def activate_plan(
    plan_id: str, gateway: PayPalGateway = Depends(get_gateway)
) -> dict[str, Any]:
    try:
        return gateway.activate_plan(plan_id)
    except CheckoutError as e:
        raise to_http_error(e)


@router.delete("/plans/{plan_id}")
def delete_plan(plan_id: str, gateway: PayPalGateway = Depends(get_gateway)):
    try:
        gateway.delete_plan(plan_id)
    except CheckoutError as e:
        raise to_http_error(e)
    return {"id": plan_id, "deleted": True}


# Billing agreement routes
@router.post(
    "/agreements",
    response_model=schemas.AgreementCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_agreement(
    body: schemas.AgreementCreate,
    settings: Settings = Depends(get_settings),
    gateway: PayPalGateway = Depends(get_gateway),
):
    try:
        plan_id = body.plan_id
        if not plan_id:
            if not body.plan_name:
                raise ConfigurationError("Either plan_id or plan_name is required")
            plan_id = settings.plan_id(body.plan_name)
        created = gateway.create_agreement(
            plan_id, name=body.name, description=body.description
        )
    except CheckoutError as e:
        raise to_http_error(e)
    return {"token": created.intent_id, "approval_url": created.approval_url}


@router.post("/agreements/execute")
def execute_agreement(
    token: str = Query(...), gateway: PayPalGateway = Depends(get_gateway)
) -> dict[str, Any]:
    try:
        return gateway.execute_agreement(token)
    except CheckoutError as e:
        raise to_http_error(e)


@router.get("/agreements/{agreement_id}")
def get_agreement(
    agreement_id: str, gateway: PayPalGateway = Depends(get_gateway)
) -> dict[str, Any]:
    try:
        return gateway.get_agreement(agreement_id)
    except CheckoutError as e:
        raise to_http_error(e)


@router.post("/agreements/{agreement_id}/{action}")
def change_agreement_state(
    agreement_id: str,
    action: str,
    body: schemas.StateNote | None = None,
    gateway: PayPalGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Suspend, reactivate or cancel an agreement."""
    if action not in AGREEMENT_ACTIONS:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Unknown action {action!r}")
    handler = getattr(gateway, f"{action}_agreement")
    try:
        if body and body.note:
            return handler(agreement_id, note=body.note)
        return handler(agreement_id)
    except CheckoutError as e:
        raise to_http_error(e)


@router.get("/agreements/{agreement_id}/transactions")
def list_agreement_transactions(
    agreement_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    gateway: PayPalGateway = Depends(get_gateway),
) -> list[dict[str, Any]]:
    try:
        return gateway.list_agreement_transactions(
            agreement_id, start_date=start_date, end_date=end_date
        )
    except CheckoutError as e:
        raise to_http_error(e)

"""
API Schemas Module

This module defines Pydantic models for request/response validation.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from payments.models import PaymentDetails


class ItemIn(BaseModel):
    """A cart line as posted by the host application."""

    name: str
    sku: str
    quantity: int
    price: Decimal


class CheckoutCreate(BaseModel):
    items: list[ItemIn]
    description: str = ""
    currency: Optional[str] = None
    # Optional here so a missing URL reaches the coordinator's own check
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutCreated(BaseModel):
    checkout_id: str
    approval_url: str


class PaymentOut(BaseModel):
    id: Optional[str] = None
    state: Optional[str] = None
    intent: Optional[str] = None
    payer_id: Optional[str] = None
    raw: dict[str, Any] = {}

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_details(cls, details: PaymentDetails) -> "PaymentOut":
        return cls.model_validate(details)


class CallbackOut(BaseModel):
    status: str  # "captured" or "no_pending_payment"
    payment: Optional[PaymentOut] = None


class PlanCreate(BaseModel):
    name: str
    description: str
    amount: Decimal
    currency: Optional[str] = None
    return_url: str
    cancel_url: Optional[str] = None
    frequency: str = "DAY"
    frequency_interval: int = 1
    cycles: int = 0
    trial_amount: Optional[Decimal] = None
    trial_cycles: int = 1


class AgreementCreate(BaseModel):
    """Either a raw plan id or a name from the configured plan catalog."""

    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    name: str = "Base Agreement"
    description: str = "Basic Agreement"


class AgreementCreated(BaseModel):
    token: Optional[str] = None
    approval_url: str


class StateNote(BaseModel):
    note: Optional[str] = None

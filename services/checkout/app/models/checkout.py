from __future__ import annotations

from decimal import Decimal

from packages.shared.schemas.order_v1 import (
    AddressV1,
    CustomerV1,
    FulfillmentTypeV1,
    OrderV1,
    SlotV1,
)
from pydantic import BaseModel, Field


class SessionCreateRequest(BaseModel):
    store_id: str


class AddonPickInput(BaseModel):
    category_id: str
    item_id: str
    quantity: int = Field(1, ge=1)


class CartLineInput(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    addons: list[AddonPickInput] = Field(default_factory=list)
    notes: str | None = Field(None, max_length=500)


class CartAddonOut(BaseModel):
    category_id: str
    item_id: str
    name: str
    price: Decimal
    quantity: int


class CartLineOut(BaseModel):
    index: int
    product_id: str
    name: str
    quantity: int
    addons: list[CartAddonOut]
    notes: str | None = None
    line_total: Decimal


class SessionResponse(BaseModel):
    session_id: str
    store_id: str
    allow_scheduling: bool
    lines: list[CartLineOut]
    # Product id -> units left today; None means unlimited.
    stock: dict[str, int | None]


class LineTotalOut(BaseModel):
    index: int
    product_id: str
    unit_price: Decimal
    base_total: Decimal
    addons_total: Decimal
    line_total: Decimal


class TotalsResponse(BaseModel):
    fulfillment_type: FulfillmentTypeV1
    lines: list[LineTotalOut]
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    minimum_order: Decimal
    meets_minimum: bool


class SlotsResponse(BaseModel):
    fulfillment_type: FulfillmentTypeV1
    allow_scheduling: bool
    # Reason today is not offered, if it is not.
    same_day_blocked_reason: str | None = None
    slots: list[SlotV1]


class CheckoutDetailsInput(BaseModel):
    customer: CustomerV1
    fulfillment_type: FulfillmentTypeV1
    payment_method: str = ""
    address: AddressV1 | None = None
    scheduled_for: str | None = None
    notes: str | None = Field(None, max_length=500)


class ValidationFailureOut(BaseModel):
    field: str
    message: str
    kind: str
    product_id: str | None = None
    available: int | None = None


class ValidateResponse(BaseModel):
    valid: bool
    failures: list[ValidationFailureOut]


class OrderResponse(BaseModel):
    order_id: str
    status: str
    stock_committed: bool
    order: OrderV1


class PaymentRequest(BaseModel):
    approved: bool
    provider_reference: str | None = None

"""Shared order payload schema (v1).

The checkout engine produces one `OrderV1` per submission. The persistence layer stores
it and the payment layer reads `total` for amount display.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class FulfillmentTypeV1(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class PaymentMethodV1(str, Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    PIX = "pix"


class OrderStatusV1(str, Enum):
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    PAYMENT_REJECTED = "payment_rejected"


class CustomerV1(BaseModel):
    name: str = ""
    phone: str = ""
    email: str | None = None


class AddressV1(BaseModel):
    street: str = ""
    number: str = ""
    complement: str | None = None
    neighborhood: str = ""
    city: str = ""
    state: str | None = None
    zip_code: str | None = None
    reference_point: str | None = None


class SlotV1(BaseModel):
    date: str
    time: str

    @property
    def scheduled_for(self) -> str:
        return f"{self.date}T{self.time}"


class OrderLineAddonV1(BaseModel):
    addon_item_id: str
    name: str
    unit_price: Decimal
    quantity: int = Field(..., ge=1)
    total: Decimal


class OrderLineV1(BaseModel):
    product_id: str
    name: str
    quantity: int = Field(..., ge=1)
    unit_price: Decimal
    base_total: Decimal
    addons: list[OrderLineAddonV1] = Field(default_factory=list)
    addons_total: Decimal
    line_total: Decimal
    notes: str | None = None


class OrderV1(BaseModel):
    store_id: str
    customer: CustomerV1
    fulfillment_type: FulfillmentTypeV1
    payment_method: PaymentMethodV1

    # Present only for delivery.
    address: AddressV1 | None = None
    address_text: str | None = None

    # "YYYY-MM-DDTHH:MM" in store-local time, or None for as soon as possible.
    scheduled_for: str | None = None

    items: list[OrderLineV1] = Field(..., min_length=1)
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    notes: str | None = None

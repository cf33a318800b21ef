from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from packages.shared.schemas.catalog_v1 import StoreV1
from packages.shared.schemas.order_v1 import (
    AddressV1,
    CustomerV1,
    FulfillmentTypeV1,
    OrderLineAddonV1,
    OrderLineV1,
    OrderV1,
    PaymentMethodV1,
)
from services.checkout.app.services.addons import validate_addons
from services.checkout.app.services.checkout_base import (
    CartLine,
    OrderValidationError,
    ValidationFailure,
)
from services.checkout.app.services.pricing import (
    calculate_line_total,
    calculate_order_total,
    to_money,
)
from services.checkout.app.services.scheduling import SchedulingManager
from services.checkout.app.services.stock import StockManager

_PHONE_NOISE = re.compile(r"[\s().+\-]")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_ZIP = re.compile(r"^\d{5}-?\d{3}$")


@dataclass(slots=True)
class CheckoutDetails:
    customer: CustomerV1
    fulfillment_type: FulfillmentTypeV1
    payment_method: str
    address: AddressV1 | None = None
    # "YYYY-MM-DDTHH:MM"; None or "" means as soon as possible.
    scheduled_for: str | None = None
    notes: str | None = None


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


def format_address(address: AddressV1) -> str:
    complement = f", {address.complement}" if address.complement else ""
    return f"{address.street}, {address.number}{complement} - {address.neighborhood}"


class OrderAssembler:
    """Validate a cart and turn it into an order payload.

    Never mutates stock: the caller commits stock after payment succeeds.
    """

    def __init__(
        self,
        stock: StockManager,
        scheduler: SchedulingManager | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._stock = stock
        self._scheduler = scheduler or SchedulingManager(stock, clock=clock)
        self._clock = clock

    def validate(
        self,
        cart: Sequence[CartLine],
        details: CheckoutDetails,
        store: StoreV1,
        now: datetime | None = None,
    ) -> list[ValidationFailure]:
        failures: list[ValidationFailure] = []

        if not cart:
            failures.append(ValidationFailure(field="cart", message="Cart is empty"))

        failures.extend(_customer_failures(details.customer))

        if details.fulfillment_type == FulfillmentTypeV1.DELIVERY:
            failures.extend(_address_failures(details.address))

        if details.payment_method not in {m.value for m in PaymentMethodV1}:
            failures.append(
                ValidationFailure(field="payment_method", message="Payment method is required")
            )

        for shortage in self._stock.shortages(cart):
            failures.append(
                ValidationFailure(
                    field=f"items.{shortage.product_id}",
                    message=(
                        f"Only {shortage.available} unit(s) of {shortage.product_name} "
                        f"available, {shortage.requested} requested"
                    ),
                    kind="availability",
                    product_id=shortage.product_id,
                    available=shortage.available,
                )
            )

        for index, line in enumerate(cart):
            for failure in validate_addons(line.product.addon_categories, line.addons):
                failures.append(
                    ValidationFailure(
                        field=f"items[{index}].{failure.field}",
                        message=failure.message,
                        product_id=line.product.id,
                    )
                )

        if cart:
            totals = calculate_order_total(cart, store.delivery_fee, details.fulfillment_type)
            if totals.subtotal < store.minimum_order:
                failures.append(
                    ValidationFailure(
                        field="subtotal",
                        message=f"Minimum order is {to_money(store.minimum_order)}",
                    )
                )

        check = self._scheduler.can_schedule(
            store,
            details.fulfillment_type,
            details.scheduled_for,
            cart,
            now or self._clock(),
        )
        if not check.ok:
            failures.append(
                ValidationFailure(
                    field="scheduled_for", message=check.reason or "", kind="schedule"
                )
            )

        return failures

    def build_order(
        self,
        cart: Sequence[CartLine],
        details: CheckoutDetails,
        store: StoreV1,
        now: datetime | None = None,
    ) -> OrderV1:
        failures = self.validate(cart, details, store, now)
        if failures:
            raise OrderValidationError(failures)

        items = [_order_line(line) for line in cart]
        totals = calculate_order_total(cart, store.delivery_fee, details.fulfillment_type)
        subtotal = to_money(totals.subtotal)
        delivery_fee = to_money(totals.delivery_fee)

        is_delivery = details.fulfillment_type == FulfillmentTypeV1.DELIVERY
        address = details.address if is_delivery else None
        return OrderV1(
            store_id=store.id,
            customer=details.customer,
            fulfillment_type=details.fulfillment_type,
            payment_method=PaymentMethodV1(details.payment_method),
            address=address,
            address_text=format_address(address) if address else None,
            scheduled_for=details.scheduled_for or None,
            items=items,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=subtotal + delivery_fee,
            notes=(details.notes or "").strip() or None,
        )


def _order_line(line: CartLine) -> OrderLineV1:
    priced = calculate_line_total(line.product, line.quantity, line.addons)
    return OrderLineV1(
        product_id=line.product.id,
        name=line.product.name,
        quantity=line.quantity,
        unit_price=to_money(priced.unit_price),
        base_total=to_money(priced.base_total),
        addons=[
            OrderLineAddonV1(
                addon_item_id=a.item.id,
                name=a.item.name,
                unit_price=to_money(a.item.price),
                quantity=max(1, a.quantity),
                total=to_money(a.item.price * max(1, a.quantity)),
            )
            for a in line.addons
        ],
        addons_total=to_money(priced.addons_total),
        line_total=to_money(priced.line_total),
        notes=(line.notes or "").strip() or None,
    )


def _customer_failures(customer: CustomerV1) -> list[ValidationFailure]:
    failures: list[ValidationFailure] = []

    if _blank(customer.name):
        failures.append(ValidationFailure(field="customer.name", message="Name is required"))
    elif len(customer.name.strip()) > 100:
        failures.append(ValidationFailure(field="customer.name", message="Name is too long"))

    if _blank(customer.phone):
        failures.append(ValidationFailure(field="customer.phone", message="Phone is required"))
    else:
        digits = _PHONE_NOISE.sub("", customer.phone)
        if not digits.isdigit() or not 10 <= len(digits) <= 13:
            failures.append(
                ValidationFailure(
                    field="customer.phone", message="Phone must have 10 to 13 digits"
                )
            )

    if customer.email and not _EMAIL.match(customer.email.strip()):
        failures.append(ValidationFailure(field="customer.email", message="Email is invalid"))

    return failures


def _address_failures(address: AddressV1 | None) -> list[ValidationFailure]:
    if address is None:
        return [ValidationFailure(field="address", message="Address is required for delivery")]

    failures: list[ValidationFailure] = []
    for name, label in (
        ("street", "Street"),
        ("number", "Number"),
        ("neighborhood", "Neighborhood"),
        ("city", "City"),
    ):
        if _blank(getattr(address, name)):
            failures.append(
                ValidationFailure(field=f"address.{name}", message=f"{label} is required")
            )

    if address.zip_code and not _ZIP.match(address.zip_code.strip()):
        failures.append(ValidationFailure(field="address.zip_code", message="ZIP code is invalid"))

    return failures

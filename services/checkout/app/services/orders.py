from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from packages.shared.schemas.order_v1 import OrderStatusV1, OrderV1, PaymentMethodV1
from services.checkout.app.db.models import Order, OrderEvent, Product
from services.checkout.app.services.checkout_base import OrderNotFoundError, PaymentStateError
from sqlalchemy import case, func, update
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def initial_status(order: OrderV1) -> OrderStatusV1:
    if order.payment_method == PaymentMethodV1.CASH:
        return OrderStatusV1.PENDING
    return OrderStatusV1.AWAITING_PAYMENT


def save_order(db: Session, order: OrderV1, *, checkout_session_id: str | None = None) -> Order:
    status = initial_status(order)
    row = Order(
        id=uuid4().hex,
        store_id=order.store_id,
        customer_name=order.customer.name.strip(),
        customer_phone=order.customer.phone.strip(),
        delivery_type=order.fulfillment_type.value,
        payment_method=order.payment_method.value,
        status=status.value,
        subtotal=order.subtotal,
        delivery_fee=order.delivery_fee,
        total=order.total,
        scheduled_for=order.scheduled_for,
        checkout_session_id=checkout_session_id,
        order_payload_json=order.model_dump(mode="json"),
        stock_committed=False,
    )
    db.add(row)
    db.flush()

    _log_event(
        db,
        order_id=row.id,
        event_type="ORDER_CREATED",
        event_payload={"status": row.status, "total": str(order.total)},
    )
    logger.info("Order %s created for store %s (total=%s)", row.id, row.store_id, order.total)
    return row


def get_order(db: Session, order_id: str) -> Order:
    row = db.get(Order, order_id)
    if row is None:
        raise OrderNotFoundError(order_id)
    return row


def order_quantities(order: OrderV1) -> dict[str, int]:
    out: dict[str, int] = {}
    for item in order.items:
        out[item.product_id] = out.get(item.product_id, 0) + item.quantity
    return out


def commit_stock(db: Session, row: Order) -> dict[str, int]:
    """Decrement persisted stock for an order, floored at zero. Idempotent per order.

    Each decrement is a single UPDATE so concurrent commits against the same product
    cannot drive it negative.
    """

    if row.stock_committed:
        return {}

    order = OrderV1.model_validate(row.order_payload_json)
    quantities = order_quantities(order)

    current = func.coalesce(Product.current_stock, Product.daily_stock)
    for product_id, qty in quantities.items():
        db.execute(
            update(Product)
            .where(Product.id == product_id, Product.daily_stock.is_not(None))
            .values(current_stock=case((current > qty, current - qty), else_=0))
        )

    row.stock_committed = True
    row.updated_at = datetime.now(timezone.utc)
    _log_event(
        db,
        order_id=row.id,
        event_type="STOCK_COMMITTED",
        event_payload={"quantities": quantities},
    )
    logger.info("Stock committed for order %s: %s", row.id, quantities)
    return quantities


def record_payment(
    db: Session, row: Order, *, approved: bool, provider_reference: str | None = None
) -> dict[str, int]:
    """Apply a payment outcome. Approval commits stock; rejection leaves it untouched.

    Only an order awaiting payment accepts a report; anything else raises
    `PaymentStateError`.
    """

    if row.status != OrderStatusV1.AWAITING_PAYMENT.value:
        raise PaymentStateError(row.id, row.status)

    committed: dict[str, int] = {}
    if approved:
        row.status = OrderStatusV1.PENDING.value
        committed = commit_stock(db, row)
    else:
        row.status = OrderStatusV1.PAYMENT_REJECTED.value

    row.updated_at = datetime.now(timezone.utc)
    _log_event(
        db,
        order_id=row.id,
        event_type="PAYMENT_APPROVED" if approved else "PAYMENT_REJECTED",
        event_payload={"provider_reference": provider_reference},
    )
    return committed


def _log_event(db: Session, *, order_id: str, event_type: str, event_payload: dict) -> None:
    db.add(
        OrderEvent(
            id=uuid4().hex,
            order_id=order_id,
            event_type=event_type,
            event_payload_json=event_payload,
        )
    )

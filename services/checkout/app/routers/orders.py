from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from packages.shared.schemas.order_v1 import OrderV1
from services.checkout.app.db.database import get_db
from services.checkout.app.models.checkout import OrderResponse, PaymentRequest
from services.checkout.app.routers.errors import raise_checkout_http_error
from services.checkout.app.services.checkout_base import SessionNotFoundError
from services.checkout.app.services.orders import get_order, record_payment
from services.checkout.app.services.session_store import sessions
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

router = APIRouter()


def _order_response(row) -> OrderResponse:
    return OrderResponse(
        order_id=row.id,
        status=row.status,
        stock_committed=row.stock_committed,
        order=OrderV1.model_validate(row.order_payload_json),
    )


@router.get("/v1/orders/{order_id}", response_model=OrderResponse)
def read_order(order_id: str, db: Session = Depends(get_db)) -> OrderResponse:
    try:
        row = get_order(db, order_id)
    except Exception as e:
        raise_checkout_http_error(e)
    return _order_response(row)


@router.post("/v1/orders/{order_id}/payment", response_model=OrderResponse)
def report_payment(
    order_id: str, payload: PaymentRequest, db: Session = Depends(get_db)
) -> OrderResponse:
    try:
        row = get_order(db, order_id)
        committed = record_payment(
            db,
            row,
            approved=payload.approved,
            provider_reference=payload.provider_reference,
        )
    except Exception as e:
        raise_checkout_http_error(e)

    db.commit()

    if committed and row.checkout_session_id:
        try:
            session = sessions.get(row.checkout_session_id)
        except SessionNotFoundError:
            session = None
        if session is not None:
            with session.lock:
                for product_id, qty in committed.items():
                    session.stock.reduce_stock(product_id, qty)

    logger.info("Payment for order %s recorded (approved=%s)", row.id, payload.approved)
    return _order_response(row)

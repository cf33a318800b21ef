from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from packages.shared.schemas.order_v1 import FulfillmentTypeV1, PaymentMethodV1
from services.checkout.app.config import Settings, get_settings
from services.checkout.app.db.database import get_db
from services.checkout.app.models.checkout import (
    CartAddonOut,
    CartLineInput,
    CartLineOut,
    CheckoutDetailsInput,
    LineTotalOut,
    OrderResponse,
    SessionCreateRequest,
    SessionResponse,
    SlotsResponse,
    TotalsResponse,
    ValidateResponse,
    ValidationFailureOut,
)
from services.checkout.app.routers.errors import raise_checkout_http_error
from services.checkout.app.services.addons import AddonSelection
from services.checkout.app.services.assembler import CheckoutDetails, OrderAssembler
from services.checkout.app.services.catalog import load_store, refresh_daily_stock
from services.checkout.app.services.checkout_base import (
    AddonSelectionError,
    CartLine,
    ProductUnavailableError,
)
from services.checkout.app.services.orders import commit_stock, save_order
from services.checkout.app.services.pricing import (
    calculate_line_total,
    calculate_order_total,
    to_money,
)
from services.checkout.app.services.scheduling import SchedulingManager
from services.checkout.app.services.session_store import CheckoutSession, sessions
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

router = APIRouter()


def _settings() -> Settings:
    try:
        return get_settings()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


def _local_now() -> datetime:
    return _settings().local_now()


def _scheduler(session: CheckoutSession) -> SchedulingManager:
    settings = _settings()
    return SchedulingManager(
        session.stock,
        slot_step_minutes=settings.slot_step_minutes,
        lead_minutes=settings.lead_minutes,
        max_days_ahead=settings.days_ahead,
        clock=_local_now,
    )


def _session(session_id: str) -> CheckoutSession:
    try:
        return sessions.get(session_id)
    except Exception as e:
        raise_checkout_http_error(e)


def _session_out(session: CheckoutSession) -> SessionResponse:
    lines: list[CartLineOut] = []
    for index, line in enumerate(session.lines):
        priced = calculate_line_total(line.product, line.quantity, line.addons)
        lines.append(
            CartLineOut(
                index=index,
                product_id=line.product.id,
                name=line.product.name,
                quantity=line.quantity,
                addons=[
                    CartAddonOut(
                        category_id=a.category_id,
                        item_id=a.item.id,
                        name=a.item.name,
                        price=to_money(a.item.price),
                        quantity=a.quantity,
                    )
                    for a in line.addons
                ],
                notes=line.notes,
                line_total=to_money(priced.line_total),
            )
        )

    return SessionResponse(
        session_id=session.id,
        store_id=session.store.id,
        allow_scheduling=session.store.allow_scheduling,
        lines=lines,
        stock=session.stock.snapshot(),
    )


def _details(payload: CheckoutDetailsInput) -> CheckoutDetails:
    return CheckoutDetails(
        customer=payload.customer,
        fulfillment_type=payload.fulfillment_type,
        payment_method=payload.payment_method.strip().lower(),
        address=payload.address,
        scheduled_for=(payload.scheduled_for or "").strip() or None,
        notes=payload.notes,
    )


@router.post("/v1/checkout/sessions", response_model=SessionResponse)
def create_session(payload: SessionCreateRequest, db: Session = Depends(get_db)) -> SessionResponse:
    try:
        store = load_store(db, payload.store_id)
        products = refresh_daily_stock(db, store.id, _local_now())
    except Exception as e:
        raise_checkout_http_error(e)

    session = CheckoutSession.start(store, products)
    sessions.save(session)
    logger.info("Checkout session %s started for store %s", session.id, store.id)
    return _session_out(session)


@router.get("/v1/checkout/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str) -> SessionResponse:
    return _session_out(_session(session_id))


@router.delete("/v1/checkout/sessions/{session_id}")
def discard_session(session_id: str) -> dict:
    sessions.discard(_session(session_id).id)
    return {"status": "discarded"}


@router.post("/v1/checkout/sessions/{session_id}/lines", response_model=SessionResponse)
def add_line(session_id: str, payload: CartLineInput) -> SessionResponse:
    session = _session(session_id)

    try:
        product = session.product(payload.product_id)
        if not product.is_available:
            raise ProductUnavailableError(product.id)

        selection = AddonSelection.for_product(product)
        for pick in payload.addons:
            if not selection.select(pick.category_id, pick.item_id, pick.quantity):
                raise AddonSelectionError(pick.category_id, pick.item_id)
    except Exception as e:
        raise_checkout_http_error(e)

    with session.lock:
        session.lines.append(
            CartLine(
                product=product,
                quantity=payload.quantity,
                addons=selection.selected(),
                notes=(payload.notes or "").strip() or None,
            )
        )
        return _session_out(session)


@router.delete("/v1/checkout/sessions/{session_id}/lines/{index}", response_model=SessionResponse)
def remove_line(session_id: str, index: int) -> SessionResponse:
    session = _session(session_id)
    with session.lock:
        if not 0 <= index < len(session.lines):
            raise HTTPException(status_code=404, detail="Cart line not found")

        del session.lines[index]
        return _session_out(session)


@router.get("/v1/checkout/sessions/{session_id}/totals", response_model=TotalsResponse)
def get_totals(
    session_id: str,
    fulfillment_type: FulfillmentTypeV1 = FulfillmentTypeV1.DELIVERY,
) -> TotalsResponse:
    session = _session(session_id)
    store = session.store

    lines: list[LineTotalOut] = []
    for index, line in enumerate(session.lines):
        priced = calculate_line_total(line.product, line.quantity, line.addons)
        lines.append(
            LineTotalOut(
                index=index,
                product_id=line.product.id,
                unit_price=to_money(priced.unit_price),
                base_total=to_money(priced.base_total),
                addons_total=to_money(priced.addons_total),
                line_total=to_money(priced.line_total),
            )
        )

    totals = calculate_order_total(session.lines, store.delivery_fee, fulfillment_type)
    subtotal = to_money(totals.subtotal)
    delivery_fee = to_money(totals.delivery_fee)
    return TotalsResponse(
        fulfillment_type=fulfillment_type,
        lines=lines,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        total=subtotal + delivery_fee,
        minimum_order=to_money(store.minimum_order),
        meets_minimum=totals.subtotal >= store.minimum_order,
    )


@router.get("/v1/checkout/sessions/{session_id}/slots", response_model=SlotsResponse)
def get_slots(
    session_id: str,
    fulfillment_type: FulfillmentTypeV1 = FulfillmentTypeV1.DELIVERY,
    days_ahead: int | None = Query(None, ge=0, le=60),
) -> SlotsResponse:
    session = _session(session_id)
    scheduler = _scheduler(session)
    now = _local_now()

    if days_ahead is None:
        days_ahead = _settings().days_ahead

    return SlotsResponse(
        fulfillment_type=fulfillment_type,
        allow_scheduling=session.store.allow_scheduling,
        same_day_blocked_reason=scheduler.same_day_block_reason(session.store, session.lines, now),
        slots=scheduler.get_available_slots(
            session.store, fulfillment_type, days_ahead, session.lines, now
        ),
    )


@router.post("/v1/checkout/sessions/{session_id}/validate", response_model=ValidateResponse)
def validate_checkout(session_id: str, payload: CheckoutDetailsInput) -> ValidateResponse:
    session = _session(session_id)
    assembler = OrderAssembler(session.stock, _scheduler(session), clock=_local_now)

    failures = assembler.validate(session.lines, _details(payload), session.store, _local_now())
    return ValidateResponse(
        valid=not failures,
        failures=[ValidationFailureOut(**f.as_dict()) for f in failures],
    )


@router.post("/v1/checkout/sessions/{session_id}/submit", response_model=OrderResponse)
def submit_checkout(
    session_id: str, payload: CheckoutDetailsInput, db: Session = Depends(get_db)
) -> OrderResponse:
    session = _session(session_id)
    assembler = OrderAssembler(session.stock, _scheduler(session), clock=_local_now)

    # Held from build to clear so the cart cannot change under the order.
    with session.lock:
        try:
            order = assembler.build_order(
                session.lines, _details(payload), session.store, _local_now()
            )
        except Exception as e:
            raise_checkout_http_error(e)

        row = save_order(db, order, checkout_session_id=session.id)
        if order.payment_method == PaymentMethodV1.CASH:
            for product_id, qty in commit_stock(db, row).items():
                session.stock.reduce_stock(product_id, qty)
        db.commit()

        # The cart ends with a successful checkout; the session keeps its stock cache.
        session.lines.clear()

    return OrderResponse(
        order_id=row.id,
        status=row.status,
        stock_committed=row.stock_committed,
        order=order,
    )

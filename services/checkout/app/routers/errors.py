from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import HTTPException
from services.checkout.app.services.checkout_base import (
    AddonSelectionError,
    CheckoutError,
    OrderNotFoundError,
    OrderValidationError,
    PaymentStateError,
    ProductNotFoundError,
    ProductUnavailableError,
    SessionNotFoundError,
    StoreNotFoundError,
)

logger = logging.getLogger(__name__)


def raise_checkout_http_error(e: Exception) -> NoReturn:
    if isinstance(
        e, (SessionNotFoundError, StoreNotFoundError, ProductNotFoundError, OrderNotFoundError)
    ):
        raise HTTPException(status_code=404, detail=str(e)) from e

    if isinstance(e, OrderValidationError):
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Order is not valid",
                "failures": [f.as_dict() for f in e.failures],
            },
        ) from e

    if isinstance(e, (AddonSelectionError, PaymentStateError, ProductUnavailableError)):
        raise HTTPException(status_code=409, detail=str(e)) from e

    if isinstance(e, CheckoutError):
        raise HTTPException(status_code=400, detail=str(e)) from e

    logger.exception("Unexpected checkout failure")
    raise HTTPException(status_code=500, detail="Internal Server Error") from e

"""Storefront checkout API service entrypoint."""

import logging

from fastapi import FastAPI

from services.checkout.app.config import get_settings
from services.checkout.app.db.init_db import init_db
from services.checkout.app.routers.checkout import router as checkout_router
from services.checkout.app.routers.orders import router as orders_router

app = FastAPI(title="Storefront Checkout API")

app.include_router(checkout_router)
app.include_router(orders_router)


@app.on_event("startup")
def _startup() -> None:
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    init_db()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}

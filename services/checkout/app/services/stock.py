from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime

from packages.shared.schemas.catalog_v1 import ProductV1
from services.checkout.app.services.checkout_base import CartLine

logger = logging.getLogger(__name__)

# Available-to-sell for products without a daily quota.
UNLIMITED = math.inf


@dataclass(frozen=True, slots=True)
class Shortage:
    product_id: str
    product_name: str
    requested: int
    available: int


def _seed_quantity(product: ProductV1) -> float:
    if product.daily_stock is None:
        return UNLIMITED

    daily = product.daily_stock
    if daily < 0:
        logger.warning("Product %s has negative daily_stock=%s; treating as 0", product.id, daily)
        daily = 0

    current = daily if product.current_stock is None else product.current_stock
    if not 0 <= current <= daily:
        logger.warning(
            "Product %s has current_stock=%s outside [0, %s]; clamping",
            product.id,
            current,
            daily,
        )
        current = min(max(current, 0), daily)

    return current


class StockManager:
    """Local, single-session cache of available-to-sell quantities.

    Seeded from a product snapshot and never reset by itself: build a new manager from a
    fresh snapshot to pick up an upstream daily reset. There is no cross-session guard;
    two sessions can both see the last unit as available.
    """

    def __init__(self, available: Mapping[str, float] | None = None) -> None:
        self._available: dict[str, float] = dict(available or {})

    @classmethod
    def from_products(cls, products: Iterable[ProductV1]) -> StockManager:
        return cls({p.id: _seed_quantity(p) for p in products})

    def get_available_stock(self, product_id: str) -> float:
        """Units left today; `UNLIMITED` for products without a quota, 0 if unknown."""

        available = self._available.get(product_id)
        if available is None:
            logger.warning("Stock requested for unknown product %s", product_id)
            return 0
        return available

    def is_limited(self, product_id: str) -> bool:
        return self._available.get(product_id, 0) != UNLIMITED

    def check_availability(self, product_id: str, requested_qty: int) -> bool:
        return requested_qty <= self.get_available_stock(product_id)

    def reduce_stock(self, product_id: str, qty: int) -> None:
        available = self._available.get(product_id)
        if available is None:
            logger.warning("Cannot reduce stock of unknown product %s", product_id)
            return
        if not self.is_limited(product_id) or qty <= 0:
            return
        self._available[product_id] = max(0, available - qty)

    def shortages(self, lines: Iterable[CartLine]) -> list[Shortage]:
        """Return one entry per product whose summed line quantity exceeds its stock."""

        requested: dict[str, int] = {}
        names: dict[str, str] = {}
        for line in lines:
            requested[line.product.id] = requested.get(line.product.id, 0) + line.quantity
            names[line.product.id] = line.product.name

        out: list[Shortage] = []
        for product_id, qty in requested.items():
            if not self.check_availability(product_id, qty):
                out.append(
                    Shortage(
                        product_id=product_id,
                        product_name=names[product_id],
                        requested=qty,
                        available=int(self.get_available_stock(product_id)),
                    )
                )
        return out

    def snapshot(self) -> dict[str, int | None]:
        """Available counts keyed by product id; None means unlimited."""

        return {
            pid: (int(qty) if self.is_limited(pid) else None)
            for pid, qty in self._available.items()
        }


def _reset_day(stamp: datetime, now: datetime) -> date:
    if stamp.tzinfo is not None and now.tzinfo is not None:
        return stamp.astimezone(now.tzinfo).date()
    return stamp.date()


def reset_daily_stock(products: Iterable[ProductV1], now: datetime) -> list[ProductV1]:
    """Refill the quota of every product not yet reset on `now`'s calendar day.

    Returns a new list; untouched products are returned as the same objects.
    """

    today = now.date()
    out: list[ProductV1] = []
    for product in products:
        stale = product.daily_stock is not None and (
            product.stock_last_reset is None or _reset_day(product.stock_last_reset, now) != today
        )
        if stale:
            product = product.model_copy(
                update={"current_stock": product.daily_stock, "stock_last_reset": now}
            )
        out.append(product)
    return out

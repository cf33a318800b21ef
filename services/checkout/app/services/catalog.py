from __future__ import annotations

import logging
from datetime import datetime

from packages.shared.schemas.catalog_v1 import (
    AddonCategoryV1,
    AddonItemV1,
    ProductV1,
    StoreV1,
)
from services.checkout.app.db.models import (
    AddonCategory,
    AddonItem,
    Product,
    ProductAddonCategory,
    Store,
)
from services.checkout.app.services.checkout_base import StoreNotFoundError
from services.checkout.app.services.stock import reset_daily_stock
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def load_store(db: Session, store_id: str) -> StoreV1:
    row = db.get(Store, store_id)
    if row is None:
        raise StoreNotFoundError(store_id)

    return StoreV1.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "weekly_schedule": row.weekly_schedule or {},
            "special_dates": row.special_dates or [],
            "delivery_schedule": row.delivery_schedule or {},
            "same_day_cutoff_time": row.same_day_cutoff_time,
            "allow_scheduling": row.allow_scheduling,
            "minimum_order": row.minimum_order,
            "delivery_fee": row.delivery_fee,
        }
    )


def _addon_categories(db: Session, store_id: str) -> dict[str, list[AddonCategoryV1]]:
    """Active add-on categories (with items) keyed by the product they are attached to."""

    categories = (
        db.query(AddonCategory)
        .filter(AddonCategory.store_id == store_id, AddonCategory.is_active.is_(True))
        .order_by(AddonCategory.sort_order, AddonCategory.name)
        .all()
    )
    if not categories:
        return {}

    items = (
        db.query(AddonItem)
        .filter(AddonItem.category_id.in_([c.id for c in categories]))
        .order_by(AddonItem.sort_order, AddonItem.name)
        .all()
    )
    items_by_category: dict[str, list[AddonItemV1]] = {}
    for it in items:
        items_by_category.setdefault(it.category_id, []).append(
            AddonItemV1(
                id=it.id,
                name=it.name,
                price=it.price,
                is_available=it.is_available,
                sort_order=it.sort_order,
            )
        )

    by_id: dict[str, AddonCategoryV1] = {}
    for c in categories:
        if c.min_select > c.max_select:
            logger.warning(
                "Add-on category %s has min_select=%s > max_select=%s",
                c.id,
                c.min_select,
                c.max_select,
            )
        by_id[c.id] = AddonCategoryV1(
            id=c.id,
            name=c.name,
            is_required=c.is_required,
            is_multiple=c.is_multiple,
            min_select=c.min_select,
            max_select=max(c.max_select, 1),
            sort_order=c.sort_order,
            items=items_by_category.get(c.id, []),
        )

    links = (
        db.query(ProductAddonCategory)
        .filter(ProductAddonCategory.category_id.in_(list(by_id)))
        .all()
    )
    out: dict[str, list[AddonCategoryV1]] = {}
    for link in links:
        out.setdefault(link.product_id, []).append(by_id[link.category_id])
    for cats in out.values():
        cats.sort(key=lambda c: (c.sort_order, c.name))
    return out


def load_products(db: Session, store_id: str) -> list[ProductV1]:
    rows = db.query(Product).filter(Product.store_id == store_id).order_by(Product.name).all()
    addon_categories = _addon_categories(db, store_id)

    return [
        ProductV1(
            id=r.id,
            name=r.name,
            category_id=r.category_id,
            price=r.price,
            sale_price=r.sale_price,
            max_included_quantity=r.max_included_quantity,
            excess_unit_price=r.excess_unit_price,
            daily_stock=r.daily_stock,
            current_stock=r.current_stock,
            stock_last_reset=r.stock_last_reset,
            allow_same_day_scheduling=r.allow_same_day_scheduling,
            is_available=r.is_available,
            addon_categories=addon_categories.get(r.id, []),
        )
        for r in rows
    ]


def refresh_daily_stock(db: Session, store_id: str, now: datetime) -> list[ProductV1]:
    """Load the store's products, refilling and persisting any quota not yet reset today."""

    products = load_products(db, store_id)
    refreshed = reset_daily_stock(products, now)

    changed = [after for before, after in zip(products, refreshed) if after is not before]
    for product in changed:
        row = db.get(Product, product.id)
        if row is None:
            continue
        row.current_stock = product.current_stock
        row.stock_last_reset = product.stock_last_reset

    if changed:
        db.commit()
        logger.info("Daily stock reset for %d product(s) of store %s", len(changed), store_id)

    return refreshed

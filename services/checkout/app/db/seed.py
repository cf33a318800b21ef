"""Demo catalog for local development and tests."""

from __future__ import annotations

from decimal import Decimal

from services.checkout.app.db.models import (
    AddonCategory,
    AddonItem,
    Product,
    ProductAddonCategory,
    Store,
)
from sqlalchemy.orm import Session

_OPEN_DAY = {"open": "08:00", "close": "18:00", "closed": False}

DEMO_WEEKLY_SCHEDULE = {
    "monday": _OPEN_DAY,
    "tuesday": _OPEN_DAY,
    "wednesday": _OPEN_DAY,
    "thursday": _OPEN_DAY,
    "friday": _OPEN_DAY,
    "saturday": {"open": "09:00", "close": "13:00", "closed": False},
    "sunday": {"open": "", "close": "", "closed": True},
}

DEMO_DELIVERY_SCHEDULE = {
    "morning": {"start": "09:00", "end": "12:00", "enabled": True},
    "afternoon": {"start": "14:00", "end": "17:00", "enabled": True},
    "evening": {"start": "18:00", "end": "21:00", "enabled": False},
}


def seed_demo_store(db: Session, store_id: str = "demo-store") -> Store:
    """Create the demo store and its catalog unless it already exists."""

    existing = db.get(Store, store_id)
    if existing is not None:
        return existing

    store = Store(
        id=store_id,
        name="Demo Bakery",
        weekly_schedule=DEMO_WEEKLY_SCHEDULE,
        special_dates=[],
        delivery_schedule=DEMO_DELIVERY_SCHEDULE,
        same_day_cutoff_time="14:00",
        allow_scheduling=True,
        minimum_order=Decimal("20.00"),
        delivery_fee=Decimal("5.00"),
    )
    db.add(store)

    db.add_all(
        [
            Product(
                id=f"{store_id}-cake-slice",
                store_id=store_id,
                name="Cake slice",
                price=Decimal("10.00"),
                max_included_quantity=2,
                excess_unit_price=Decimal("4.00"),
                daily_stock=3,
                current_stock=3,
            ),
            Product(
                id=f"{store_id}-brownie",
                store_id=store_id,
                name="Brownie",
                price=Decimal("8.00"),
                sale_price=Decimal("6.50"),
            ),
            Product(
                id=f"{store_id}-wedding-cake",
                store_id=store_id,
                name="Wedding cake",
                price=Decimal("180.00"),
                allow_same_day_scheduling=False,
            ),
        ]
    )

    db.add_all(
        [
            AddonCategory(
                id=f"{store_id}-topping",
                store_id=store_id,
                name="Topping",
                is_required=True,
                is_multiple=False,
                min_select=1,
                max_select=1,
                sort_order=0,
            ),
            AddonCategory(
                id=f"{store_id}-extras",
                store_id=store_id,
                name="Extras",
                is_required=False,
                is_multiple=True,
                min_select=0,
                max_select=2,
                sort_order=1,
            ),
        ]
    )
    db.add_all(
        [
            AddonItem(
                id=f"{store_id}-chocolate",
                category_id=f"{store_id}-topping",
                name="Chocolate",
                price=Decimal("2.00"),
            ),
            AddonItem(
                id=f"{store_id}-caramel",
                category_id=f"{store_id}-topping",
                name="Caramel",
                price=Decimal("2.50"),
            ),
            AddonItem(
                id=f"{store_id}-nuts",
                category_id=f"{store_id}-extras",
                name="Nuts",
                price=Decimal("1.50"),
                sort_order=0,
            ),
            AddonItem(
                id=f"{store_id}-cream",
                category_id=f"{store_id}-extras",
                name="Whipped cream",
                price=Decimal("1.00"),
                sort_order=1,
            ),
            AddonItem(
                id=f"{store_id}-gold-leaf",
                category_id=f"{store_id}-extras",
                name="Gold leaf",
                price=Decimal("9.00"),
                is_available=False,
                sort_order=2,
            ),
        ]
    )
    db.add_all(
        [
            ProductAddonCategory(
                product_id=f"{store_id}-cake-slice", category_id=f"{store_id}-topping"
            ),
            ProductAddonCategory(
                product_id=f"{store_id}-cake-slice", category_id=f"{store_id}-extras"
            ),
        ]
    )

    db.commit()
    return store

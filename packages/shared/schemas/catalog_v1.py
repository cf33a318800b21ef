"""Shared catalog record schema (v1).

These are the store, product and add-on records the checkout engine reads. They mirror
the rows kept by the persistence layer and are intentionally permissive: a record with a
data defect still loads, and the engine decides how to neutralise it.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class AddonItemV1(BaseModel):
    id: str
    name: str
    price: Decimal = Field(default=Decimal("0"), ge=0)
    is_available: bool = True
    sort_order: int = 0


class AddonCategoryV1(BaseModel):
    id: str
    name: str
    is_required: bool = False
    is_multiple: bool = False
    min_select: int = Field(default=0, ge=0)
    max_select: int = Field(default=1, ge=1)
    sort_order: int = 0
    items: list[AddonItemV1] = Field(default_factory=list)

    def item(self, item_id: str) -> AddonItemV1 | None:
        return next((it for it in self.items if it.id == item_id), None)


class ProductV1(BaseModel):
    id: str
    name: str = ""
    category_id: str | None = None

    price: Decimal = Field(..., ge=0)
    sale_price: Decimal | None = None

    # Tiered pricing: units beyond max_included_quantity are billed at excess_unit_price.
    max_included_quantity: int | None = None
    excess_unit_price: Decimal | None = None

    # None means unlimited.
    daily_stock: int | None = None
    current_stock: int | None = None
    stock_last_reset: dt.datetime | None = None

    allow_same_day_scheduling: bool = True
    is_available: bool = True

    addon_categories: list[AddonCategoryV1] = Field(default_factory=list)


class DayScheduleV1(BaseModel):
    open: str | None = None
    close: str | None = None
    closed: bool = False


class SpecialDateV1(BaseModel):
    date: dt.date
    closed: bool = False
    open: str | None = None
    close: str | None = None
    description: str = ""


class DeliveryWindowV1(BaseModel):
    start: str | None = None
    end: str | None = None
    enabled: bool = True


class StoreV1(BaseModel):
    id: str
    name: str = ""

    # Keys are lowercase English weekday names; a missing key means closed.
    weekly_schedule: dict[str, DayScheduleV1] = Field(default_factory=dict)
    special_dates: list[SpecialDateV1] = Field(default_factory=list)
    delivery_schedule: dict[str, DeliveryWindowV1] = Field(default_factory=dict)

    same_day_cutoff_time: str | None = None
    allow_scheduling: bool = True

    minimum_order: Decimal = Field(default=Decimal("0"), ge=0)
    delivery_fee: Decimal = Field(default=Decimal("0"), ge=0)

    def special_date(self, day: dt.date) -> SpecialDateV1 | None:
        return next((sd for sd in self.special_dates if sd.date == day), None)

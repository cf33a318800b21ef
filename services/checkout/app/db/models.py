from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Store(Base):
    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)

    weekly_schedule: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    special_dates: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    delivery_schedule: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    same_day_cutoff_time: Mapped[str | None] = mapped_column(String, nullable=True)
    allow_scheduling: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    minimum_order: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    delivery_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id"), nullable=False)
    category_id: Mapped[str | None] = mapped_column(String, nullable=True)
    name: Mapped[str] = mapped_column(String, nullable=False)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    sale_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    max_included_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    excess_unit_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    daily_stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Store-local wall-clock time of the last quota refill.
    stock_last_reset: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    allow_same_day_scheduling: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class AddonCategory(Base):
    __tablename__ = "addon_categories"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id"), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)

    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_multiple: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    min_select: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_select: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AddonItem(Base):
    __tablename__ = "addon_items"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    category_id: Mapped[str] = mapped_column(ForeignKey("addon_categories.id"), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ProductAddonCategory(Base):
    __tablename__ = "product_addon_categories"

    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), primary_key=True)
    category_id: Mapped[str] = mapped_column(ForeignKey("addon_categories.id"), primary_key=True)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id"), nullable=False)

    customer_name: Mapped[str] = mapped_column(String, nullable=False)
    customer_phone: Mapped[str] = mapped_column(String, nullable=False)
    delivery_type: Mapped[str] = mapped_column(String, nullable=False)
    payment_method: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    delivery_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    scheduled_for: Mapped[str | None] = mapped_column(String, nullable=True)
    checkout_session_id: Mapped[str | None] = mapped_column(String, nullable=True)

    order_payload_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    stock_committed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class OrderEvent(Base):
    __tablename__ = "order_events"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), nullable=False)

    event_type: Mapped[str] = mapped_column(String, nullable=False)
    event_payload_json: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

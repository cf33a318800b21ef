from datetime import datetime
from decimal import Decimal

import pytest
from packages.shared.schemas.catalog_v1 import ProductV1, StoreV1
from packages.shared.schemas.order_v1 import FulfillmentTypeV1, SlotV1
from services.checkout.app.services.checkout_base import CartLine
from services.checkout.app.services.scheduling import (
    SchedulingManager,
    dedupe_slots,
    is_store_open,
    next_available_slot,
    parse_hhmm,
    slots_by_date,
)
from services.checkout.app.services.stock import StockManager

DELIVERY = FulfillmentTypeV1.DELIVERY
PICKUP = FulfillmentTypeV1.PICKUP

# 2026-10-19 is a Monday.
MONDAY_MORNING = datetime(2026, 10, 19, 10, 10)


def _store(**overrides) -> StoreV1:
    weekday = {"open": "08:00", "close": "18:00"}
    data = {
        "id": "s-1",
        "weekly_schedule": {
            "monday": weekday,
            "tuesday": weekday,
            "wednesday": weekday,
            "thursday": weekday,
            "friday": weekday,
            "saturday": {"open": "09:00", "close": "13:00"},
            "sunday": {"closed": True},
        },
        "delivery_schedule": {
            "morning": {"start": "09:00", "end": "12:00"},
            "afternoon": {"start": "14:00", "end": "17:00"},
            "evening": {"start": "18:00", "end": "21:00", "enabled": False},
        },
        "same_day_cutoff_time": "14:00",
    }
    data.update(overrides)
    return StoreV1.model_validate(data)


def _product(product_id: str = "A", **overrides) -> ProductV1:
    data = {"id": product_id, "name": f"Product {product_id}", "price": Decimal("5.00")}
    data.update(overrides)
    return ProductV1(**data)


def _manager(products=(), **kwargs) -> SchedulingManager:
    return SchedulingManager(StockManager.from_products(products), **kwargs)


def _times(slots: list[SlotV1]) -> list[str]:
    return [s.time for s in slots]


def test_parse_hhmm_rejects_malformed_values() -> None:
    assert parse_hhmm("09:30") == 570
    assert parse_hhmm("9:05") == 545
    assert parse_hhmm("24:00") is None
    assert parse_hhmm("12:60") is None
    assert parse_hhmm("noon") is None
    assert parse_hhmm(None) is None


def test_pickup_slots_cover_the_business_window_inclusive() -> None:
    slots = _manager().get_available_slots(_store(), PICKUP, 0, now=MONDAY_MORNING)

    assert slots[0] == SlotV1(date="2026-10-19", time="10:30")
    assert slots[-1].time == "18:00"
    assert len(slots) == 16


def test_delivery_slots_are_restricted_to_enabled_windows() -> None:
    slots = _manager().get_available_slots(_store(), DELIVERY, 0, now=MONDAY_MORNING)

    assert _times(slots) == [
        "10:30",
        "11:00",
        "11:30",
        "12:00",
        "14:00",
        "14:30",
        "15:00",
        "15:30",
        "16:00",
        "16:30",
        "17:00",
    ]


def test_empty_delivery_schedule_means_no_restriction() -> None:
    slots = _manager().get_available_slots(
        _store(delivery_schedule={}), DELIVERY, 0, now=MONDAY_MORNING
    )

    assert _times(slots)[-1] == "18:00"
    assert len(slots) == 16


def test_no_enabled_delivery_window_means_no_delivery_slots() -> None:
    store = _store(
        delivery_schedule={"morning": {"start": "09:00", "end": "12:00", "enabled": False}}
    )
    manager = _manager()

    assert manager.get_available_slots(store, DELIVERY, 3, now=MONDAY_MORNING) == []
    assert manager.get_available_slots(store, PICKUP, 0, now=MONDAY_MORNING) != []


def test_slots_after_cutoff_start_tomorrow() -> None:
    now = datetime(2026, 10, 19, 14, 0)
    manager = _manager()

    assert manager.same_day_block_reason(_store(), [], now) == "Same-day orders close at 14:00"

    slots = manager.get_available_slots(_store(), DELIVERY, 1, now=now)
    assert {s.date for s in slots} == {"2026-10-20"}
    assert slots[0].time == "09:00"
    assert len(slots) == 14


def test_sunday_closed_has_no_slots() -> None:
    saturday = datetime(2026, 10, 24, 8, 0)

    slots = _manager().get_available_slots(_store(), PICKUP, 1, now=saturday)

    assert {s.date for s in slots} == {"2026-10-24"}
    assert _times(slots)[0] == "09:00"
    assert _times(slots)[-1] == "13:00"


def test_closed_special_date_overrides_weekly_schedule() -> None:
    store = _store(special_dates=[{"date": "2026-10-20", "closed": True, "description": "Holiday"}])
    now = datetime(2026, 10, 19, 15, 0)

    slots = _manager().get_available_slots(store, PICKUP, 2, now=now)

    assert {s.date for s in slots} == {"2026-10-21"}


def test_special_date_hours_replace_weekly_hours() -> None:
    store = _store(special_dates=[{"date": "2026-10-21", "open": "10:00", "close": "11:00"}])

    slots = slots_by_date(
        _manager().get_available_slots(store, PICKUP, 2, now=MONDAY_MORNING), "2026-10-21"
    )

    assert _times(slots) == ["10:00", "10:30", "11:00"]


def test_malformed_weekly_entry_closes_the_day() -> None:
    store = _store()
    store.weekly_schedule["monday"] = store.weekly_schedule["monday"].model_copy(
        update={"open": "25:00"}
    )

    slots = _manager().get_available_slots(store, PICKUP, 1, now=MONDAY_MORNING)

    assert slots_by_date(slots, "2026-10-19") == []
    assert slots_by_date(slots, "2026-10-20") != []


def test_product_without_same_day_scheduling_blocks_today() -> None:
    cake = _product("cake", name="Wedding cake", allow_same_day_scheduling=False)
    manager = _manager([cake])
    lines = [CartLine(product=cake, quantity=1)]

    reason = manager.same_day_block_reason(_store(), lines, MONDAY_MORNING)
    assert reason == "Not available for same-day fulfillment: Wedding cake"

    slots = manager.get_available_slots(_store(), PICKUP, 1, lines, MONDAY_MORNING)
    assert slots_by_date(slots, "2026-10-19") == []
    assert slots_by_date(slots, "2026-10-20") != []


def test_insufficient_stock_blocks_today_only() -> None:
    a = _product("A", daily_stock=3, current_stock=1)
    manager = _manager([a])
    lines = [CartLine(product=a, quantity=2)]

    assert "Product A" in manager.same_day_block_reason(_store(), lines, MONDAY_MORNING)

    slots = manager.get_available_slots(_store(), PICKUP, 1, lines, MONDAY_MORNING)
    assert {s.date for s in slots} == {"2026-10-20"}


def test_scheduling_disabled_offers_no_slots() -> None:
    slots = _manager().get_available_slots(
        _store(allow_scheduling=False), PICKUP, 7, now=MONDAY_MORNING
    )

    assert slots == []


def test_lead_time_pushes_the_first_slot() -> None:
    manager = _manager(lead_minutes=60)

    slots = manager.get_available_slots(_store(), PICKUP, 0, now=MONDAY_MORNING)

    assert slots[0].time == "11:30"


def test_custom_step_and_clock() -> None:
    manager = _manager(slot_step_minutes=60, clock=lambda: MONDAY_MORNING)

    slots = manager.get_available_slots(_store(), PICKUP, 0)

    assert _times(slots) == ["11:00", "12:00", "13:00", "14:00", "15:00", "16:00", "17:00", "18:00"]


def test_invalid_step_is_rejected() -> None:
    with pytest.raises(ValueError):
        _manager(slot_step_minutes=0)


def test_slots_are_chronological_across_days() -> None:
    slots = _manager().get_available_slots(_store(), DELIVERY, 7, now=MONDAY_MORNING)
    keys = [s.scheduled_for for s in slots]

    assert keys == sorted(keys)
    assert next_available_slot(slots) == SlotV1(date="2026-10-19", time="10:30")
    assert next_available_slot([]) is None


def test_overlapping_windows_can_be_deduplicated() -> None:
    store = _store(
        delivery_schedule={
            "a": {"start": "09:00", "end": "12:00"},
            "b": {"start": "11:00", "end": "13:00"},
        }
    )
    slots = _manager().get_available_slots(store, DELIVERY, 0, now=datetime(2026, 10, 19, 8, 0))

    assert _times(slots).count("11:00") == 2

    unique = dedupe_slots(slots)
    assert _times(unique) == [
        "09:00",
        "09:30",
        "10:00",
        "10:30",
        "11:00",
        "11:30",
        "12:00",
        "12:30",
        "13:00",
    ]


def test_can_schedule_accepts_offered_slots_only() -> None:
    manager = _manager(clock=lambda: MONDAY_MORNING)
    store = _store()

    assert manager.can_schedule(store, DELIVERY, None).ok is True
    assert manager.can_schedule(store, DELIVERY, "2026-10-19T11:00").ok is True

    check = manager.can_schedule(store, DELIVERY, "2026-10-19T13:00")
    assert check.ok is False
    assert check.reason == "13:00 is not an available time on 2026-10-19"

    assert manager.can_schedule(store, PICKUP, "2026-10-19T13:00").ok is True


def test_can_schedule_rejects_bad_past_and_closed_times() -> None:
    manager = _manager(clock=lambda: MONDAY_MORNING)
    store = _store()

    assert manager.can_schedule(store, PICKUP, "tomorrow").reason.startswith("Invalid")
    assert manager.can_schedule(store, PICKUP, "2026-10-18T11:00").reason == (
        "Scheduled time has already passed"
    )
    assert manager.can_schedule(store, PICKUP, "2026-10-25T10:00").reason == (
        "No pickup slots available on 2026-10-25"
    )
    assert manager.can_schedule(store, PICKUP, "2026-10-19T10:00").ok is False

    disabled = _store(allow_scheduling=False)
    assert manager.can_schedule(disabled, PICKUP, "2026-10-20T10:00").ok is False


def test_can_schedule_after_cutoff_reports_the_cutoff() -> None:
    manager = _manager()
    now = datetime(2026, 10, 19, 15, 0)

    check = manager.can_schedule(_store(), PICKUP, "2026-10-19T16:00", [], now)

    assert check.ok is False
    assert check.reason == "Same-day orders close at 14:00"


def test_is_store_open() -> None:
    store = _store()

    assert is_store_open(store, datetime(2026, 10, 19, 10, 0)) is True
    assert is_store_open(store, datetime(2026, 10, 19, 18, 30)) is False
    assert is_store_open(store, datetime(2026, 10, 25, 10, 0)) is False


def test_can_schedule_rejects_dates_past_the_horizon() -> None:
    manager = _manager(max_days_ahead=7, clock=lambda: MONDAY_MORNING)
    store = _store()

    check = manager.can_schedule(store, PICKUP, "2026-10-27T10:00")
    assert check.ok is False
    assert check.reason == "Orders can be scheduled at most 7 day(s) ahead"

    assert manager.can_schedule(store, PICKUP, "2026-10-26T10:00").ok is True
    assert manager.can_schedule(store, PICKUP, "2126-10-19T10:00").ok is False


def test_slot_listing_is_capped_by_the_horizon() -> None:
    manager = _manager(max_days_ahead=2)

    slots = manager.get_available_slots(_store(), PICKUP, 30, now=MONDAY_MORNING)

    assert {s.date for s in slots} == {"2026-10-19", "2026-10-20", "2026-10-21"}

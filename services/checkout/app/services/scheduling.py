"""Delivery and pickup slot generation.

All times are store-local wall-clock values. A day's business window comes from the
matching special date when there is one, else from the weekly schedule; a missing or
malformed entry closes the day. Delivery slots are further restricted to the enabled
delivery windows, pickup slots use the whole business window.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from packages.shared.schemas.catalog_v1 import WEEKDAYS, StoreV1
from packages.shared.schemas.order_v1 import FulfillmentTypeV1, SlotV1
from services.checkout.app.services.checkout_base import CartLine
from services.checkout.app.services.stock import StockManager

logger = logging.getLogger(__name__)

DEFAULT_SLOT_STEP_MINUTES = 30

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")

Window = tuple[int, int]


@dataclass(frozen=True, slots=True)
class ScheduleCheck:
    ok: bool
    reason: str | None = None


def parse_hhmm(value: str | None) -> int | None:
    """Minutes since midnight for an "HH:MM" string, or None when malformed."""

    m = _HHMM.match((value or "").strip())
    if not m:
        return None
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_hhmm(minute_of_day: int) -> str:
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


def _window(open_: str | None, close: str | None, context: str) -> Window | None:
    start, end = parse_hhmm(open_), parse_hhmm(close)
    if start is None or end is None or start >= end:
        logger.warning(
            "Ignoring malformed hours %r-%r for %s; treating as closed", open_, close, context
        )
        return None
    return start, end


def resolve_business_window(store: StoreV1, day: date) -> Window | None:
    special = store.special_date(day)
    if special is not None:
        if special.closed:
            return None
        if special.open and special.close:
            return _window(special.open, special.close, f"store {store.id} on {day}")

    entry = store.weekly_schedule.get(WEEKDAYS[day.weekday()])
    if entry is None or entry.closed:
        return None
    return _window(entry.open, entry.close, f"store {store.id} on {WEEKDAYS[day.weekday()]}")


def fulfillment_windows(
    store: StoreV1, fulfillment_type: FulfillmentTypeV1, business: Window
) -> list[Window]:
    if fulfillment_type == FulfillmentTypeV1.PICKUP or not store.delivery_schedule:
        return [business]

    out: list[Window] = []
    for name, entry in store.delivery_schedule.items():
        if not entry.enabled:
            continue
        window = _window(entry.start, entry.end, f"delivery window {name!r} of store {store.id}")
        if window is None:
            continue
        lo, hi = max(window[0], business[0]), min(window[1], business[1])
        if lo < hi:
            out.append((lo, hi))
    return out


def _grid(window: Window, step: int) -> range:
    start, end = window
    first = -(-start // step) * step
    return range(first, end + 1, step)


class SchedulingManager:
    def __init__(
        self,
        stock: StockManager,
        *,
        slot_step_minutes: int = DEFAULT_SLOT_STEP_MINUTES,
        lead_minutes: int = 0,
        max_days_ahead: int | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if slot_step_minutes <= 0:
            raise ValueError(f"slot_step_minutes must be positive, got {slot_step_minutes}")
        self._stock = stock
        self.slot_step_minutes = slot_step_minutes
        self.lead_minutes = max(0, lead_minutes)
        # Scheduling horizon in days; None means whatever the caller asks for.
        self.max_days_ahead = None if max_days_ahead is None else max(0, max_days_ahead)
        self._clock = clock

    def same_day_block_reason(
        self, store: StoreV1, cart_lines: Iterable[CartLine], now: datetime
    ) -> str | None:
        """Why today cannot be offered at all, or None when it can."""

        cutoff = store.same_day_cutoff_time
        if cutoff:
            cutoff_minute = parse_hhmm(cutoff)
            if cutoff_minute is None:
                logger.warning(
                    "Ignoring malformed same_day_cutoff_time %r of store %s", cutoff, store.id
                )
            elif now.hour * 60 + now.minute >= cutoff_minute:
                return f"Same-day orders close at {format_hhmm(cutoff_minute)}"

        lines = list(cart_lines)
        blocked = [
            ln.product.name or ln.product.id
            for ln in lines
            if not ln.product.allow_same_day_scheduling
        ]
        if blocked:
            return "Not available for same-day fulfillment: " + ", ".join(blocked)

        shortages = self._stock.shortages(lines)
        if shortages:
            return "Not enough stock today for: " + ", ".join(
                s.product_name or s.product_id for s in shortages
            )

        return None

    def _day_slots(
        self,
        store: StoreV1,
        fulfillment_type: FulfillmentTypeV1,
        day: date,
        earliest: datetime,
    ) -> list[tuple[datetime, SlotV1]]:
        business = resolve_business_window(store, day)
        if business is None:
            return []

        midnight = datetime.combine(day, datetime.min.time())
        out: list[tuple[datetime, SlotV1]] = []
        for window in fulfillment_windows(store, fulfillment_type, business):
            for minute in _grid(window, self.slot_step_minutes):
                at = midnight + timedelta(minutes=minute)
                if at > earliest:
                    out.append((at, SlotV1(date=day.isoformat(), time=format_hhmm(minute))))
        return out

    def _earliest(self, now: datetime) -> datetime:
        return (now + timedelta(minutes=self.lead_minutes)).replace(tzinfo=None)

    def get_available_slots(
        self,
        store: StoreV1,
        fulfillment_type: FulfillmentTypeV1,
        days_ahead: int = 7,
        cart_lines: Iterable[CartLine] | None = None,
        now: datetime | None = None,
    ) -> list[SlotV1]:
        """Chronological slots from today through `today + days_ahead`.

        `days_ahead` is capped at `max_days_ahead` when one is set. Overlapping delivery
        windows yield duplicate slots; see `dedupe_slots`.
        """

        if not store.allow_scheduling:
            return []

        if self.max_days_ahead is not None:
            days_ahead = min(days_ahead, self.max_days_ahead)

        now = now or self._clock()
        today = now.date()
        today_blocked = self.same_day_block_reason(store, cart_lines or [], now) is not None
        earliest = self._earliest(now)

        slots: list[tuple[datetime, SlotV1]] = []
        for offset in range(days_ahead + 1):
            if offset == 0 and today_blocked:
                continue
            day = today + timedelta(days=offset)
            slots.extend(self._day_slots(store, fulfillment_type, day, earliest))

        slots.sort(key=lambda pair: pair[0])
        return [slot for _, slot in slots]

    def can_schedule(
        self,
        store: StoreV1,
        fulfillment_type: FulfillmentTypeV1,
        scheduled_for: str | None,
        cart_lines: Iterable[CartLine] | None = None,
        now: datetime | None = None,
    ) -> ScheduleCheck:
        """Check a chosen "YYYY-MM-DDTHH:MM" against the offered slots. Empty means ASAP."""

        if not scheduled_for:
            return ScheduleCheck(ok=True)

        try:
            chosen = datetime.strptime(scheduled_for, "%Y-%m-%dT%H:%M")
        except ValueError:
            return ScheduleCheck(ok=False, reason=f"Invalid scheduled time: {scheduled_for!r}")

        if not store.allow_scheduling:
            return ScheduleCheck(ok=False, reason="This store does not accept scheduled orders")

        now = now or self._clock()
        days_ahead = (chosen.date() - now.date()).days
        if days_ahead < 0:
            return ScheduleCheck(ok=False, reason="Scheduled time has already passed")
        if self.max_days_ahead is not None and days_ahead > self.max_days_ahead:
            return ScheduleCheck(
                ok=False,
                reason=f"Orders can be scheduled at most {self.max_days_ahead} day(s) ahead",
            )

        if days_ahead == 0:
            reason = self.same_day_block_reason(store, list(cart_lines or []), now)
            if reason is not None:
                return ScheduleCheck(ok=False, reason=reason)

        wanted = SlotV1(date=chosen.date().isoformat(), time=chosen.strftime("%H:%M"))
        candidates = self._day_slots(store, fulfillment_type, chosen.date(), self._earliest(now))
        day_slots = slots_by_date((slot for _, slot in candidates), wanted.date)
        if not day_slots:
            return ScheduleCheck(
                ok=False, reason=f"No {fulfillment_type.value} slots available on {wanted.date}"
            )
        if not any(s.time == wanted.time for s in day_slots):
            return ScheduleCheck(
                ok=False, reason=f"{wanted.time} is not an available time on {wanted.date}"
            )
        return ScheduleCheck(ok=True)


def is_store_open(store: StoreV1, now: datetime) -> bool:
    window = resolve_business_window(store, now.date())
    if window is None:
        return False
    minute = now.hour * 60 + now.minute
    return window[0] <= minute <= window[1]


def slots_by_date(slots: Iterable[SlotV1], day: str) -> list[SlotV1]:
    return [s for s in slots if s.date == day]


def next_available_slot(slots: Iterable[SlotV1]) -> SlotV1 | None:
    return next(iter(slots), None)


def dedupe_slots(slots: Iterable[SlotV1]) -> list[SlotV1]:
    seen: set[tuple[str, str]] = set()
    out: list[SlotV1] = []
    for slot in slots:
        key = (slot.date, slot.time)
        if key not in seen:
            seen.add(key)
            out.append(slot)
    return out

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_int(key: str, default: int, *, minimum: int) -> int:
    raw = os.getenv(key, str(default)).strip()
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime configuration for the checkout service.

    Env vars:
    - STOREFRONT_TIMEZONE (default: America/Sao_Paulo), the store-local clock
    - STOREFRONT_SLOT_STEP_MINUTES (default: 30)
    - STOREFRONT_LEAD_MINUTES (default: 0)
    - STOREFRONT_DAYS_AHEAD (default: 7)
    - STOREFRONT_LOG_LEVEL (default: INFO)
    """

    timezone: str
    slot_step_minutes: int
    lead_minutes: int
    days_ahead: int
    log_level: str

    @classmethod
    def from_env(cls) -> Settings:
        timezone = os.getenv("STOREFRONT_TIMEZONE", "America/Sao_Paulo").strip()
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown STOREFRONT_TIMEZONE={timezone!r}") from e

        log_level = os.getenv("STOREFRONT_LOG_LEVEL", "INFO").strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"Unknown STOREFRONT_LOG_LEVEL={log_level!r}")

        return cls(
            timezone=timezone,
            slot_step_minutes=_get_int("STOREFRONT_SLOT_STEP_MINUTES", 30, minimum=1),
            lead_minutes=_get_int("STOREFRONT_LEAD_MINUTES", 0, minimum=0),
            days_ahead=_get_int("STOREFRONT_DAYS_AHEAD", 7, minimum=0),
            log_level=log_level,
        )

    def local_now(self) -> datetime:
        """Store-local wall-clock time, naive."""

        return datetime.now(ZoneInfo(self.timezone)).replace(tzinfo=None)


def get_settings() -> Settings:
    return Settings.from_env()

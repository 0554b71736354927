# backend/booking_engine/services/slots/config.py
"""
Scheduling configuration and time-string helpers.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo

from ...config import settings

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class SchedulingConfig:
    """
    Configuration for the scheduling engine.

    Attributes:
        timezone: Salon-local IANA zone; "now" is always read in this zone
        deposit_percent: Deposit as a percentage of the service price
        require_deposit: Whether new appointments carry a deposit requirement
        lock_timeout_seconds: How long a reservation waits for its
            (provider, date) lock before failing with ReservationTimeout
        lock_ttl_seconds: Upper bound a held Redis lock survives a crashed worker
        min_advance_minutes: Extra notice; slots starting before
            now + min_advance_minutes count as past
        horizon_days: How many days ahead slots may be listed
        cache_ttl_seconds: Redis TTL for cached candidate grids
    """
    timezone: str = "Europe/Madrid"
    deposit_percent: float = 50.0
    require_deposit: bool = True
    lock_timeout_seconds: float = 5.0
    lock_ttl_seconds: float = 30.0
    min_advance_minutes: int = 0
    horizon_days: int = 60
    cache_ttl_seconds: int = 86400

    def __post_init__(self):
        """Validate configuration."""
        if not 0 <= self.deposit_percent <= 100:
            raise ValueError(f"deposit_percent must be within 0..100, got {self.deposit_percent}")
        if self.lock_timeout_seconds <= 0:
            raise ValueError("lock_timeout_seconds must be positive")

    def local_now(self) -> datetime:
        """Current salon-local wall-clock time (naive)."""
        return datetime.now(ZoneInfo(self.timezone)).replace(tzinfo=None, second=0, microsecond=0)


@lru_cache
def get_scheduling_config() -> SchedulingConfig:
    """Scheduling configuration built from settings (singleton)."""
    return SchedulingConfig(
        timezone=settings.salon_timezone,
        deposit_percent=settings.deposit_percent,
        require_deposit=settings.require_deposit,
        lock_timeout_seconds=settings.reservation_lock_timeout,
        lock_ttl_seconds=settings.reservation_lock_ttl,
        min_advance_minutes=settings.min_advance_minutes,
        horizon_days=settings.horizon_days,
        cache_ttl_seconds=settings.slot_cache_ttl_seconds,
    )


# ── Time helpers ─────────────────────────────────────────────────────────


def is_valid_time_str(value: str) -> bool:
    return bool(value) and bool(_TIME_RE.match(value))


def time_str_to_minutes(value: str) -> int:
    """"HH:MM" → minutes since midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time_str(total: int) -> str:
    """Minutes since midnight → "HH:MM"."""
    return f"{total // 60:02d}:{total % 60:02d}"


def parse_date(value: str) -> date:
    """Strict "YYYY-MM-DD" (zero-padded) → date; anything else is a ValueError."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValueError(f"Invalid date: {value!r}")
    return date.fromisoformat(value)


def slot_start(target_date: date | str, time_str: str) -> datetime:
    """Naive salon-local datetime at which a slot starts."""
    if isinstance(target_date, str):
        target_date = parse_date(target_date)
    return datetime.combine(target_date, datetime.min.time()) + timedelta(
        minutes=time_str_to_minutes(time_str)
    )


def has_started(target_date: date | str, time_str: str, now: datetime) -> bool:
    """
    Single boundary rule used everywhere: a slot whose start is at or before
    `now` has started (a slot at the current minute counts as past).
    """
    return slot_start(target_date, time_str) <= now


def format_timestamp(dt: datetime) -> str:
    """Storage format for timestamps ("YYYY-MM-DD HH:MM:SS")."""
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def within_horizon(target_date: date, now: datetime, horizon_days: int) -> bool:
    """Whether target_date is at most horizon_days after today."""
    return target_date <= now.date() + timedelta(days=horizon_days)

# backend/booking_engine/services/slots/__init__.py
"""
Slots calculation module.

Generator: availability rules → candidate start times (cached in Redis Sorted Sets)
Resolver: candidates → past / booked / blocked / available (calculated on-the-fly)
"""

from .config import SchedulingConfig, get_scheduling_config
from .generator import generate_candidate_slots, get_candidate_slots, select_applicable_rules
from .redis_store import SlotsRedisStore
from .invalidator import invalidate_provider_cache
from .availability import (
    SlotResolution,
    calculate_slot_availability,
    check_slot,
    intervals_overlap,
    resolve_slots,
)

__all__ = [
    "SchedulingConfig",
    "get_scheduling_config",
    "generate_candidate_slots",
    "get_candidate_slots",
    "select_applicable_rules",
    "SlotsRedisStore",
    "invalidate_provider_cache",
    "SlotResolution",
    "calculate_slot_availability",
    "check_slot",
    "intervals_overlap",
    "resolve_slots",
]

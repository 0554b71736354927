# backend/booking_engine/services/slots/generator.py
"""
Slot Generator: availability rules → candidate start times.

For a provider, service and date:
  1. Pick the rules that match the date (weekday, optional
     [start_date, end_date] window).
  2. Service-scoped rules win over the provider's generic rules when
     at least one of them matches that day; only then are rules with
     is_available = 0 dropped, so a closed service-scoped rule closes
     the service for the day.
  3. Step every window from start_time to end_time - step inclusive.
  4. Merge windows into one sorted, deduplicated list of "HH:MM".

Contains:
✓ availability_rules of the provider

Does NOT contain:
✗ Appointments (checked by the resolver)
✗ Blocked intervals (checked by the resolver)
✗ "now" (checked by the resolver)
"""

from datetime import date
from typing import Iterable, Optional

from redis import Redis
from sqlalchemy.orm import Session

from .config import SchedulingConfig, get_scheduling_config, time_str_to_minutes, minutes_to_time_str
from .redis_store import SlotsRedisStore


def generate_candidate_slots(rules: Iterable, step: int) -> list[str]:
    """
    Expand rule windows into candidate start times.

    Each rule only needs `start_time` and `end_time` ("HH:MM").
    A window shorter than one step yields nothing.
    """
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")

    minutes: set[int] = set()
    for rule in rules:
        start_min = time_str_to_minutes(rule.start_time)
        end_min = time_str_to_minutes(rule.end_time)

        t = start_min
        while t + step <= end_min:
            minutes.add(t)
            t += step

    return [minutes_to_time_str(m) for m in sorted(minutes)]


def rule_matches_day(rule, target_date: date) -> bool:
    """Weekday and optional validity window, regardless of availability."""
    if rule.day_of_week != target_date.weekday():
        return False

    date_str = target_date.isoformat()
    if rule.start_date and date_str < rule.start_date:
        return False
    if rule.end_date and date_str > rule.end_date:
        return False
    return True


def rule_applies_on(rule, target_date: date) -> bool:
    """Weekday, availability flag and optional validity window."""
    return bool(rule.is_available) and rule_matches_day(rule, target_date)


def select_applicable_rules(rules: Iterable, service_id: int, target_date: date) -> list:
    """
    Rules that drive slot generation for (service, date).

    A rule scoped to this service overrides the provider's generic rules
    for the same day, including an unavailable one (the service is closed
    that day). Rules scoped to other services never apply.
    """
    day_rules = [r for r in rules if rule_matches_day(r, target_date)]

    chosen = [r for r in day_rules if r.service_id == service_id]
    if not chosen:
        chosen = [r for r in day_rules if r.service_id is None]

    return [r for r in chosen if r.is_available]


def get_candidate_slots(
    db: Session,
    provider_id: int,
    service_id: int,
    target_date: date,
    step: int,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> list[str]:
    """
    Candidate start times for a provider/service/date.

    Uses the Redis cache when available; the write path never relies on the
    cache (reservations call with redis=None).
    """
    config = config or get_scheduling_config()

    if redis is not None:
        store = SlotsRedisStore(redis, config)
        cached = store.get_candidates(provider_id, service_id, step, target_date)
        if cached is not None:
            return cached

        slots = _compute(db, provider_id, service_id, target_date, step)
        store.store_candidates(provider_id, service_id, step, target_date, slots)
        return slots

    return _compute(db, provider_id, service_id, target_date, step)


def _compute(
    db: Session,
    provider_id: int,
    service_id: int,
    target_date: date,
    step: int,
) -> list[str]:
    rules = _get_provider_rules(db, provider_id, target_date)
    applicable = select_applicable_rules(rules, service_id, target_date)
    return generate_candidate_slots(applicable, step)


# ── Database helpers ─────────────────────────────────────────────────────


def _get_provider_rules(db: Session, provider_id: int, target_date: date) -> list:
    """Rules of the provider for the weekday of target_date."""
    from ...models import AvailabilityRules

    return (
        db.query(AvailabilityRules)
        .filter(
            AvailabilityRules.provider_id == provider_id,
            AvailabilityRules.day_of_week == target_date.weekday(),
        )
        .all()
    )

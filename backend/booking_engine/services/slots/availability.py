# backend/booking_engine/services/slots/availability.py
"""
Availability Resolver.

Classifies candidate slots of a provider/service/date as
past / booked / blocked / available.

Takes into account:
- Candidate start times (Slot Generator)
- "now" in salon-local time, passed in explicitly
- Non-cancelled appointments of the provider on that date
- Blocked intervals of the provider that apply to the service

Overlap test is half-open: [a_start, a_end) and [b_start, b_end) overlap
when a_start < b_end and b_start < a_end.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from redis import Redis
from sqlalchemy.orm import Session

from .config import (
    SchedulingConfig,
    get_scheduling_config,
    slot_start,
    time_str_to_minutes,
    within_horizon,
)
from .generator import get_candidate_slots
from ..errors import ValidationError

PAST = "past"
BOOKED = "booked"
BLOCKED = "blocked"
AVAILABLE = "available"


@dataclass(frozen=True)
class SlotResolution:
    time: str
    is_past: bool
    is_booked: bool
    is_blocked: bool

    @property
    def status(self) -> str:
        if self.is_past:
            return PAST
        if self.is_booked:
            return BOOKED
        if self.is_blocked:
            return BLOCKED
        return AVAILABLE

    @property
    def available(self) -> bool:
        return not (self.is_past or self.is_booked or self.is_blocked)

    @property
    def reason(self) -> Optional[str]:
        return None if self.available else self.status


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and b_start < a_end


def resolve_slots(
    candidates: Iterable[str],
    duration: int,
    target_date: date,
    appointments: Iterable,
    blocks: Iterable,
    service_id: int,
    now: datetime,
    min_advance_minutes: int = 0,
    exclude_appointment_id: Optional[int] = None,
) -> list[SlotResolution]:
    """
    Annotate every candidate with its status.

    Appointments need `id`, `time`, `duration_minutes`, `status`;
    blocks need `service_id`, `start_time`, `end_time`.
    A block without end_time lasts exactly one slot of `duration`.
    """
    horizon = now + timedelta(minutes=min_advance_minutes)

    busy: list[tuple[int, int]] = []
    for appt in appointments:
        if appt.status == "cancelled":
            continue
        if exclude_appointment_id is not None and appt.id == exclude_appointment_id:
            continue
        start = time_str_to_minutes(appt.time)
        busy.append((start, start + appt.duration_minutes))

    blocked: list[tuple[int, int]] = []
    for block in blocks:
        if block.service_id is not None and block.service_id != service_id:
            continue
        start = time_str_to_minutes(block.start_time)
        end = time_str_to_minutes(block.end_time) if block.end_time else start + duration
        blocked.append((start, end))

    result = []
    for time_str in candidates:
        start = time_str_to_minutes(time_str)
        end = start + duration
        result.append(SlotResolution(
            time=time_str,
            is_past=slot_start(target_date, time_str) <= horizon,
            is_booked=any(intervals_overlap(start, end, b_start, b_end) for b_start, b_end in busy),
            is_blocked=any(intervals_overlap(start, end, b_start, b_end) for b_start, b_end in blocked),
        ))
    return result


def slot_duration(service, consultation: bool = False) -> int:
    """Slot length (and step) for a booking of `service`."""
    if consultation:
        if not service.offers_consultation or not service.consultation_duration_min:
            raise ValidationError("This service does not offer a free consultation")
        return service.consultation_duration_min
    return service.duration_min


def check_slot(
    db: Session,
    provider_id: int,
    service,
    target_date: date,
    time_str: str,
    now: datetime,
    consultation: bool = False,
    config: SchedulingConfig | None = None,
    exclude_appointment_id: Optional[int] = None,
) -> Optional[SlotResolution]:
    """
    Classify one requested time against live data (write path, no cache).

    Returns None when the time is not a candidate of the provider's
    availability for that date.
    """
    config = config or get_scheduling_config()
    duration = slot_duration(service, consultation)

    candidates = get_candidate_slots(db, provider_id, service.id, target_date, duration, redis=None, config=config)
    if time_str not in candidates:
        return None

    resolved = resolve_slots(
        [time_str],
        duration,
        target_date,
        get_provider_appointments(db, provider_id, target_date),
        get_provider_blocks(db, provider_id, target_date),
        service.id,
        now,
        config.min_advance_minutes,
        exclude_appointment_id,
    )
    return resolved[0]


def calculate_slot_availability(
    db: Session,
    provider_id: int,
    service_id: int,
    target_date: date,
    now: datetime,
    consultation: bool = False,
    config: SchedulingConfig | None = None,
    redis: Optional[Redis] = None,
) -> dict:
    """
    Candidate slots with availability for the read path.

    Returns:
        Dict for SlotsDayResponse.
    """
    config = config or get_scheduling_config()

    service = _get_service(db, service_id)
    if not service:
        raise ValidationError("Service not found or inactive")
    provider = _get_provider(db, provider_id)
    if not provider:
        raise ValidationError("Provider not found or inactive")

    duration = slot_duration(service, consultation)

    # Step 1: candidates (Slot Generator, may come from cache)
    candidates = []
    if within_horizon(target_date, now, config.horizon_days):
        candidates = get_candidate_slots(db, provider_id, service_id, target_date, duration, redis, config)

    # Step 2: classify (data fetched once per call)
    slots = []
    if candidates:
        resolved = resolve_slots(
            candidates,
            duration,
            target_date,
            get_provider_appointments(db, provider_id, target_date),
            get_provider_blocks(db, provider_id, target_date),
            service_id,
            now,
            config.min_advance_minutes,
        )
        slots = [
            {"time": r.time, "available": r.available, "reason": r.reason}
            for r in resolved
        ]

    return {
        "provider_id": provider_id,
        "service_id": service_id,
        "date": target_date.isoformat(),
        "duration_min": duration,
        "consultation": consultation,
        "slots": slots,
    }


# ── Database helpers ─────────────────────────────────────────────────────


def get_provider_appointments(db: Session, provider_id: int, target_date: date) -> list:
    """Non-cancelled appointments of the provider on date."""
    from ...models import Appointments

    return (
        db.query(Appointments)
        .filter(
            Appointments.provider_id == provider_id,
            Appointments.date == target_date.isoformat(),
            Appointments.status != "cancelled",
        )
        .all()
    )


def get_provider_blocks(db: Session, provider_id: int, target_date: date) -> list:
    """Blocked intervals of the provider on date."""
    from ...models import BlockedIntervals

    return (
        db.query(BlockedIntervals)
        .filter(
            BlockedIntervals.provider_id == provider_id,
            BlockedIntervals.date == target_date.isoformat(),
        )
        .all()
    )


def _get_service(db: Session, service_id: int):
    from ...models import Services
    return db.query(Services).filter(
        Services.id == service_id,
        Services.is_active == 1
    ).first()


def _get_provider(db: Session, provider_id: int):
    from ...models import Providers
    return db.query(Providers).filter(
        Providers.id == provider_id,
        Providers.is_active == 1
    ).first()

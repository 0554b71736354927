"""
Shared guards for appointment mutations.

Every mutation of an existing appointment runs inside
`appointment_unit_of_work`: the (provider, date) lock is held, the row is
re-read, and the caller checks ownership / state before touching it.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from redis import Redis
from sqlalchemy.orm import Session

from ..models import Appointments, Providers
from ..schemas.actors import ActorContext
from .errors import Forbidden, IllegalTransition, NotFound, ValidationError
from .locks import provider_day_lock
from .slots.config import SchedulingConfig, has_started

TERMINAL_STATUSES = ("completed", "cancelled", "no-show")
ACTIVE_STATUSES = ("pending", "confirmed")

MAX_RELOCK_ATTEMPTS = 3


def get_appointment(db: Session, appointment_id: int) -> Appointments:
    obj = db.get(Appointments, appointment_id, populate_existing=True)
    if not obj:
        raise NotFound("Appointment not found")
    return obj


def ensure_actor_owns(appointment: Appointments, actor: ActorContext) -> None:
    """
    Only an administrator or the provider assigned to the appointment may
    drive it. The appointment's provider is the source of truth.
    """
    if actor.is_admin:
        return
    provider = appointment.provider
    if actor.role == "employee" and provider is not None and provider.user_id == actor.id:
        return
    raise Forbidden()


def ensure_not_terminal(appointment: Appointments, operation: str) -> None:
    if appointment.status in TERMINAL_STATUSES:
        raise IllegalTransition(
            f"Cannot {operation}: appointment is already {appointment.status}",
            rule="terminal_state",
        )


def ensure_started(appointment: Appointments, now: datetime, operation: str) -> None:
    """Completion and no-show need the start time to be at or before now."""
    if not has_started(appointment.date, appointment.time, now):
        raise IllegalTransition(
            f"Cannot {operation} an appointment that has not started yet",
            rule="future_appointment",
        )


@contextmanager
def appointment_unit_of_work(
    db: Session,
    appointment_id: int,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> Iterator[Appointments]:
    """
    Lock the appointment's (provider, date) and yield a fresh row.

    Commits when the block exits normally, rolls back on any exception.
    """
    for _ in range(MAX_RELOCK_ATTEMPTS):
        appointment = get_appointment(db, appointment_id)
        provider_id, date_str = appointment.provider_id, appointment.date
        db.rollback()

        with provider_day_lock(provider_id, date_str, redis, config):
            appointment = get_appointment(db, appointment_id)
            if appointment.date != date_str:
                # Rescheduled while waiting; lock the new date instead
                db.rollback()
                continue

            try:
                yield appointment
                db.commit()
            except Exception:
                db.rollback()
                raise
            return

    raise IllegalTransition("Appointment is being rescheduled, please retry", rule="concurrent_reschedule")


def ensure_can_manage_provider(db: Session, provider_id: int, actor: ActorContext) -> Providers:
    """Schedule data (rules, blocks) belongs to the provider or an administrator."""
    provider = db.get(Providers, provider_id)
    if not provider:
        raise ValidationError("Provider not found")
    if actor.is_admin or (actor.role == "employee" and provider.user_id == actor.id):
        return provider
    raise Forbidden()

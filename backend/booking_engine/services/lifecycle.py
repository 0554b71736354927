"""
Appointment Lifecycle Manager.

    pending ──→ confirmed ──→ completed
       │            │    └──→ no-show
       └────────────┴──────→ cancelled

completed / cancelled / no-show are terminal. Every successful transition
appends exactly one modification record; every mutation runs under the
appointment's (provider, date) lock.
"""

import logging
from datetime import date, datetime
from typing import Optional

from redis import Redis
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Appointments
from ..schemas.actors import ActorContext
from .audit import (
    record_modification,
    track_cancellation,
    track_completion,
    track_no_show,
    track_reschedule,
    track_status_change,
)
from .errors import Forbidden, IllegalTransition, SlotNoLongerAvailable, ValidationError
from .events import appointment_event_payload, emit_event
from .guards import (
    MAX_RELOCK_ATTEMPTS,
    appointment_unit_of_work,
    ensure_actor_owns,
    ensure_not_terminal,
    ensure_started,
    get_appointment,
)
from .locks import provider_days_lock
from .payment_gateway import PaymentGateway
from .payments import refund_captured_deposit
from .slots.availability import check_slot
from .slots.config import (
    SchedulingConfig,
    format_timestamp,
    get_scheduling_config,
    parse_date,
    within_horizon,
)

logger = logging.getLogger(__name__)


def change_status(
    db: Session,
    appointment_id: int,
    new_status: str,
    actor: ActorContext,
    now: datetime,
    gateway: PaymentGateway,
    reason: Optional[str] = None,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> Appointments:
    """
    Move an appointment to `new_status`.

    Raises:
        Forbidden: actor is neither an administrator nor the assigned provider
        IllegalTransition: terminal source, same status, pending target,
            completion / no-show before the start time
    """
    with appointment_unit_of_work(db, appointment_id, redis, config) as appointment:
        ensure_actor_owns(appointment, actor)
        ensure_not_terminal(appointment, f"change status to {new_status}")

        old_status = appointment.status
        if new_status == old_status:
            raise IllegalTransition(f"Appointment is already {old_status}", rule="same_status")
        if new_status == "pending":
            raise IllegalTransition("An appointment cannot go back to pending", rule="pending_target")

        stamp = format_timestamp(now)

        if new_status == "cancelled":
            refund_note = refund_captured_deposit(appointment, gateway)
            appointment.cancelled_at = stamp
            appointment.cancel_reason = reason
            change = track_cancellation(actor, old_status, reason, refund_note)

        elif new_status == "completed":
            ensure_started(appointment, now, "complete")
            appointment.completed_at = stamp
            appointment.completed_by = actor.id
            appointment.completed_by_name = actor.name
            appointment.completed_by_role = actor.role
            change = track_completion(actor, old_status)

        elif new_status == "no-show":
            ensure_started(appointment, now, "mark as no-show")
            appointment.no_show_at = stamp
            appointment.no_show_by = actor.id
            appointment.no_show_by_name = actor.name
            change = track_no_show(actor, old_status)

        elif new_status == "confirmed":
            # only reachable from pending: the other non-terminal state
            change = track_status_change(actor, old_status, new_status)

        else:
            raise ValidationError(f"Unknown status: {new_status}")

        appointment.status = new_status
        appointment.updated_at = stamp
        record_modification(db, appointment, actor, now, **change)

    logger.info(
        f"Appointment {appointment_id} status: {old_status} → {new_status} "
        f"by {actor.id} ({actor.role})"
    )

    if new_status == "cancelled":
        emit_event("appointment_cancelled", appointment_event_payload(appointment, actor))

    return appointment


def reschedule(
    db: Session,
    appointment_id: int,
    new_date: str,
    new_time: str,
    actor: ActorContext,
    now: datetime,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> Appointments:
    """
    Move an appointment to another slot of the same provider.

    Both affected (provider, date) keys are held while the new slot is
    re-validated, excluding the appointment itself. On any failure nothing
    changes.
    """
    config = config or get_scheduling_config()
    try:
        target_date = parse_date(new_date)
    except ValueError:
        raise ValidationError("Date must be in YYYY-MM-DD format")

    for _ in range(MAX_RELOCK_ATTEMPTS):
        appointment = get_appointment(db, appointment_id)
        provider_id, old_date = appointment.provider_id, appointment.date
        db.rollback()

        with provider_days_lock(provider_id, [old_date, new_date], redis, config):
            appointment = get_appointment(db, appointment_id)
            if appointment.date != old_date:
                db.rollback()
                continue

            try:
                old_time = _reschedule_locked(
                    db, appointment, target_date, new_date, new_time, actor, now, config
                )
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise SlotNoLongerAvailable() from e
            except Exception:
                db.rollback()
                raise
        break
    else:
        raise IllegalTransition(
            "Appointment is being rescheduled, please retry", rule="concurrent_reschedule"
        )

    db.refresh(appointment)

    logger.info(
        f"Appointment {appointment_id} rescheduled: {old_date} {old_time} → "
        f"{new_date} {new_time} by {actor.id}"
    )

    emit_event("appointment_rescheduled", {
        **appointment_event_payload(appointment, actor),
        "previous": {"date": old_date, "time": old_time},
    })
    return appointment


def _reschedule_locked(
    db: Session,
    appointment: Appointments,
    target_date: date,
    new_date: str,
    new_time: str,
    actor: ActorContext,
    now: datetime,
    config: SchedulingConfig,
) -> str:
    ensure_actor_owns(appointment, actor)
    ensure_not_terminal(appointment, "reschedule")

    old_date, old_time = appointment.date, appointment.time
    if (old_date, old_time) == (new_date, new_time):
        raise ValidationError("The appointment is already booked at that time")
    if not within_horizon(target_date, now, config.horizon_days):
        raise ValidationError(f"Appointments can be moved at most {config.horizon_days} days ahead")

    resolution = check_slot(
        db, appointment.provider_id, appointment.service, target_date, new_time, now,
        consultation=bool(appointment.is_consultation),
        config=config,
        exclude_appointment_id=appointment.id,
    )
    if resolution is None:
        raise ValidationError("The requested time is outside the provider's availability")
    if not resolution.available:
        logger.warning(
            f"Reschedule target unavailable ({resolution.status}): "
            f"appointment={appointment.id}, slot={new_date} {new_time}"
        )
        raise SlotNoLongerAvailable(reason=resolution.status)

    appointment.date = new_date
    appointment.time = new_time
    appointment.status = "confirmed"
    appointment.updated_at = format_timestamp(now)
    db.flush()

    record_modification(
        db, appointment, actor, now,
        **track_reschedule(actor, old_date, old_time, new_date, new_time),
    )
    return old_time


def purge_appointment(
    db: Session,
    appointment_id: int,
    actor: ActorContext,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> None:
    """Administrative delete: the appointment, its line items and its history."""
    if not actor.is_admin:
        raise Forbidden()

    with appointment_unit_of_work(db, appointment_id, redis, config) as appointment:
        db.expunge(appointment)
        db.execute(
            delete(Appointments).where(Appointments.id == appointment_id),
            execution_options={"synchronize_session": False},
        )

    logger.warning(f"Appointment {appointment_id} purged by {actor.id}")

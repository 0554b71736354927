"""
Audit Recorder.

Appends one immutable ModificationRecord per mutating operation. Records are
stored as an ordered log keyed by appointment id (`seq` starts at 1); the ORM
refuses updates and deletes of existing rows.

The track_* helpers describe a change; record_modification appends it.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import AppointmentModifications
from ..schemas.actors import ActorContext
from .slots.config import format_timestamp

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "pending": "Pending",
    "confirmed": "Confirmed",
    "completed": "Completed",
    "cancelled": "Cancelled",
    "no-show": "No-show",
}

METHOD_LABELS = {
    "cash": "Cash",
    "card_terminal": "Card Terminal",
    "online": "Online",
}


def record_modification(
    db: Session,
    appointment,
    actor: ActorContext,
    now: datetime,
    action: str,
    description: str,
    field: Optional[str] = None,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
) -> AppointmentModifications:
    """
    Append a record to the appointment's history.

    The caller owns the transaction; the record is flushed with it.
    """
    last_seq = (
        db.query(func.max(AppointmentModifications.seq))
        .filter(AppointmentModifications.appointment_id == appointment.id)
        .scalar()
    )

    record = AppointmentModifications(
        appointment_id=appointment.id,
        seq=(last_seq or 0) + 1,
        timestamp=format_timestamp(now),
        actor_id=actor.id,
        actor_name=actor.name,
        actor_role=actor.role,
        action=action,
        field=field,
        old_value=old_value,
        new_value=new_value,
        description=description,
    )
    db.add(record)
    db.flush()

    logger.debug(f"Appointment {appointment.id} modification #{record.seq}: {action}")
    return record


def list_modifications(db: Session, appointment_id: int) -> list[AppointmentModifications]:
    """Full history, oldest first."""
    return (
        db.query(AppointmentModifications)
        .filter(AppointmentModifications.appointment_id == appointment_id)
        .order_by(AppointmentModifications.seq.asc())
        .all()
    )


def recent_modifications(
    db: Session,
    appointment_id: int,
    limit: int = 10,
) -> list[AppointmentModifications]:
    """Most recent `limit` records, newest first."""
    return (
        db.query(AppointmentModifications)
        .filter(AppointmentModifications.appointment_id == appointment_id)
        .order_by(AppointmentModifications.seq.desc())
        .limit(limit)
        .all()
    )


# ── Change descriptions ──────────────────────────────────────────────────


def _role_label(actor: ActorContext) -> str:
    return {"owner": "Admin", "employee": "Employee"}.get(actor.role, "Client")


def track_creation(actor: ActorContext) -> dict:
    return {
        "action": "created",
        "description": f"Appointment created by {actor.name} ({_role_label(actor)})",
    }


def track_status_change(actor: ActorContext, old_status: str, new_status: str) -> dict:
    old_label = STATUS_LABELS.get(old_status, old_status)
    new_label = STATUS_LABELS.get(new_status, new_status)
    return {
        "action": "status_changed",
        "description": f'Status changed from "{old_label}" to "{new_label}" by {actor.name}',
        "field": "status",
        "old_value": old_status,
        "new_value": new_status,
    }


def track_no_show(actor: ActorContext, old_status: str) -> dict:
    return {
        "action": "status_changed",
        "description": f'Marked as "No-show" by {actor.name}',
        "field": "status",
        "old_value": old_status,
        "new_value": "no-show",
    }


def track_cancellation(
    actor: ActorContext,
    old_status: str,
    reason: Optional[str] = None,
    refund_note: Optional[str] = None,
) -> dict:
    desc = f"Appointment cancelled by {actor.name}"
    if reason:
        desc += f": {reason}"
    if refund_note:
        desc += f" ({refund_note})"
    return {
        "action": "cancelled",
        "description": desc,
        "field": "status",
        "old_value": old_status,
        "new_value": "cancelled",
    }


def track_completion(
    actor: ActorContext,
    old_status: str,
    amount: Optional[float] = None,
    method: Optional[str] = None,
) -> dict:
    desc = f"Appointment completed and closed by {actor.name}"
    if amount is not None and method:
        desc += f" with payment of €{amount:.2f} ({METHOD_LABELS.get(method, method)})"
    return {
        "action": "completed",
        "description": desc,
        "field": "status",
        "old_value": old_status,
        "new_value": "completed",
    }


def track_payment_received(actor: ActorContext, amount: float, method: str) -> dict:
    return {
        "action": "payment_received",
        "description": (
            f"Payment of €{amount:.2f} received "
            f"({METHOD_LABELS.get(method, method)}) by {actor.name}"
        ),
        "field": "payment_status",
        "new_value": "paid",
    }


def track_reschedule(
    actor: ActorContext,
    old_date: str,
    old_time: str,
    new_date: str,
    new_time: str,
) -> dict:
    return {
        "action": "rescheduled",
        "description": f"Rescheduled from {old_date} {old_time} to {new_date} {new_time} by {actor.name}",
        "field": "schedule",
        "old_value": f"{old_date} {old_time}",
        "new_value": f"{new_date} {new_time}",
    }


def track_line_item_added(actor: ActorContext, name: str, price: float) -> dict:
    return {
        "action": "updated",
        "description": f"Additional service added: {name} (€{price:.2f}) by {actor.name}",
        "field": "additional_services",
        "new_value": name,
    }


def track_line_item_removed(actor: ActorContext, name: str, price: float) -> dict:
    return {
        "action": "updated",
        "description": f"Additional service removed: {name} (€{price:.2f}) by {actor.name}",
        "field": "additional_services",
        "old_value": name,
    }

"""
Additional services added to an appointment during the visit.

Items are appended or removed, never edited. Each operation appends one
"updated" modification record.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from redis import Redis
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import AppointmentLineItems, Services
from ..schemas.actors import ActorContext
from .audit import record_modification, track_line_item_added, track_line_item_removed
from .errors import NotFound, ValidationError
from .guards import appointment_unit_of_work, ensure_actor_owns, ensure_not_terminal
from .slots.config import SchedulingConfig, format_timestamp

logger = logging.getLogger(__name__)


def add_line_item(
    db: Session,
    appointment_id: int,
    actor: ActorContext,
    now: datetime,
    service_id: Optional[int] = None,
    name: Optional[str] = None,
    price: Optional[float] = None,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> AppointmentLineItems:
    """
    Append an additional service.

    With service_id, name and price default to the catalog entry.
    """
    if service_id is not None:
        service = db.get(Services, service_id)
        if not service:
            raise ValidationError("Service not found")
        name = name or service.name
        price = service.price if price is None else price

    if not name or not name.strip():
        raise ValidationError("Line item name is required")
    if price is None or price < 0:
        raise ValidationError("Line item price must be zero or positive")

    with appointment_unit_of_work(db, appointment_id, redis, config) as appointment:
        ensure_actor_owns(appointment, actor)
        ensure_not_terminal(appointment, "add a service")

        last_position = (
            db.query(func.max(AppointmentLineItems.position))
            .filter(AppointmentLineItems.appointment_id == appointment.id)
            .scalar()
        )

        item = AppointmentLineItems(
            id=str(uuid.uuid4()),
            appointment_id=appointment.id,
            position=(last_position or 0) + 1,
            service_id=service_id,
            name=name.strip(),
            price=round(float(price), 2),
            added_at=format_timestamp(now),
            added_by=actor.id,
        )
        db.add(item)
        appointment.updated_at = format_timestamp(now)

        record_modification(
            db, appointment, actor, now,
            **track_line_item_added(actor, item.name, item.price),
        )

    logger.info(f"Appointment {appointment_id}: added {item.name} ({item.price:.2f} EUR)")
    return item


def remove_line_item(
    db: Session,
    appointment_id: int,
    item_id: str,
    actor: ActorContext,
    now: datetime,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> None:
    with appointment_unit_of_work(db, appointment_id, redis, config) as appointment:
        ensure_actor_owns(appointment, actor)
        ensure_not_terminal(appointment, "remove a service")

        item = (
            db.query(AppointmentLineItems)
            .filter(
                AppointmentLineItems.id == item_id,
                AppointmentLineItems.appointment_id == appointment.id,
            )
            .first()
        )
        if not item:
            raise NotFound("Line item not found")

        name, price = item.name, item.price
        db.delete(item)
        appointment.updated_at = format_timestamp(now)

        record_modification(
            db, appointment, actor, now,
            **track_line_item_removed(actor, name, price),
        )

    logger.info(f"Appointment {appointment_id}: removed {name} ({price:.2f} EUR)")

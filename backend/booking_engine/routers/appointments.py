# backend/booking_engine/routers/appointments.py
# - POST = reservation (atomic, re-validated under the (provider, date) lock)
# - PATCH = 405 (all changes go through the lifecycle endpoints)
# - DELETE = administrative purge (owner only)

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_actor, get_config, get_now
from ..models import Appointments as DBAppointments
from ..redis_client import get_redis
from ..schemas.actors import ActorContext
from ..schemas.appointments import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentReschedule,
    AppointmentStatusChange,
    AppointmentTotals,
    LineItemCreate,
    LineItemRead,
    ModificationRead,
    SettlementCreate,
)
from ..services.audit import list_modifications, recent_modifications
from ..services.guards import get_appointment
from ..services.lifecycle import change_status, purge_appointment, reschedule
from ..services.line_items import add_line_item, remove_line_item
from ..services.payment_gateway import PaymentGateway, get_payment_gateway
from ..services.payments import calculate_appointment_totals, record_settlement
from ..services.reservations import reserve_slot
from ..services.slots.config import SchedulingConfig

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("/", response_model=list[AppointmentRead])
def list_appointments(
    provider_id: Optional[int] = None,
    date: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = 100,
    db: Session = Depends(get_db),
):
    q = db.query(DBAppointments)

    if provider_id is not None:
        q = q.filter(DBAppointments.provider_id == provider_id)
    if date:
        q = q.filter(DBAppointments.date == date)
    if status_filter:
        q = q.filter(DBAppointments.status == status_filter)

    return (
        q.order_by(DBAppointments.date, DBAppointments.time)
        .limit(min(limit, 500))
        .all()
    )


@router.get("/{id}", response_model=AppointmentRead)
def get_appointment_by_id(id: int, db: Session = Depends(get_db)):
    return get_appointment(db, id)


@router.post("/", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: AppointmentCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    now: datetime = Depends(get_now),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    redis: Optional[Redis] = Depends(get_redis),
    config: SchedulingConfig = Depends(get_config),
):
    return reserve_slot(db, data, actor, now, gateway, redis, config)


@router.post("/{id}/reschedule", response_model=AppointmentRead)
def reschedule_appointment(
    id: int,
    data: AppointmentReschedule,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    now: datetime = Depends(get_now),
    redis: Optional[Redis] = Depends(get_redis),
    config: SchedulingConfig = Depends(get_config),
):
    return reschedule(db, id, data.date, data.time, actor, now, redis, config)


@router.post("/{id}/status", response_model=AppointmentRead)
def change_appointment_status(
    id: int,
    data: AppointmentStatusChange,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    now: datetime = Depends(get_now),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    redis: Optional[Redis] = Depends(get_redis),
    config: SchedulingConfig = Depends(get_config),
):
    appointment = change_status(
        db, id, data.status, actor, now, gateway,
        reason=data.reason, redis=redis, config=config,
    )
    db.refresh(appointment)
    return appointment


@router.post("/{id}/settlement", response_model=AppointmentRead)
def settle_appointment(
    id: int,
    data: SettlementCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    now: datetime = Depends(get_now),
    redis: Optional[Redis] = Depends(get_redis),
    config: SchedulingConfig = Depends(get_config),
):
    appointment = record_settlement(
        db, id, data.method, data.amount, actor, now,
        notes=data.notes, complete=data.complete, redis=redis, config=config,
    )
    db.refresh(appointment)
    return appointment


@router.get("/{id}/totals", response_model=AppointmentTotals)
def get_appointment_totals(id: int, db: Session = Depends(get_db)):
    return calculate_appointment_totals(get_appointment(db, id))


# ---------------------------------------------------------------------
# Additional services
# ---------------------------------------------------------------------

@router.post("/{id}/line-items", response_model=LineItemRead, status_code=status.HTTP_201_CREATED)
def add_appointment_line_item(
    id: int,
    data: LineItemCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    now: datetime = Depends(get_now),
    redis: Optional[Redis] = Depends(get_redis),
    config: SchedulingConfig = Depends(get_config),
):
    item = add_line_item(
        db, id, actor, now,
        service_id=data.service_id, name=data.name, price=data.price,
        redis=redis, config=config,
    )
    db.refresh(item)
    return item


@router.delete("/{id}/line-items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_appointment_line_item(
    id: int,
    item_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    now: datetime = Depends(get_now),
    redis: Optional[Redis] = Depends(get_redis),
    config: SchedulingConfig = Depends(get_config),
):
    remove_line_item(db, id, item_id, actor, now, redis, config)


# ---------------------------------------------------------------------
# History
# ---------------------------------------------------------------------

@router.get("/{id}/modifications", response_model=list[ModificationRead])
def get_appointment_modifications(
    id: int,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """Full history oldest first, or the `limit` most recent newest first."""
    get_appointment(db, id)
    if limit is not None:
        return recent_modifications(db, id, limit=max(1, min(limit, 200)))
    return list_modifications(db, id)


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def purge(
    id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    redis: Optional[Redis] = Depends(get_redis),
    config: SchedulingConfig = Depends(get_config),
):
    purge_appointment(db, id, actor, redis, config)

# backend/booking_engine/routers/blocked_intervals.py
# - PATCH = ALLOWED
# - DELETE = ALLOWED (hard)
# Writes serialise with reservations on (provider, date).

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_actor, get_config, get_now
from ..models import BlockedIntervals as DBBlockedIntervals
from ..redis_client import get_redis
from ..schemas.actors import ActorContext
from ..schemas.blocked_intervals import (
    BlockedIntervalCreate,
    BlockedIntervalUpdate,
    BlockedIntervalRead,
)
from ..services.blocks import create_block, delete_block, update_block
from ..services.slots.config import SchedulingConfig

router = APIRouter(prefix="/blocked_intervals", tags=["blocked_intervals"])


@router.get("/", response_model=list[BlockedIntervalRead])
def list_blocked_intervals(
    provider_id: Optional[int] = None,
    date: Optional[str] = None,
    db: Session = Depends(get_db),
):
    q = db.query(DBBlockedIntervals)
    if provider_id is not None:
        q = q.filter(DBBlockedIntervals.provider_id == provider_id)
    if date:
        q = q.filter(DBBlockedIntervals.date == date)
    return q.order_by(DBBlockedIntervals.date, DBBlockedIntervals.start_time).all()


@router.get("/{id}", response_model=BlockedIntervalRead)
def get_blocked_interval(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBBlockedIntervals, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("/", response_model=BlockedIntervalRead, status_code=status.HTTP_201_CREATED)
def create_blocked_interval(
    data: BlockedIntervalCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    now: datetime = Depends(get_now),
    redis: Optional[Redis] = Depends(get_redis),
    config: SchedulingConfig = Depends(get_config),
):
    return create_block(db, actor, now, redis=redis, config=config, **data.model_dump())


@router.patch("/{id}", response_model=BlockedIntervalRead)
def update_blocked_interval(
    id: int,
    data: BlockedIntervalUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    now: datetime = Depends(get_now),
    redis: Optional[Redis] = Depends(get_redis),
    config: SchedulingConfig = Depends(get_config),
):
    return update_block(db, id, actor, now, data.model_dump(exclude_unset=True), redis, config)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_blocked_interval(
    id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    redis: Optional[Redis] = Depends(get_redis),
    config: SchedulingConfig = Depends(get_config),
):
    delete_block(db, id, actor, redis, config)

# backend/booking_engine/routers/availability_rules.py
# - PUT = upsert (insert without id, update with id)
# - DELETE = ALLOWED (hard), drops the provider's cached slot grids

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_actor, get_now
from ..models import AvailabilityRules as DBAvailabilityRules
from ..redis_client import get_redis
from ..schemas.actors import ActorContext
from ..schemas.availability_rules import (
    AvailabilityRuleUpsert,
    AvailabilityRuleRead,
)
from ..services.availability_rules import delete_rule, upsert_rule

router = APIRouter(prefix="/availability_rules", tags=["availability_rules"])


@router.get("/", response_model=list[AvailabilityRuleRead])
def list_availability_rules(
    provider_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    q = db.query(DBAvailabilityRules)
    if provider_id is not None:
        q = q.filter(DBAvailabilityRules.provider_id == provider_id)
    return q.order_by(
        DBAvailabilityRules.provider_id,
        DBAvailabilityRules.day_of_week,
        DBAvailabilityRules.start_time,
    ).all()


@router.get("/{id}", response_model=AvailabilityRuleRead)
def get_availability_rule(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBAvailabilityRules, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.put("/", response_model=AvailabilityRuleRead)
def upsert_availability_rule(
    data: AvailabilityRuleUpsert,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    now: datetime = Depends(get_now),
    redis: Optional[Redis] = Depends(get_redis),
):
    return upsert_rule(db, data.model_dump(), actor, now, redis)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_availability_rule(
    id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    redis: Optional[Redis] = Depends(get_redis),
):
    delete_rule(db, id, actor, redis)

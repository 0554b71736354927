# backend/booking_engine/routers/slots.py
"""
Slots API endpoints.

GET /slots/day - candidate slots of a provider/service/date with status
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_config, get_now
from ..redis_client import get_redis
from ..schemas.slots import SlotsDayResponse
from ..services.slots import SchedulingConfig, calculate_slot_availability


router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/day", response_model=SlotsDayResponse)
def get_slots_day(
    provider_id: int,
    service_id: int,
    target_date: date = Query(..., alias="date"),
    consultation: bool = False,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    config: SchedulingConfig = Depends(get_config),
    redis: Optional[Redis] = Depends(get_redis),
):
    """Candidate slots for a provider and service on a day, with availability."""
    result = calculate_slot_availability(
        db=db,
        provider_id=provider_id,
        service_id=service_id,
        target_date=target_date,
        now=now,
        consultation=consultation,
        config=config,
        redis=redis,
    )

    return SlotsDayResponse(**result)

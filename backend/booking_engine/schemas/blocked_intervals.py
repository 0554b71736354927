# backend/booking_engine/schemas/blocked_intervals.py

from typing import Optional
from pydantic import BaseModel, Field


class BlockedIntervalCreate(BaseModel):
    provider_id: int
    service_id: Optional[int] = None
    date: str = Field(description="YYYY-MM-DD")
    start_time: str = Field(description="HH:MM")
    end_time: Optional[str] = Field(None, description="HH:MM; absent = one slot")
    reason: Optional[str] = None

    model_config = {"from_attributes": True}


class BlockedIntervalUpdate(BaseModel):
    service_id: Optional[int] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None

    model_config = {"from_attributes": True}


class BlockedIntervalRead(BaseModel):
    id: int
    provider_id: int
    service_id: Optional[int] = None
    date: str
    start_time: str
    end_time: Optional[str] = None
    reason: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None

    model_config = {"from_attributes": True}

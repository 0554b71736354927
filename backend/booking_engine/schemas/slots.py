# backend/booking_engine/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field


class SlotInfo(BaseModel):
    """Information about a single candidate slot."""
    time: str  # "HH:MM"
    available: bool
    reason: Optional[Literal["past", "booked", "blocked"]] = None

    model_config = {"from_attributes": True}


class SlotsDayResponse(BaseModel):
    """Candidate slots of one provider/service/date with their status."""
    provider_id: int
    service_id: int
    date: str
    duration_min: int = Field(description="Slot length and grid step in minutes")
    consultation: bool = False
    slots: list[SlotInfo]

    model_config = {"from_attributes": True}

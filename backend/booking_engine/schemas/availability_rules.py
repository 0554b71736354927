# backend/booking_engine/schemas/availability_rules.py

from typing import Optional
from pydantic import BaseModel, Field


class AvailabilityRuleUpsert(BaseModel):
    """Insert when id is absent, update the rule with that id otherwise."""
    id: Optional[int] = None
    provider_id: int
    service_id: Optional[int] = None
    day_of_week: int = Field(ge=0, le=6, description="0 = Monday, 6 = Sunday")
    start_time: str = Field(description="HH:MM")
    end_time: str = Field(description="HH:MM")
    is_available: bool = True
    start_date: Optional[str] = Field(None, description="YYYY-MM-DD, inclusive")
    end_date: Optional[str] = Field(None, description="YYYY-MM-DD, inclusive")

    model_config = {"from_attributes": True}


class AvailabilityRuleRead(BaseModel):
    id: int
    provider_id: int
    service_id: Optional[int] = None
    day_of_week: int
    start_time: str
    end_time: str
    is_available: bool
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = {"from_attributes": True}

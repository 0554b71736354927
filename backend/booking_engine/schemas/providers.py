# backend/booking_engine/schemas/providers.py

from typing import Literal, Optional
from pydantic import BaseModel, Field

EmploymentType = Literal["salaried", "independent"]


class ProviderCreate(BaseModel):
    user_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    employment_type: EmploymentType = "salaried"

    model_config = {"from_attributes": True}


class ProviderUpdate(BaseModel):
    is_active: Optional[bool] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    employment_type: Optional[EmploymentType] = None

    model_config = {"from_attributes": True}


class ProviderRead(BaseModel):
    id: int
    user_id: str
    display_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    employment_type: str
    is_active: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = {"from_attributes": True}


class ProviderServiceCreate(BaseModel):
    service_id: int
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class ProviderServiceRead(BaseModel):
    provider_id: int
    service_id: int
    is_active: bool
    notes: Optional[str] = None

    model_config = {"from_attributes": True}

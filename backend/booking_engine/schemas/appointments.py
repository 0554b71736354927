# backend/booking_engine/schemas/appointments.py

import re
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..services.slots.config import parse_date


def _validate_date(v: str) -> str:
    try:
        parse_date(v)
    except ValueError:
        raise ValueError("Date must be in YYYY-MM-DD format")
    return v


def _validate_time(v: str) -> str:
    if not re.match(r"^([01]\d|2[0-3]):[0-5]\d$", v):
        raise ValueError("Time must be in HH:MM format")
    return v


class AppointmentCreate(BaseModel):
    """Request body for reserving a slot."""
    provider_id: int
    service_id: int
    date: str = Field(description="Date in YYYY-MM-DD format")
    time: str = Field(description="Time in HH:MM format")
    client_name: str = Field(min_length=1, description="Client name")
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    notes: Optional[str] = None
    consultation: bool = False
    payment_ref: Optional[str] = Field(None, description="Authorized deposit payment reference")

    @field_validator("client_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Client name is required")
        return v

    @field_validator("client_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip().lower()
        if not re.match(r"^[^\s@]+@[^\s@]+\.[^\s@]+$", v):
            raise ValueError("Invalid email address")
        return v

    @field_validator("client_phone")
    @classmethod
    def normalize_phone(cls, v: Optional[str]) -> Optional[str]:
        """Normalize phone to E.164-like format."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if v.startswith("+"):
            digits = re.sub(r"\D", "", v[1:])
            prefix = "+"
        else:
            digits = re.sub(r"\D", "", v)
            prefix = ""
        if len(digits) < 6:
            raise ValueError("Invalid phone number")
        return prefix + digits

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return _validate_date(v)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _validate_time(v)


class AppointmentReschedule(BaseModel):
    date: str = Field(description="New date in YYYY-MM-DD format")
    time: str = Field(description="New time in HH:MM format")

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return _validate_date(v)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _validate_time(v)


class AppointmentStatusChange(BaseModel):
    status: Literal["pending", "confirmed", "completed", "cancelled", "no-show"]
    reason: Optional[str] = None


class SettlementCreate(BaseModel):
    method: Literal["cash", "card_terminal", "online"]
    amount: float = Field(ge=0)
    notes: Optional[str] = None
    complete: bool = False


class LineItemCreate(BaseModel):
    service_id: Optional[int] = None
    name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)


class LineItemRead(BaseModel):
    id: str
    position: int
    service_id: Optional[int] = None
    name: str
    price: float
    added_at: str
    added_by: Optional[str] = None

    model_config = {"from_attributes": True}


class ModificationRead(BaseModel):
    id: int
    seq: int
    timestamp: str
    actor_id: str
    actor_name: str
    actor_role: str
    action: str
    field: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    description: str

    model_config = {"from_attributes": True}


class AppointmentRead(BaseModel):
    id: int

    provider_id: int
    service_id: int

    client_name: str
    client_email: Optional[str] = None
    client_phone: Optional[str] = None

    date: str
    time: str
    duration_minutes: int
    is_consultation: bool

    status: str
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None

    requires_deposit: bool
    deposit_amount: float
    deposit_paid: bool
    payment_intent_id: Optional[str] = None
    payment_status: str
    payment_discrepancy: Optional[str] = None

    final_payment_amount: Optional[float] = None
    final_payment_method: Optional[str] = None
    final_payment_received_at: Optional[str] = None
    final_payment_received_by_name: Optional[str] = None
    payment_notes: Optional[str] = None

    created_by_user_id: Optional[str] = None
    created_by_name: Optional[str] = None
    created_by_role: Optional[str] = None
    completed_by_name: Optional[str] = None
    no_show_by_name: Optional[str] = None

    created_at: str
    updated_at: str
    cancelled_at: Optional[str] = None
    completed_at: Optional[str] = None
    no_show_at: Optional[str] = None

    line_items: list[LineItemRead] = []

    model_config = {"from_attributes": True}


class AppointmentTotals(BaseModel):
    appointment_id: int
    base_price: float
    extras_total: float
    total_price: float
    deposit_captured: float
    outstanding: float
    is_fully_paid: bool
    payment_status: str
    collection_rule: str
    expected_house_collection: float

# backend/booking_engine/schemas/audit.py

from typing import Optional
from pydantic import BaseModel


class AuditEntryRead(BaseModel):
    id: int
    appointment_id: int
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

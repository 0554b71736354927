# backend/booking_engine/schemas/actors.py

from typing import Literal
from pydantic import BaseModel, Field

ActorRole = Literal["owner", "employee", "client"]


class ActorContext(BaseModel):
    """Who is performing a mutating call, resolved once at the boundary."""
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    role: ActorRole

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == "owner"

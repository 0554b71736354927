# backend/booking_engine/deps.py
"""
Request-scoped dependencies.

The identity context comes from the upstream gateway as headers:
    X-Actor-Id, X-Actor-Name, X-Actor-Role (owner | employee | client)
"""

from datetime import datetime
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from pydantic import ValidationError as PydanticValidationError

from .schemas.actors import ActorContext
from .services.errors import Forbidden
from .services.slots.config import SchedulingConfig, get_scheduling_config


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_name: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> ActorContext:
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor context",
        )
    try:
        return ActorContext(id=x_actor_id, name=x_actor_name or x_actor_id, role=x_actor_role)
    except PydanticValidationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid actor context",
        ) from None


def get_config() -> SchedulingConfig:
    return get_scheduling_config()


def get_now() -> datetime:
    """Salon-local "now"; overridden in tests."""
    return get_scheduling_config().local_now()


def require_owner(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    """Catalog administration is reserved to the salon owner."""
    if not actor.is_admin:
        raise Forbidden()
    return actor

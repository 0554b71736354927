"""
Availability Rule Store operations.

Any write drops the provider's cached candidate grids.
"""

import logging
from datetime import datetime
from typing import Optional

from redis import Redis
from sqlalchemy.orm import Session

from ..models import AvailabilityRules, Services
from ..schemas.actors import ActorContext
from .errors import NotFound, ValidationError
from .guards import ensure_can_manage_provider
from .slots.config import format_timestamp, is_valid_time_str, parse_date, time_str_to_minutes
from .slots.invalidator import invalidate_provider_cache

logger = logging.getLogger(__name__)


def validate_rule(db: Session, data: dict) -> None:
    if not 0 <= data["day_of_week"] <= 6:
        raise ValidationError("day_of_week must be between 0 (Monday) and 6 (Sunday)")

    start, end = data["start_time"], data["end_time"]
    if not is_valid_time_str(start) or not is_valid_time_str(end):
        raise ValidationError("start_time and end_time must be in HH:MM format")
    if time_str_to_minutes(end) <= time_str_to_minutes(start):
        raise ValidationError("end_time must be after start_time")

    for key in ("start_date", "end_date"):
        if data.get(key):
            try:
                parse_date(data[key])
            except ValueError:
                raise ValidationError(f"{key} must be in YYYY-MM-DD format")
    if data.get("start_date") and data.get("end_date") and data["end_date"] < data["start_date"]:
        raise ValidationError("end_date must not be before start_date")

    if data.get("service_id") is not None and not db.get(Services, data["service_id"]):
        raise ValidationError("Service not found")


def upsert_rule(
    db: Session,
    data: dict,
    actor: ActorContext,
    now: datetime,
    redis: Optional[Redis] = None,
) -> AvailabilityRules:
    """Insert a rule, or update the rule with data["id"] when given."""
    ensure_can_manage_provider(db, data["provider_id"], actor)
    validate_rule(db, data)

    fields = {k: v for k, v in data.items() if k != "id"}
    fields["is_available"] = 1 if fields.get("is_available", True) else 0
    stamp = format_timestamp(now)

    rule_id = data.get("id")
    if rule_id is None:
        rule = AvailabilityRules(**fields, created_at=stamp, updated_at=stamp)
        db.add(rule)
        old_provider_id = None
    else:
        rule = db.get(AvailabilityRules, rule_id)
        if not rule:
            raise NotFound("Availability rule not found")
        old_provider_id = rule.provider_id
        if old_provider_id != fields["provider_id"]:
            ensure_can_manage_provider(db, old_provider_id, actor)
        for field, value in fields.items():
            setattr(rule, field, value)
        rule.updated_at = stamp

    db.commit()
    db.refresh(rule)

    invalidate_provider_cache(redis, rule.provider_id)
    if old_provider_id is not None and old_provider_id != rule.provider_id:
        invalidate_provider_cache(redis, old_provider_id)

    logger.info(
        f"Availability rule {'created' if rule_id is None else 'updated'}: id={rule.id}, "
        f"provider={rule.provider_id}, day={rule.day_of_week}, "
        f"{rule.start_time}-{rule.end_time}"
    )
    return rule


def delete_rule(
    db: Session,
    rule_id: int,
    actor: ActorContext,
    redis: Optional[Redis] = None,
) -> None:
    rule = db.get(AvailabilityRules, rule_id)
    if not rule:
        raise NotFound("Availability rule not found")
    ensure_can_manage_provider(db, rule.provider_id, actor)

    provider_id = rule.provider_id
    db.delete(rule)
    db.commit()

    invalidate_provider_cache(redis, provider_id)
    logger.info(f"Availability rule deleted: id={rule_id}, provider={provider_id}")

"""
Blocked Interval Store operations.

Block writes take the same (provider, date) lock as reservations, so a block
and a reservation for that key never interleave. Existing appointments under
a new block are left alone; they are handled through the lifecycle.
"""

import logging
from datetime import datetime
from typing import Optional

from redis import Redis
from sqlalchemy.orm import Session

from ..models import BlockedIntervals, Services
from ..schemas.actors import ActorContext
from .errors import NotFound, ValidationError
from .guards import ensure_can_manage_provider
from .locks import provider_day_lock, provider_days_lock
from .slots.config import (
    SchedulingConfig,
    format_timestamp,
    is_valid_time_str,
    parse_date,
    time_str_to_minutes,
)

logger = logging.getLogger(__name__)


def _validate_block(
    db: Session,
    date_str: str,
    start_time: str,
    end_time: Optional[str],
    service_id: Optional[int],
) -> None:
    try:
        parse_date(date_str)
    except ValueError:
        raise ValidationError("Date must be in YYYY-MM-DD format")
    if not is_valid_time_str(start_time):
        raise ValidationError("start_time must be in HH:MM format")
    if end_time is not None:
        if not is_valid_time_str(end_time):
            raise ValidationError("end_time must be in HH:MM format")
        if time_str_to_minutes(end_time) <= time_str_to_minutes(start_time):
            raise ValidationError("end_time must be after start_time")
    if service_id is not None and not db.get(Services, service_id):
        raise ValidationError("Service not found")


def create_block(
    db: Session,
    actor: ActorContext,
    now: datetime,
    provider_id: int,
    date: str,
    start_time: str,
    end_time: Optional[str] = None,
    service_id: Optional[int] = None,
    reason: Optional[str] = None,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> BlockedIntervals:
    ensure_can_manage_provider(db, provider_id, actor)
    _validate_block(db, date, start_time, end_time, service_id)

    with provider_day_lock(provider_id, date, redis, config):
        stamp = format_timestamp(now)
        block = BlockedIntervals(
            provider_id=provider_id,
            service_id=service_id,
            date=date,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
            created_by=actor.id,
            created_at=stamp,
            updated_at=stamp,
        )
        db.add(block)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(block)
    logger.info(
        f"Block created: id={block.id}, provider={provider_id}, "
        f"{date} {start_time}-{end_time or '(one slot)'}"
    )
    return block


def update_block(
    db: Session,
    block_id: int,
    actor: ActorContext,
    now: datetime,
    changes: dict,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> BlockedIntervals:
    """Apply `changes` (date / start_time / end_time / service_id / reason)."""
    block = db.get(BlockedIntervals, block_id)
    if not block:
        raise NotFound("Blocked interval not found")
    ensure_can_manage_provider(db, block.provider_id, actor)

    allowed = {"date", "start_time", "end_time", "service_id", "reason"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    merged = {
        "date": block.date,
        "start_time": block.start_time,
        "end_time": block.end_time,
        "service_id": block.service_id,
        "reason": block.reason,
        **changes,
    }
    _validate_block(db, merged["date"], merged["start_time"], merged["end_time"], merged["service_id"])

    provider_id, old_date = block.provider_id, block.date
    db.rollback()

    with provider_days_lock(provider_id, [old_date, merged["date"]], redis, config):
        block = db.get(BlockedIntervals, block_id, populate_existing=True)
        if not block:
            raise NotFound("Blocked interval not found")
        for field, value in merged.items():
            setattr(block, field, value)
        block.updated_at = format_timestamp(now)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(block)
    logger.info(f"Block updated: id={block_id}, fields={sorted(changes)}")
    return block


def delete_block(
    db: Session,
    block_id: int,
    actor: ActorContext,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> None:
    block = db.get(BlockedIntervals, block_id)
    if not block:
        raise NotFound("Blocked interval not found")
    ensure_can_manage_provider(db, block.provider_id, actor)

    with provider_day_lock(block.provider_id, block.date, redis, config):
        db.delete(block)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.info(f"Block deleted: id={block_id}")

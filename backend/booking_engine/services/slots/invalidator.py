# backend/booking_engine/services/slots/invalidator.py
"""
Cache invalidation for candidate slot grids.

Triggers:
✓ Availability rule created / updated / deleted → drop all grids of the provider

Does NOT trigger:
✗ Appointment created / rescheduled / cancelled (resolver reads them live)
✗ Blocked interval changes (resolver reads them live)
"""

import logging
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError

from .redis_store import SlotsRedisStore

logger = logging.getLogger(__name__)


def invalidate_provider_cache(redis: Optional[Redis], provider_id: int) -> int:
    """
    Invalidate cached grids for a provider.

    Returns:
        Number of deleted cache keys (0 without Redis).
    """
    if redis is None:
        return 0

    try:
        deleted = SlotsRedisStore(redis).delete_provider(provider_id)
    except RedisError as e:
        # Stale grids would keep offering old hours; make it loud
        logger.error(f"Slot cache invalidation failed for provider {provider_id}: {e}")
        return 0

    logger.info(f"Slot cache invalidated: provider={provider_id}, keys={deleted}")
    return deleted

# backend/booking_engine/services/slots/redis_store.py
"""
Redis storage for candidate slot grids using Sorted Sets.

Key format: slots:candidates:{provider_id}:{service_id}:{step}:{date}
Value: Sorted Set where member = "HH:MM", score = minute of day.

Sentinel: "__empty__" with score=-1 marks "calculated, closed day".
Grids only depend on availability rules, so they are dropped per provider
whenever a rule changes (see invalidator.py).
"""

from datetime import date

from redis import Redis

from .config import SchedulingConfig, get_scheduling_config, time_str_to_minutes


EMPTY_SENTINEL = "__empty__"


class SlotsRedisStore:
    """Redis storage wrapper using Sorted Sets for candidate grids."""

    KEY_PREFIX = "slots:candidates"

    def __init__(self, redis: Redis, config: SchedulingConfig | None = None):
        self.redis = redis
        self.config = config or get_scheduling_config()

    def _key(self, provider_id: int, service_id: int, step: int, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{provider_id}:{service_id}:{step}:{dt.isoformat()}"

    # ── Write ────────────────────────────────────────────────────────────

    def store_candidates(
        self,
        provider_id: int,
        service_id: int,
        step: int,
        dt: date,
        slots: list[str],
    ) -> None:
        """
        Store a calculated grid.

        Empty list → sentinel is stored so the closed day is cached too.
        """
        key = self._key(provider_id, service_id, step, dt)
        pipe = self.redis.pipeline()

        pipe.delete(key)
        if slots:
            pipe.zadd(key, {time_str: time_str_to_minutes(time_str) for time_str in slots})
        else:
            pipe.zadd(key, {EMPTY_SENTINEL: -1})
        pipe.expire(key, self.config.cache_ttl_seconds)

        pipe.execute()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_candidates(
        self,
        provider_id: int,
        service_id: int,
        step: int,
        dt: date,
    ) -> list[str] | None:
        """
        Cached grid in ascending order, or None on cache miss.
        """
        key = self._key(provider_id, service_id, step, dt)
        if not self.redis.exists(key):
            return None

        members = self.redis.zrangebyscore(key, 0, "+inf")
        result = []
        for m in members:
            value = m.decode() if isinstance(m, bytes) else m
            if value != EMPTY_SENTINEL:
                result.append(value)
        return result

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_provider(self, provider_id: int) -> int:
        """
        Delete every cached grid of a provider.

        Returns:
            Number of deleted keys.
        """
        pattern = f"{self.KEY_PREFIX}:{provider_id}:*"
        keys = list(self.redis.scan_iter(match=pattern))
        if not keys:
            return 0
        return self.redis.delete(*keys)

"""
Optional Redis connection.

Redis backs the reservation locks, the candidate-slot cache and the
notification queue. When REDIS_URL is not set the engine runs without it:
locks fall back to the in-process registry, slots are computed on the fly and
events are dropped with a log line.
"""

from typing import Optional

from redis import Redis

from .config import settings

redis_client: Optional[Redis] = (
    Redis.from_url(settings.redis_url, decode_responses=True)
    if settings.redis_url
    else None
)


def get_redis() -> Optional[Redis]:
    """FastAPI dependency returning the shared client (or None)."""
    return redis_client

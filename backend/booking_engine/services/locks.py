"""
Mutual exclusion for the reservation write path.

The contention domain is one provider on one date: reservations, reschedules
and block edits for the same (provider_id, date) run one at a time, anything
else proceeds in parallel.

With Redis configured the lock is a Redis lock (shared by every worker
process); without Redis an in-process lock registry is used, which is only
correct for a single-process deployment.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from redis import Redis
from redis.exceptions import LockError, RedisError

from .errors import ReservationTimeout
from .slots.config import SchedulingConfig, get_scheduling_config

logger = logging.getLogger(__name__)

LOCK_PREFIX = "lock:schedule"

# key -> [lock, number of callers holding or waiting on it]
_local_locks: dict[str, list] = {}
_local_registry_guard = threading.Lock()


def lock_key(provider_id: int, date_str: str) -> str:
    return f"{LOCK_PREFIX}:{provider_id}:{date_str}"


def _checkout_local_lock(key: str) -> threading.Lock:
    with _local_registry_guard:
        entry = _local_locks.get(key)
        if entry is None:
            entry = [threading.Lock(), 0]
            _local_locks[key] = entry
        entry[1] += 1
        return entry[0]


def _return_local_lock(key: str) -> None:
    """Drop the registry entry once nobody holds or waits on it."""
    with _local_registry_guard:
        entry = _local_locks.get(key)
        if entry is None:
            return
        entry[1] -= 1
        if entry[1] <= 0:
            del _local_locks[key]


@contextmanager
def provider_day_lock(
    provider_id: int,
    date_str: str,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> Iterator[None]:
    """
    Hold the (provider, date) unit of work.

    Raises ReservationTimeout when the lock is not acquired within
    config.lock_timeout_seconds.
    """
    config = config or get_scheduling_config()
    key = lock_key(provider_id, date_str)

    if redis is None:
        lock = _checkout_local_lock(key)
        try:
            if not lock.acquire(timeout=config.lock_timeout_seconds):
                logger.warning(f"Lock timeout: {key}")
                raise ReservationTimeout()
            try:
                yield
            finally:
                lock.release()
        finally:
            _return_local_lock(key)
        return

    redis_lock = redis.lock(
        key,
        timeout=config.lock_ttl_seconds,
        blocking_timeout=config.lock_timeout_seconds,
    )
    try:
        acquired = redis_lock.acquire()
    except RedisError as e:
        logger.error(f"Lock backend unavailable for {key}: {e}")
        raise ReservationTimeout("The schedule is temporarily unavailable, please try again.") from e

    if not acquired:
        logger.warning(f"Lock timeout: {key}")
        raise ReservationTimeout()

    try:
        yield
    finally:
        try:
            redis_lock.release()
        except LockError:
            # TTL elapsed while held; the commit already happened or failed
            logger.error(f"Lock {key} expired before release")


@contextmanager
def provider_days_lock(
    provider_id: int,
    date_strs: list[str],
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> Iterator[None]:
    """Hold several dates of one provider, acquired in sorted order."""
    dates = sorted(set(date_strs))
    if not dates:
        yield
        return

    with provider_day_lock(provider_id, dates[0], redis, config):
        with provider_days_lock(provider_id, dates[1:], redis, config):
            yield

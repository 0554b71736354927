"""Tests for the (provider, date) lock."""

import threading

import pytest

from booking_engine.services.errors import ReservationTimeout
from booking_engine.services import locks
from booking_engine.services.locks import lock_key, provider_day_lock, provider_days_lock
from booking_engine.services.slots.config import SchedulingConfig

FAST = SchedulingConfig(lock_timeout_seconds=0.1, lock_ttl_seconds=5.0)


class TestProviderDayLock:
    def test_key_format(self):
        assert lock_key(3, "2026-03-02") == "lock:schedule:3:2026-03-02"

    def test_same_key_times_out(self):
        with provider_day_lock(101, "2026-03-02", config=FAST):
            with pytest.raises(ReservationTimeout):
                with provider_day_lock(101, "2026-03-02", config=FAST):
                    pass

    def test_different_keys_do_not_contend(self):
        with provider_day_lock(102, "2026-03-02", config=FAST):
            with provider_day_lock(102, "2026-03-03", config=FAST):
                with provider_day_lock(103, "2026-03-02", config=FAST):
                    pass

    def test_released_after_error(self):
        with pytest.raises(RuntimeError):
            with provider_day_lock(104, "2026-03-02", config=FAST):
                raise RuntimeError("boom")

        with provider_day_lock(104, "2026-03-02", config=FAST):
            pass

    def test_waiter_gets_lock_after_release(self):
        config = SchedulingConfig(lock_timeout_seconds=5.0, lock_ttl_seconds=5.0)
        entered = threading.Event()
        release = threading.Event()
        order = []

        def holder():
            with provider_day_lock(105, "2026-03-02", config=config):
                order.append("holder")
                entered.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        entered.wait(5)
        release.set()

        with provider_day_lock(105, "2026-03-02", config=config):
            order.append("waiter")
        thread.join()

        assert order == ["holder", "waiter"]

    def test_registry_forgets_released_keys(self):
        for day in range(1, 29):
            with provider_day_lock(106, f"2026-02-{day:02d}", config=FAST):
                assert lock_key(106, f"2026-02-{day:02d}") in locks._local_locks

        assert not any(key.startswith("lock:schedule:106:") for key in locks._local_locks)

    def test_registry_forgets_key_after_timeout(self):
        with provider_day_lock(107, "2026-03-02", config=FAST):
            with pytest.raises(ReservationTimeout):
                with provider_day_lock(107, "2026-03-02", config=FAST):
                    pass
            assert lock_key(107, "2026-03-02") in locks._local_locks

        assert lock_key(107, "2026-03-02") not in locks._local_locks


class TestProviderDaysLock:
    def test_holds_every_date(self):
        with provider_days_lock(106, ["2026-03-03", "2026-03-02"], config=FAST):
            for day in ("2026-03-02", "2026-03-03"):
                with pytest.raises(ReservationTimeout):
                    with provider_day_lock(106, day, config=FAST):
                        pass

        with provider_day_lock(106, "2026-03-02", config=FAST):
            pass

    def test_duplicate_dates_lock_once(self):
        with provider_days_lock(107, ["2026-03-02", "2026-03-02"], config=FAST):
            pass

"""Tests for the slot generator (rules → candidate start times)."""

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from booking_engine.models import AvailabilityRules
from booking_engine.services.slots.generator import (
    generate_candidate_slots,
    get_candidate_slots,
    rule_applies_on,
    select_applicable_rules,
)
from booking_engine.services.slots.availability import calculate_slot_availability
from booking_engine.services.slots.invalidator import invalidate_provider_cache
from booking_engine.services.slots.redis_store import SlotsRedisStore

MONDAY = date(2026, 3, 2)


def rule(start, end, day=0, service_id=None, is_available=1, start_date=None, end_date=None):
    return SimpleNamespace(
        start_time=start,
        end_time=end,
        day_of_week=day,
        service_id=service_id,
        is_available=is_available,
        start_date=start_date,
        end_date=end_date,
    )


class TestGenerateCandidateSlots:
    def test_morning_window_thirty_minutes(self):
        """09:00-12:00 with a 30 minute step yields six starts, the last at 11:30."""
        slots = generate_candidate_slots([rule("09:00", "12:00")], 30)
        assert slots == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]

    def test_last_start_leaves_room_for_duration(self):
        """A 45 minute step in 09:00-10:00 only fits 09:00."""
        assert generate_candidate_slots([rule("09:00", "10:00")], 45) == ["09:00"]

    def test_window_shorter_than_step(self):
        assert generate_candidate_slots([rule("09:00", "09:20")], 30) == []

    def test_windows_merge_sorted_without_duplicates(self):
        rules = [rule("14:00", "15:00"), rule("09:00", "10:00"), rule("09:00", "10:00")]
        assert generate_candidate_slots(rules, 30) == ["09:00", "09:30", "14:00", "14:30"]

    def test_no_rules_means_closed(self):
        assert generate_candidate_slots([], 30) == []

    def test_step_must_be_positive(self):
        with pytest.raises(ValueError):
            generate_candidate_slots([rule("09:00", "10:00")], 0)


class TestRuleSelection:
    def test_weekday_must_match(self):
        assert rule_applies_on(rule("09:00", "12:00", day=0), MONDAY)
        assert not rule_applies_on(rule("09:00", "12:00", day=1), MONDAY)

    def test_unavailable_rule_never_applies(self):
        assert not rule_applies_on(rule("09:00", "12:00", is_available=0), MONDAY)

    def test_date_range_is_inclusive(self):
        assert rule_applies_on(rule("09:00", "12:00", start_date="2026-03-02"), MONDAY)
        assert rule_applies_on(rule("09:00", "12:00", end_date="2026-03-02"), MONDAY)
        assert not rule_applies_on(rule("09:00", "12:00", start_date="2026-03-03"), MONDAY)
        assert not rule_applies_on(rule("09:00", "12:00", end_date="2026-03-01"), MONDAY)

    def test_service_rule_overrides_generic(self):
        generic = rule("09:00", "12:00")
        specific = rule("15:00", "16:00", service_id=7)
        assert select_applicable_rules([generic, specific], 7, MONDAY) == [specific]

    def test_other_service_rules_fall_back_to_generic(self):
        generic = rule("09:00", "12:00")
        other = rule("15:00", "16:00", service_id=8)
        assert select_applicable_rules([generic, other], 7, MONDAY) == [generic]

    def test_specific_rule_outside_its_dates_does_not_override(self):
        generic = rule("09:00", "12:00")
        expired = rule("15:00", "16:00", service_id=7, end_date="2026-02-01")
        assert select_applicable_rules([generic, expired], 7, MONDAY) == [generic]

    def test_closed_service_rule_overrides_generic(self):
        """An unavailable rule for the service closes it even when the generic rule is open."""
        generic = rule("09:00", "12:00")
        closed = rule("09:00", "12:00", service_id=7, is_available=0)
        assert select_applicable_rules([generic, closed], 7, MONDAY) == []
        assert select_applicable_rules([generic, closed], 8, MONDAY) == [generic]

    def test_closed_service_rule_empties_the_day(self, db, salon, config):
        db.add(AvailabilityRules(
            provider_id=salon.provider_id,
            service_id=salon.haircut_id,
            day_of_week=0,
            start_time="09:00",
            end_time="12:00",
            is_available=0,
        ))
        db.commit()

        view = calculate_slot_availability(
            db, salon.provider_id, salon.haircut_id, MONDAY, datetime(2026, 3, 1, 12, 0), config=config
        )
        assert view["slots"] == []

        color = get_candidate_slots(db, salon.provider_id, salon.color_id, MONDAY, 60, None, config)
        assert color == ["09:00", "10:00", "11:00"]


class TestCandidateCache:
    def test_grid_is_cached_and_reused(self, db, salon, fake_redis, config):
        """A cached grid is served without touching the rules again."""
        first = get_candidate_slots(db, salon.provider_id, salon.haircut_id, MONDAY, 30, fake_redis, config)
        assert len(first) == 6

        store = SlotsRedisStore(fake_redis, config)
        assert store.get_candidates(salon.provider_id, salon.haircut_id, 30, MONDAY) == first

        # Poison the store: the generator must return the cached value
        store.store_candidates(salon.provider_id, salon.haircut_id, 30, MONDAY, ["09:00"])
        cached = get_candidate_slots(db, salon.provider_id, salon.haircut_id, MONDAY, 30, fake_redis, config)
        assert cached == ["09:00"]

    def test_closed_day_is_cached_as_empty(self, db, salon, fake_redis, config):
        tuesday = date(2026, 3, 3)
        assert get_candidate_slots(db, salon.provider_id, salon.haircut_id, tuesday, 30, fake_redis, config) == []

        store = SlotsRedisStore(fake_redis, config)
        assert store.get_candidates(salon.provider_id, salon.haircut_id, 30, tuesday) == []

    def test_invalidation_drops_provider_grids_only(self, db, salon, fake_redis, config):
        get_candidate_slots(db, salon.provider_id, salon.haircut_id, MONDAY, 30, fake_redis, config)
        get_candidate_slots(db, salon.other_provider_id, salon.haircut_id, MONDAY, 30, fake_redis, config)

        assert invalidate_provider_cache(fake_redis, salon.provider_id) == 1

        store = SlotsRedisStore(fake_redis, config)
        assert store.get_candidates(salon.provider_id, salon.haircut_id, 30, MONDAY) is None
        assert store.get_candidates(salon.other_provider_id, salon.haircut_id, 30, MONDAY) is not None

    def test_invalidation_without_redis(self):
        assert invalidate_provider_cache(None, 1) == 0

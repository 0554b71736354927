"""Tests for blocked intervals and availability rules."""

from datetime import date

import pytest

from booking_engine.models import AvailabilityRules, BlockedIntervals
from booking_engine.services.availability_rules import delete_rule, upsert_rule
from booking_engine.services.blocks import create_block, delete_block, update_block
from booking_engine.services.errors import Forbidden, NotFound, ValidationError
from booking_engine.services.slots.availability import calculate_slot_availability
from booking_engine.services.slots.generator import get_candidate_slots
from booking_engine.services.slots.redis_store import SlotsRedisStore

from conftest import MONDAY, NOW, TUESDAY


def monday_view(db, salon, config):
    return calculate_slot_availability(
        db, salon.provider_id, salon.haircut_id, date(2026, 3, 2), NOW, config=config
    )


class TestBlocks:
    def test_block_hides_slots(self, db, salon, ana, config):
        block = create_block(
            db, ana, NOW, salon.provider_id, MONDAY, "10:00", "11:00",
            reason="Training", config=config,
        )

        assert block.created_by == "user-ana"
        reasons = {s["time"]: s["reason"] for s in monday_view(db, salon, config)["slots"]}
        assert reasons["09:30"] is None
        assert reasons["10:00"] == "blocked"
        assert reasons["10:30"] == "blocked"
        assert reasons["11:00"] is None

    def test_block_over_existing_appointment_is_allowed(self, db, book, salon, owner, config):
        appointment = book(time="10:00")
        create_block(db, owner, NOW, salon.provider_id, MONDAY, "10:00", "10:30", config=config)

        db.refresh(appointment)
        assert appointment.status == "pending"

    @pytest.mark.parametrize("start, end", [
        ("9am", None),
        ("10:00", "09:00"),
        ("10:00", "10:00"),
        ("10:00", "25:00"),
    ])
    def test_invalid_times(self, db, salon, owner, config, start, end):
        with pytest.raises(ValidationError):
            create_block(db, owner, NOW, salon.provider_id, MONDAY, start, end, config=config)

    @pytest.mark.parametrize("bad_date", ["02/03/2026", "2026-3-2", "20260302"])
    def test_invalid_date(self, db, salon, owner, config, bad_date):
        with pytest.raises(ValidationError):
            create_block(db, owner, NOW, salon.provider_id, bad_date, "10:00", config=config)

    def test_unknown_provider(self, db, salon, owner, config):
        with pytest.raises(ValidationError):
            create_block(db, owner, NOW, 999, MONDAY, "10:00", config=config)

    def test_other_employee_is_forbidden(self, db, salon, ben, config):
        with pytest.raises(Forbidden):
            create_block(db, ben, NOW, salon.provider_id, MONDAY, "10:00", config=config)

    def test_update_moves_block(self, db, salon, ana, config):
        block = create_block(db, ana, NOW, salon.provider_id, MONDAY, "10:00", config=config)

        updated = update_block(
            db, block.id, ana, NOW, {"date": TUESDAY, "reason": "Moved"}, config=config
        )

        assert (updated.date, updated.start_time, updated.reason) == (TUESDAY, "10:00", "Moved")
        assert all(s["available"] for s in monday_view(db, salon, config)["slots"])

    def test_update_rejects_unknown_fields(self, db, salon, ana, config):
        block = create_block(db, ana, NOW, salon.provider_id, MONDAY, "10:00", config=config)
        with pytest.raises(ValidationError):
            update_block(db, block.id, ana, NOW, {"provider_id": salon.other_provider_id}, config=config)

    def test_update_validates_merged_interval(self, db, salon, ana, config):
        block = create_block(db, ana, NOW, salon.provider_id, MONDAY, "10:00", "11:00", config=config)
        with pytest.raises(ValidationError):
            update_block(db, block.id, ana, NOW, {"start_time": "11:30"}, config=config)

    def test_delete(self, db, salon, ana, ben, config):
        block = create_block(db, ana, NOW, salon.provider_id, MONDAY, "10:00", config=config)

        with pytest.raises(Forbidden):
            delete_block(db, block.id, ben, config=config)

        delete_block(db, block.id, ana, config=config)
        assert db.query(BlockedIntervals).count() == 0

        with pytest.raises(NotFound):
            delete_block(db, block.id, ana, config=config)


class TestAvailabilityRules:
    def rule_data(self, salon, **overrides):
        data = {
            "provider_id": salon.provider_id,
            "service_id": None,
            "day_of_week": 1,
            "start_time": "14:00",
            "end_time": "16:00",
            "is_available": True,
            "start_date": None,
            "end_date": None,
        }
        data.update(overrides)
        return data

    def test_insert_opens_a_day(self, db, salon, ana):
        rule = upsert_rule(db, self.rule_data(salon), ana, NOW)

        assert rule.id is not None
        assert rule.is_available == 1
        slots = get_candidate_slots(db, salon.provider_id, salon.haircut_id, date(2026, 3, 3), 30)
        assert slots == ["14:00", "14:30", "15:00", "15:30"]

    def test_update_in_place(self, db, salon, ana):
        rule = upsert_rule(db, self.rule_data(salon), ana, NOW)

        updated = upsert_rule(db, self.rule_data(salon, id=rule.id, end_time="15:00"), ana, NOW)

        assert updated.id == rule.id
        assert db.query(AvailabilityRules).filter_by(day_of_week=1).count() == 1
        assert get_candidate_slots(db, salon.provider_id, salon.haircut_id, date(2026, 3, 3), 30) == [
            "14:00", "14:30",
        ]

    def test_update_unknown_rule(self, db, salon, owner):
        with pytest.raises(NotFound):
            upsert_rule(db, self.rule_data(salon, id=999), owner, NOW)

    @pytest.mark.parametrize("overrides", [
        {"day_of_week": 7},
        {"start_time": "16:00", "end_time": "14:00"},
        {"start_time": "14h"},
        {"start_date": "2026-04-01", "end_date": "2026-03-01"},
        {"start_date": "April"},
        {"service_id": 999},
    ])
    def test_invalid_rules(self, db, salon, owner, overrides):
        with pytest.raises(ValidationError):
            upsert_rule(db, self.rule_data(salon, **overrides), owner, NOW)

    def test_other_employee_is_forbidden(self, db, salon, ben):
        with pytest.raises(Forbidden):
            upsert_rule(db, self.rule_data(salon), ben, NOW)

    def test_write_drops_cached_grids(self, db, salon, ana, fake_redis, config):
        get_candidate_slots(db, salon.provider_id, salon.haircut_id, date(2026, 3, 2), 30, fake_redis, config)
        get_candidate_slots(db, salon.other_provider_id, salon.haircut_id, date(2026, 3, 2), 30, fake_redis, config)
        store = SlotsRedisStore(fake_redis, config)

        rule = upsert_rule(db, self.rule_data(salon), ana, NOW, redis=fake_redis)

        assert store.get_candidates(salon.provider_id, salon.haircut_id, 30, date(2026, 3, 2)) is None
        assert store.get_candidates(salon.other_provider_id, salon.haircut_id, 30, date(2026, 3, 2)) is not None

        get_candidate_slots(db, salon.provider_id, salon.haircut_id, date(2026, 3, 2), 30, fake_redis, config)
        delete_rule(db, rule.id, ana, redis=fake_redis)
        assert store.get_candidates(salon.provider_id, salon.haircut_id, 30, date(2026, 3, 2)) is None

    def test_delete_unknown_rule(self, db, salon, owner):
        with pytest.raises(NotFound):
            delete_rule(db, 999, owner)

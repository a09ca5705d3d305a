"""Recurring patterns: lazy expansion, merge with concrete slots, materialization"""

from datetime import date

import pytest

from venuebook.domain.scheduling.availability_service import AvailabilityService
from venuebook.domain.scheduling.pattern_service import PatternService, expand
from venuebook.domain.scheduling.schemas import (
    RecurringPatternCreate,
    RecurringPatternUpdate,
    SlotUpsert,
)
from venuebook.models_scheduling import AvailabilitySlot, RecurringPattern
from venuebook.shared.errors import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def monday_pattern(db, dj):
    """Mondays 09:00-17:00 from 2025-01-01, open-ended"""
    return PatternService(db).create_pattern(
        dj.id,
        RecurringPatternCreate(
            name="Monday residency",
            frequency="WEEKLY",
            dayOfWeek=1,
            startTime="09:00",
            endTime="17:00",
            validFrom=date(2025, 1, 1),
        ),
    )


def test_weekly_pattern_expands_lazily(db, dj, monday_pattern):
    slots = PatternService(db).get_merged_slots(dj.id, date(2025, 2, 1), date(2025, 2, 28))

    assert [s.date for s in slots] == [
        date(2025, 2, 3),
        date(2025, 2, 10),
        date(2025, 2, 17),
        date(2025, 2, 24),
    ]
    assert all(s.is_virtual and s.id is None for s in slots)
    assert all(s.recurring_pattern_id == monday_pattern.id for s in slots)
    assert db.query(AvailabilitySlot).count() == 0


def test_expand_respects_validity_window():
    pattern = RecurringPattern(
        id=1,
        artist_id=1,
        name="Daily",
        frequency="DAILY",
        start_time="20:00",
        end_time="22:00",
        price_multiplier=1.0,
        valid_from=date(2025, 3, 10),
        valid_until=date(2025, 3, 12),
        is_active=True,
    )
    dates = [v.date for v in expand(pattern, date(2025, 3, 1), date(2025, 3, 31))]
    assert dates == [date(2025, 3, 10), date(2025, 3, 11), date(2025, 3, 12)]


def test_monthly_pattern_skips_short_months():
    pattern = RecurringPattern(
        id=2,
        artist_id=1,
        name="Month end",
        frequency="MONTHLY",
        day_of_month=31,
        start_time="20:00",
        end_time="24:00",
        price_multiplier=1.5,
        valid_from=date(2025, 1, 1),
        is_active=True,
    )
    dates = [v.date for v in expand(pattern, date(2025, 1, 1), date(2025, 4, 30))]
    assert dates == [date(2025, 1, 31), date(2025, 3, 31)]


def test_inactive_pattern_expands_to_nothing():
    pattern = RecurringPattern(
        id=3,
        artist_id=1,
        name="Off",
        frequency="DAILY",
        start_time="20:00",
        end_time="22:00",
        price_multiplier=1.0,
        valid_from=date(2025, 1, 1),
        is_active=False,
    )
    assert expand(pattern, date(2025, 1, 1), date(2025, 1, 31)) == []


def test_concrete_slot_suppresses_virtual_instances(db, dj, monday_pattern):
    AvailabilityService(db).upsert_slot(
        dj.id,
        SlotUpsert(date=date(2025, 2, 10), startTime="20:00", endTime="22:00", status="UNAVAILABLE"),
    )

    slots = PatternService(db).get_merged_slots(dj.id, date(2025, 2, 1), date(2025, 2, 28))
    feb_10 = [s for s in slots if s.date == date(2025, 2, 10)]

    assert len(slots) == 4
    assert len(feb_10) == 1
    assert feb_10[0].status == "UNAVAILABLE"
    assert not getattr(feb_10[0], "is_virtual", False)


def test_materialize_is_idempotent(db, dj, monday_pattern):
    service = PatternService(db)
    first = service.materialize(monday_pattern.id, date(2025, 2, 3))
    second = service.materialize(monday_pattern.id, date(2025, 2, 3))

    assert first.id == second.id
    assert first.recurring_pattern_id == monday_pattern.id
    assert (first.start_time, first.end_time) == ("09:00", "17:00")
    assert db.query(AvailabilitySlot).count() == 1


def test_edit_instance_materializes_and_applies_in_one_step(db, dj, monday_pattern):
    slot = PatternService(db).edit_instance(
        dj.id,
        SlotUpsert(
            date=date(2025, 2, 3),
            startTime="10:00",
            endTime="18:00",
            status="TENTATIVE",
            recurringPatternId=monday_pattern.id,
        ),
    )

    assert slot.recurring_pattern_id == monday_pattern.id
    assert (slot.start_time, slot.end_time, slot.status) == ("10:00", "18:00", "TENTATIVE")
    assert db.query(AvailabilitySlot).count() == 1


def test_rejected_instance_edit_leaves_nothing_materialized(db, dj, monday_pattern):
    AvailabilityService(db).upsert_slot(
        dj.id, SlotUpsert(date=date(2025, 2, 10), startTime="18:00", endTime="20:00")
    )

    with pytest.raises(ValidationError):
        PatternService(db).edit_instance(
            dj.id,
            SlotUpsert(
                date=date(2025, 2, 10),
                startTime="09:00",
                endTime="19:00",
                recurringPatternId=monday_pattern.id,
            ),
        )

    slots = db.query(AvailabilitySlot).all()
    assert [(s.start_time, s.recurring_pattern_id) for s in slots] == [("18:00", None)]


def test_materialize_rejects_dates_outside_the_rule(db, dj, monday_pattern):
    with pytest.raises(ValidationError):
        PatternService(db).materialize(monday_pattern.id, date(2025, 2, 4))  # Tuesday


def test_weekly_pattern_requires_day_of_week(db, dj):
    with pytest.raises(ValidationError) as exc:
        PatternService(db).create_pattern(
            dj.id,
            RecurringPatternCreate(
                name="Broken",
                frequency="WEEKLY",
                startTime="20:00",
                endTime="22:00",
                validFrom=date(2025, 1, 1),
            ),
        )
    assert exc.value.field == "dayOfWeek"


def test_valid_until_must_follow_valid_from(db, dj):
    with pytest.raises(ValidationError):
        PatternService(db).create_pattern(
            dj.id,
            RecurringPatternCreate(
                name="Backwards",
                frequency="DAILY",
                startTime="20:00",
                endTime="22:00",
                validFrom=date(2025, 2, 1),
                validUntil=date(2025, 1, 1),
            ),
        )


def test_update_pattern(db, dj, monday_pattern):
    updated = PatternService(db).update_pattern(
        monday_pattern.id, RecurringPatternUpdate(endTime="00:00", isActive=False)
    )
    assert updated.end_time == "24:00"
    assert updated.is_active is False
    assert PatternService(db).list_patterns(dj.id, is_active=True) == []


def test_delete_pattern_with_linked_slots_conflicts(db, dj, monday_pattern):
    service = PatternService(db)
    service.materialize(monday_pattern.id, date(2025, 2, 3))

    with pytest.raises(ConflictError):
        service.delete_pattern(monday_pattern.id)


def test_delete_pattern(db, dj, monday_pattern):
    service = PatternService(db)
    service.delete_pattern(monday_pattern.id)

    with pytest.raises(NotFoundError):
        service.get_pattern(monday_pattern.id)

"""Blackout periods: booking guard, slot blocking, recurring suppression and listing"""

from datetime import date

import pytest

from venuebook.domain.scheduling.assignment_service import AssignmentService
from venuebook.domain.scheduling.availability_service import AvailabilityService
from venuebook.domain.scheduling.blackout_service import BlackoutService, covered_months
from venuebook.domain.scheduling.pattern_service import PatternService
from venuebook.domain.scheduling.schemas import (
    AssignmentCreate,
    AssignmentUpdate,
    BlackoutCreate,
    BlackoutUpdate,
    RecurringPatternCreate,
    SlotUpsert,
)
from venuebook.models_scheduling import BlackoutPeriod
from venuebook.shared.errors import ConflictError, NotFoundError, ValidationError


def _open(db, artist, day, start="20:00", end="00:00", **extra):
    return AvailabilityService(db).upsert_slot(
        artist.id, SlotUpsert(date=day, startTime=start, endTime=end, **extra)
    )


def _blackout(db, artist, start, end, **extra):
    data = {"startDate": start, "endDate": end, "title": "Summer break"}
    data.update(extra)
    return BlackoutService(db).create_blackout(artist.id, BlackoutCreate(**data))


def test_blackout_blocks_open_slots_in_range(db, dj):
    inside = _open(db, dj, date(2030, 8, 10))
    tentative = _open(db, dj, date(2030, 8, 12), status="TENTATIVE")
    outside = _open(db, dj, date(2030, 8, 20))

    blackout = _blackout(db, dj, date(2030, 8, 9), date(2030, 8, 15), blackoutType="HOLIDAY")

    assert blackout.blackout_type == "HOLIDAY"
    for slot in (inside, tentative, outside):
        db.refresh(slot)
    assert (inside.status, inside.notes) == ("UNAVAILABLE", "Blackout: Summer break")
    assert tentative.status == "UNAVAILABLE"
    assert outside.status == "AVAILABLE"


def test_single_day_blackout(db, dj):
    blackout = _blackout(db, dj, date(2030, 8, 9), date(2030, 8, 9))
    assert blackout.start_date == blackout.end_date


def test_end_before_start_is_rejected(db, dj):
    with pytest.raises(ValidationError) as exc:
        _blackout(db, dj, date(2030, 8, 9), date(2030, 8, 1))
    assert exc.value.field == "endDate"


def test_unknown_artist(db):
    with pytest.raises(NotFoundError):
        BlackoutService(db).create_blackout(
            999,
            BlackoutCreate(startDate=date(2030, 8, 1), endDate=date(2030, 8, 2), title="Off"),
        )


def test_booked_slot_in_range_refuses_the_blackout(db, dj):
    _open(db, dj, date(2030, 8, 10), status="BOOKED")

    with pytest.raises(ConflictError) as exc:
        _blackout(db, dj, date(2030, 8, 9), date(2030, 8, 15))

    assert "2030-08-10" in exc.value.message
    assert db.query(BlackoutPeriod).count() == 0


def test_live_assignment_in_range_refuses_the_blackout(db, riverside, dj):
    assignment, _ = AssignmentService(db).create(
        AssignmentCreate(
            venueId=riverside.id, artistId=dj.id, date=date(2030, 8, 11),
            startTime="20:00", endTime="00:00",
        )
    )

    with pytest.raises(ConflictError):
        _blackout(db, dj, date(2030, 8, 9), date(2030, 8, 15))

    AssignmentService(db).update(assignment.id, AssignmentUpdate(status="CANCELLED"))
    assert _blackout(db, dj, date(2030, 8, 9), date(2030, 8, 15)).id is not None


def test_other_artists_bookings_do_not_matter(db, dj, other_dj):
    _open(db, other_dj, date(2030, 8, 10), status="BOOKED")
    _blackout(db, dj, date(2030, 8, 9), date(2030, 8, 15))

    assert [s.status for s in AvailabilityService(db).get_slots(
        other_dj.id, date(2030, 8, 10), date(2030, 8, 10)
    )] == ["BOOKED"]


def test_recurring_instances_are_not_offered_on_blackout_dates(db, dj, other_dj):
    patterns = PatternService(db)
    for artist in (dj, other_dj):
        patterns.create_pattern(
            artist.id,
            RecurringPatternCreate(
                name="Nightly", frequency="DAILY", startTime="20:00", endTime="00:00",
                validFrom=date(2030, 8, 1),
            ),
        )
    _blackout(db, dj, date(2030, 8, 3), date(2030, 8, 4))

    own = patterns.get_merged_slots(dj.id, date(2030, 8, 1), date(2030, 8, 5))
    assert [s.date.day for s in own] == [1, 2, 5]

    everyone = patterns.get_merged_slots_for_range(date(2030, 8, 3), date(2030, 8, 3))
    assert [s.artist_id for s in everyone] == [other_dj.id]


def test_update_range_rechecks_and_reblocks(db, dj):
    blackout = _blackout(db, dj, date(2030, 8, 9), date(2030, 8, 10))
    later = _open(db, dj, date(2030, 8, 14))
    _open(db, dj, date(2030, 8, 20), status="BOOKED")

    service = BlackoutService(db)
    updated = service.update_blackout(
        blackout.id, BlackoutUpdate(endDate=date(2030, 8, 15), title="Longer break")
    )
    db.refresh(later)
    assert updated.end_date == date(2030, 8, 15)
    assert (later.status, later.notes) == ("UNAVAILABLE", "Blackout: Longer break")

    with pytest.raises(ConflictError):
        service.update_blackout(blackout.id, BlackoutUpdate(endDate=date(2030, 8, 21)))


def test_delete_keeps_slots_blocked(db, dj):
    slot = _open(db, dj, date(2030, 8, 10))
    blackout = _blackout(db, dj, date(2030, 8, 9), date(2030, 8, 15))

    BlackoutService(db).delete_blackout(blackout.id, dj.id)

    db.refresh(slot)
    assert db.query(BlackoutPeriod).count() == 0
    assert slot.status == "UNAVAILABLE"


def test_delete_checks_ownership(db, dj, other_dj):
    blackout = _blackout(db, dj, date(2030, 8, 9), date(2030, 8, 15))
    with pytest.raises(NotFoundError):
        BlackoutService(db).delete_blackout(blackout.id, other_dj.id)


def test_list_filters(db, dj):
    _blackout(db, dj, date(2020, 1, 5), date(2020, 1, 6), title="Long ago")
    _blackout(db, dj, date(2030, 7, 30), date(2030, 8, 2), blackoutType="HOLIDAY")
    _blackout(db, dj, date(2030, 9, 1), date(2030, 9, 3), blackoutType="MAINTENANCE")

    service = BlackoutService(db)
    assert len(service.list_blackouts(dj.id)) == 3
    assert [b.start_date for b in service.list_blackouts(dj.id, upcoming=True)] == [
        date(2030, 7, 30),
        date(2030, 9, 1),
    ]
    assert [b.start_date for b in service.list_blackouts(dj.id, year=2030, month=8)] == [
        date(2030, 7, 30)
    ]
    assert [b.title for b in service.list_blackouts(dj.id, year=2020)] == ["Long ago"]
    assert [b.blackout_type for b in service.list_blackouts(dj.id, "MAINTENANCE")] == [
        "MAINTENANCE"
    ]


def test_covered_months_cross_a_year():
    assert covered_months(date(2030, 11, 20), date(2031, 1, 3)) == [
        (2030, 11),
        (2030, 12),
        (2031, 1),
    ]

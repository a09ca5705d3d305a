"""Scheduling repository - Database operations for venues, slots, patterns, templates, assignments and blackouts

Repository methods add/flush only; the calling service owns the transaction
(commit, rollback, savepoints for bulk writes).
"""

from datetime import date
from typing import Iterable, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import Session, joinedload

from ...models import MAIN_SLOT, Artist, Venue
from ...models_scheduling import (
    AvailabilitySlot,
    Assignment,
    BlackoutPeriod,
    RecurringPattern,
    TimeSlotTemplate,
)


class VenueRepository:
    """Repository for venue lookups"""

    @staticmethod
    def get_venue(db: Session, venue_id: int) -> Optional[Venue]:
        return db.query(Venue).filter(Venue.id == venue_id).first()

    @staticmethod
    def get_venues(
        db: Session, venue_ids: Optional[Iterable[int]] = None, active_only: bool = True
    ) -> list[Venue]:
        """Venues ordered by name, optionally restricted to a set of ids"""
        query = db.query(Venue)
        if active_only:
            query = query.filter(Venue.is_active.is_(True))
        if venue_ids:
            query = query.filter(Venue.id.in_(list(venue_ids)))
        return query.order_by(Venue.name.asc(), Venue.id.asc()).all()


class ArtistRepository:
    """Repository for artist references"""

    @staticmethod
    def get_artist(db: Session, artist_id: int) -> Optional[Artist]:
        return db.query(Artist).filter(Artist.id == artist_id).first()

    @staticmethod
    def get_artists_by_category(db: Session, category: str) -> list[Artist]:
        return (
            db.query(Artist)
            .filter(Artist.category == category)
            .order_by(Artist.stage_name.asc())
            .all()
        )


class AvailabilityRepository:
    """Repository for concrete availability slots"""

    @staticmethod
    def get_slot(db: Session, slot_id: int) -> Optional[AvailabilitySlot]:
        return db.query(AvailabilitySlot).filter(AvailabilitySlot.id == slot_id).first()

    @staticmethod
    def get_slots(
        db: Session, artist_id: int, start: date, end: date
    ) -> list[AvailabilitySlot]:
        """Persisted slots for an artist within [start, end], ordered chronologically"""
        return (
            db.query(AvailabilitySlot)
            .filter(
                AvailabilitySlot.artist_id == artist_id,
                AvailabilitySlot.date >= start,
                AvailabilitySlot.date <= end,
            )
            .order_by(AvailabilitySlot.date.asc(), AvailabilitySlot.start_time.asc())
            .all()
        )

    @staticmethod
    def get_slots_on_date(
        db: Session, artist_id: int, slot_date: date, exclude_id: Optional[int] = None
    ) -> list[AvailabilitySlot]:
        query = db.query(AvailabilitySlot).filter(
            AvailabilitySlot.artist_id == artist_id, AvailabilitySlot.date == slot_date
        )
        if exclude_id is not None:
            query = query.filter(AvailabilitySlot.id != exclude_id)
        return query.order_by(AvailabilitySlot.start_time.asc()).all()

    @staticmethod
    def get_slot_by_start(
        db: Session, artist_id: int, slot_date: date, start_time: str
    ) -> Optional[AvailabilitySlot]:
        return (
            db.query(AvailabilitySlot)
            .filter(
                AvailabilitySlot.artist_id == artist_id,
                AvailabilitySlot.date == slot_date,
                AvailabilitySlot.start_time == start_time,
            )
            .first()
        )

    @staticmethod
    def get_slots_for_range(
        db: Session, start: date, end: date, statuses: Optional[Iterable[str]] = None
    ) -> list[AvailabilitySlot]:
        """Slots of every artist within [start, end]"""
        query = db.query(AvailabilitySlot).filter(
            AvailabilitySlot.date >= start, AvailabilitySlot.date <= end
        )
        if statuses:
            query = query.filter(AvailabilitySlot.status.in_(list(statuses)))
        return query.order_by(
            AvailabilitySlot.date.asc(),
            AvailabilitySlot.start_time.asc(),
            AvailabilitySlot.artist_id.asc(),
        ).all()

    @staticmethod
    def get_artist_slots_in_range(
        db: Session,
        artist_id: int,
        start: date,
        end: date,
        statuses: Optional[Iterable[str]] = None,
    ) -> list[AvailabilitySlot]:
        query = db.query(AvailabilitySlot).filter(
            AvailabilitySlot.artist_id == artist_id,
            AvailabilitySlot.date >= start,
            AvailabilitySlot.date <= end,
        )
        if statuses:
            query = query.filter(AvailabilitySlot.status.in_(list(statuses)))
        return query.order_by(AvailabilitySlot.date.asc(), AvailabilitySlot.start_time.asc()).all()

    @staticmethod
    def add_slot(db: Session, **slot_data) -> AvailabilitySlot:
        slot = AvailabilitySlot(**slot_data)
        db.add(slot)
        db.flush()
        return slot

    @staticmethod
    def apply_updates(db: Session, slot: AvailabilitySlot, **updates) -> AvailabilitySlot:
        for key, value in updates.items():
            if hasattr(slot, key):
                setattr(slot, key, value)
        db.flush()
        return slot

    @staticmethod
    def delete_slot(db: Session, slot: AvailabilitySlot) -> None:
        db.delete(slot)
        db.flush()


class PatternRepository:
    """Repository for recurring availability patterns"""

    @staticmethod
    def get_pattern(
        db: Session, pattern_id: int, artist_id: Optional[int] = None
    ) -> Optional[RecurringPattern]:
        query = db.query(RecurringPattern).filter(RecurringPattern.id == pattern_id)
        if artist_id is not None:
            query = query.filter(RecurringPattern.artist_id == artist_id)
        return query.first()

    @staticmethod
    def get_patterns(
        db: Session, artist_id: int, is_active: Optional[bool] = None
    ) -> list[RecurringPattern]:
        query = db.query(RecurringPattern).filter(RecurringPattern.artist_id == artist_id)
        if is_active is not None:
            query = query.filter(RecurringPattern.is_active.is_(is_active))
        return query.order_by(RecurringPattern.created_at.desc(), RecurringPattern.id.desc()).all()

    @staticmethod
    def get_active_patterns_in_window(
        db: Session, start: date, end: date, artist_id: Optional[int] = None
    ) -> list[RecurringPattern]:
        """Active patterns whose validity window intersects [start, end]"""
        query = db.query(RecurringPattern).filter(
            RecurringPattern.is_active.is_(True),
            RecurringPattern.valid_from <= end,
            (RecurringPattern.valid_until.is_(None)) | (RecurringPattern.valid_until >= start),
        )
        if artist_id is not None:
            query = query.filter(RecurringPattern.artist_id == artist_id)
        return query.order_by(RecurringPattern.id.asc()).all()

    @staticmethod
    def count_linked_slots(db: Session, pattern_id: int) -> int:
        return (
            db.query(func.count(AvailabilitySlot.id))
            .filter(AvailabilitySlot.recurring_pattern_id == pattern_id)
            .scalar()
        )

    @staticmethod
    def get_linked_slot(
        db: Session, pattern_id: int, slot_date: date
    ) -> Optional[AvailabilitySlot]:
        return (
            db.query(AvailabilitySlot)
            .filter(
                AvailabilitySlot.recurring_pattern_id == pattern_id,
                AvailabilitySlot.date == slot_date,
            )
            .first()
        )

    @staticmethod
    def add_pattern(db: Session, artist_id: int, **pattern_data) -> RecurringPattern:
        pattern = RecurringPattern(artist_id=artist_id, **pattern_data)
        db.add(pattern)
        db.flush()
        return pattern


class TemplateRepository:
    """Repository for time slot templates"""

    @staticmethod
    def get_template(
        db: Session, template_id: int, artist_id: Optional[int] = None
    ) -> Optional[TimeSlotTemplate]:
        query = db.query(TimeSlotTemplate).filter(TimeSlotTemplate.id == template_id)
        if artist_id is not None:
            query = query.filter(TimeSlotTemplate.artist_id == artist_id)
        return query.first()

    @staticmethod
    def get_templates(
        db: Session,
        artist_id: int,
        is_active: Optional[bool] = None,
        is_default: Optional[bool] = None,
    ) -> list[TimeSlotTemplate]:
        query = db.query(TimeSlotTemplate).filter(TimeSlotTemplate.artist_id == artist_id)
        if is_active is not None:
            query = query.filter(TimeSlotTemplate.is_active.is_(is_active))
        if is_default is not None:
            query = query.filter(TimeSlotTemplate.is_default.is_(is_default))
        return query.order_by(TimeSlotTemplate.is_default.desc(), TimeSlotTemplate.name.asc()).all()

    @staticmethod
    def clear_default(db: Session, artist_id: int, except_id: Optional[int] = None) -> None:
        """Unset the default flag on every other template of the artist"""
        query = db.query(TimeSlotTemplate).filter(
            TimeSlotTemplate.artist_id == artist_id, TimeSlotTemplate.is_default.is_(True)
        )
        if except_id is not None:
            query = query.filter(TimeSlotTemplate.id != except_id)
        query.update({TimeSlotTemplate.is_default: False}, synchronize_session="fetch")

    @staticmethod
    def add_template(db: Session, artist_id: int, **template_data) -> TimeSlotTemplate:
        template = TimeSlotTemplate(artist_id=artist_id, **template_data)
        db.add(template)
        db.flush()
        return template


class AssignmentRepository:
    """Repository for venue assignments"""

    @staticmethod
    def _with_relations(db: Session):
        return db.query(Assignment).options(
            joinedload(Assignment.venue),
            joinedload(Assignment.artist),
            joinedload(Assignment.feedback),
        )

    @staticmethod
    def get_assignment(db: Session, assignment_id: int) -> Optional[Assignment]:
        return (
            AssignmentRepository._with_relations(db)
            .filter(Assignment.id == assignment_id)
            .first()
        )

    @staticmethod
    def find_by_key(
        db: Session,
        venue_id: int,
        assignment_date: date,
        slot: Optional[str],
        exclude_id: Optional[int] = None,
    ) -> Optional[Assignment]:
        """The assignment occupying (venue, date, slot), if any"""
        query = db.query(Assignment).filter(
            Assignment.venue_id == venue_id,
            Assignment.date == assignment_date,
            Assignment.slot_key == (slot or MAIN_SLOT),
        )
        if exclude_id is not None:
            query = query.filter(Assignment.id != exclude_id)
        return query.first()

    @staticmethod
    def get_assignments(
        db: Session, start: date, end: date, venue_ids: Optional[Iterable[int]] = None
    ) -> list[Assignment]:
        """Assignments within [start, end], ordered by date then start time"""
        query = AssignmentRepository._with_relations(db).filter(
            Assignment.date >= start, Assignment.date <= end
        )
        if venue_ids:
            query = query.filter(Assignment.venue_id.in_(list(venue_ids)))
        return query.order_by(
            Assignment.date.asc(), Assignment.start_time.asc(), Assignment.id.asc()
        ).all()

    @staticmethod
    def get_artist_assignments_on_date(
        db: Session, artist_id: int, assignment_date: date
    ) -> list[Assignment]:
        return (
            AssignmentRepository._with_relations(db)
            .filter(Assignment.artist_id == artist_id, Assignment.date == assignment_date)
            .order_by(Assignment.start_time.asc(), Assignment.id.asc())
            .all()
        )

    @staticmethod
    def get_artist_assignments_for_range(db: Session, start: date, end: date) -> list[Assignment]:
        """All assignments that name an artist (special events excluded)"""
        return (
            AssignmentRepository._with_relations(db)
            .filter(
                and_(
                    Assignment.artist_id.isnot(None),
                    Assignment.date >= start,
                    Assignment.date <= end,
                )
            )
            .order_by(Assignment.date.asc(), Assignment.start_time.asc(), Assignment.id.asc())
            .all()
        )

    @staticmethod
    def add_assignment(db: Session, **assignment_data) -> Assignment:
        assignment = Assignment(**assignment_data)
        db.add(assignment)
        db.flush()
        return assignment

    @staticmethod
    def delete_assignment(db: Session, assignment: Assignment) -> None:
        db.delete(assignment)
        db.flush()

    @staticmethod
    def delete_range(
        db: Session, start: date, end: date, venue_ids: Optional[Iterable[int]] = None
    ) -> int:
        query = db.query(Assignment).filter(Assignment.date >= start, Assignment.date <= end)
        if venue_ids:
            query = query.filter(Assignment.venue_id.in_(list(venue_ids)))
        return query.delete(synchronize_session=False)

    @staticmethod
    def get_live_artist_assignments(
        db: Session, artist_id: int, start: date, end: date
    ) -> list[Assignment]:
        """Non-cancelled assignments of an artist within [start, end]"""
        return (
            AssignmentRepository._with_relations(db)
            .filter(
                Assignment.artist_id == artist_id,
                Assignment.date >= start,
                Assignment.date <= end,
                Assignment.status != "CANCELLED",
            )
            .order_by(Assignment.date.asc(), Assignment.start_time.asc(), Assignment.id.asc())
            .all()
        )


class BlackoutRepository:
    """Repository for artist blackout periods"""

    @staticmethod
    def get_blackout(
        db: Session, blackout_id: int, artist_id: Optional[int] = None
    ) -> Optional[BlackoutPeriod]:
        query = db.query(BlackoutPeriod).filter(BlackoutPeriod.id == blackout_id)
        if artist_id is not None:
            query = query.filter(BlackoutPeriod.artist_id == artist_id)
        return query.first()

    @staticmethod
    def get_blackouts(
        db: Session,
        artist_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
        blackout_type: Optional[str] = None,
    ) -> list[BlackoutPeriod]:
        """Blackouts of an artist intersecting [start, end] (either bound optional)"""
        query = db.query(BlackoutPeriod).filter(BlackoutPeriod.artist_id == artist_id)
        if start is not None:
            query = query.filter(BlackoutPeriod.end_date >= start)
        if end is not None:
            query = query.filter(BlackoutPeriod.start_date <= end)
        if blackout_type:
            query = query.filter(BlackoutPeriod.blackout_type == blackout_type)
        return query.order_by(BlackoutPeriod.start_date.asc(), BlackoutPeriod.id.asc()).all()

    @staticmethod
    def get_blackouts_for_range(db: Session, start: date, end: date) -> list[BlackoutPeriod]:
        """Blackouts of every artist intersecting [start, end]"""
        return (
            db.query(BlackoutPeriod)
            .filter(BlackoutPeriod.end_date >= start, BlackoutPeriod.start_date <= end)
            .order_by(BlackoutPeriod.start_date.asc(), BlackoutPeriod.id.asc())
            .all()
        )

    @staticmethod
    def add_blackout(db: Session, artist_id: int, **blackout_data) -> BlackoutPeriod:
        blackout = BlackoutPeriod(artist_id=artist_id, **blackout_data)
        db.add(blackout)
        db.flush()
        return blackout

    @staticmethod
    def delete_blackout(db: Session, blackout: BlackoutPeriod) -> None:
        db.delete(blackout)
        db.flush()

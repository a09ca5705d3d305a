"""Assignment service - Book artists (or special events) into venue slots"""

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...cache import invalidate_calendar_month
from ...models import MAIN_SLOT, Venue
from ...models_scheduling import Assignment
from ...shared.errors import ConflictError, NotFoundError, ValidationError
from .conflict_service import Conflict, ConflictService
from .repository import ArtistRepository, AssignmentRepository, VenueRepository
from .schemas import AssignmentCreate, AssignmentStatus, AssignmentUpdate
from .time_calculator import local_today, month_bounds, normalize_range, to_local_date

logger = logging.getLogger(__name__)


def initial_status(assignment_date: date, today: Optional[date] = None) -> str:
    """Today and future nights start SCHEDULED; back-filled past nights are COMPLETED"""
    today = today or local_today()
    if assignment_date >= today:
        return AssignmentStatus.SCHEDULED.value
    return AssignmentStatus.COMPLETED.value


def validate_slot(venue: Venue, slot: Optional[str]) -> Optional[str]:
    """A slot must name one of the venue's slots; single-slot venues take none"""
    slot = slot.strip() if slot else None
    if venue.slots:
        if slot not in venue.slots:
            raise ValidationError(
                f"Slot must be one of: {', '.join(venue.slots)}", field="slot"
            )
        return slot
    if slot and slot != MAIN_SLOT:
        raise ValidationError(f"Venue '{venue.name}' has no named slots", field="slot")
    return None


class AssignmentService:
    """Service layer for venue assignments"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AssignmentRepository()

    def get_assignment(self, assignment_id: int) -> Assignment:
        assignment = self.repo.get_assignment(self.db, assignment_id)
        if not assignment:
            raise NotFoundError("Assignment not found")
        return assignment

    def list_for_range(
        self, start, end, venue_ids: Optional[Iterable[int]] = None
    ) -> list[Assignment]:
        return self.repo.get_assignments(
            self.db, to_local_date(start), to_local_date(end), venue_ids
        )

    def _conflict_for(self, assignment: Assignment) -> Optional[Conflict]:
        if assignment.artist_id is None:
            return None
        return ConflictService(self.db).detect_for_artist_on_date(
            assignment.artist_id, assignment.date
        )

    def create(self, data: AssignmentCreate) -> tuple[Assignment, Optional[Conflict]]:
        """
        Create an assignment for one (venue, date, slot).

        Returns the new assignment and, when the artist is now booked more
        than once that night, the informational conflict.

        Raises:
            ValidationError: Bad times, unknown slot, artist/special event mix-up
            NotFoundError: Unknown venue or artist
            ConflictError: The (venue, date, slot) is already taken
        """
        special_event = data.specialEvent.strip() if data.specialEvent else None
        if data.artistId is None and not special_event:
            raise ValidationError("Either artistId or specialEvent is required", field="artistId")
        if data.artistId is not None and special_event:
            raise ValidationError(
                "Provide either artistId or specialEvent, not both", field="specialEvent"
            )

        venue = VenueRepository.get_venue(self.db, data.venueId)
        if not venue:
            raise NotFoundError("Venue not found")
        if data.artistId is not None and not ArtistRepository.get_artist(self.db, data.artistId):
            raise NotFoundError("Artist not found")

        start, end = normalize_range(data.startTime, data.endTime)
        slot = validate_slot(venue, data.slot)
        assignment_date = to_local_date(data.date)

        if self.repo.find_by_key(self.db, venue.id, assignment_date, slot):
            logger.warning(
                f"⚠️ {venue.name} {slot or MAIN_SLOT} already booked on {assignment_date}"
            )
            raise ConflictError("This slot is already booked for this venue and date")

        try:
            assignment = self.repo.add_assignment(
                self.db,
                venue_id=venue.id,
                artist_id=data.artistId,
                special_event=special_event,
                date=assignment_date,
                start_time=start,
                end_time=end,
                slot=slot,
                slot_key=slot or MAIN_SLOT,
                status=initial_status(assignment_date),
                notes=data.notes,
            )
            self.db.commit()
        except IntegrityError as e:
            # Lost the race against a concurrent writer on the same key
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate assignment for venue {venue.id} on {assignment_date}: {e.orig}")
            raise ConflictError("This slot is already booked for this venue and date") from e

        invalidate_calendar_month(assignment_date.year, assignment_date.month)
        assignment = self.get_assignment(assignment.id)
        logger.info(
            f"✅ Assignment {assignment.id} created: venue {venue.id} on {assignment_date} "
            f"({slot or MAIN_SLOT})"
        )
        return assignment, self._conflict_for(assignment)

    def update(
        self, assignment_id: int, data: AssignmentUpdate
    ) -> tuple[Assignment, Optional[Conflict]]:
        """
        Update an assignment under optimistic locking.

        ``data.version`` makes the update conditional on the caller's copy;
        a concurrent writer that committed first also surfaces as a conflict.
        """
        assignment = self.get_assignment(assignment_id)

        if data.version is not None and data.version != assignment.version:
            logger.warning(
                f"⚠️ Stale update for assignment {assignment_id}: "
                f"version {data.version} != {assignment.version}"
            )
            raise ConflictError("Assignment was modified by someone else; reload and retry")

        special_event = data.specialEvent.strip() if data.specialEvent else None
        if data.artistId is not None and special_event:
            raise ValidationError(
                "Provide either artistId or specialEvent, not both", field="specialEvent"
            )
        if data.artistId is not None:
            if not ArtistRepository.get_artist(self.db, data.artistId):
                raise NotFoundError("Artist not found")
            assignment.artist_id = data.artistId
            assignment.special_event = None
        elif special_event:
            assignment.special_event = special_event
            assignment.artist_id = None

        if data.startTime is not None or data.endTime is not None:
            start, end = normalize_range(
                data.startTime if data.startTime is not None else assignment.start_time,
                data.endTime if data.endTime is not None else assignment.end_time,
            )
            assignment.start_time = start
            assignment.end_time = end

        if data.notes is not None:
            assignment.notes = data.notes
        if data.status is not None:
            assignment.status = data.status.value

        try:
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Concurrent update lost for assignment {assignment_id}")
            raise ConflictError("Assignment was modified by someone else; reload and retry") from e

        invalidate_calendar_month(assignment.date.year, assignment.date.month)
        assignment = self.get_assignment(assignment_id)
        return assignment, self._conflict_for(assignment)

    def delete(self, assignment_id: int) -> None:
        assignment = self.get_assignment(assignment_id)
        assignment_date = assignment.date

        self.repo.delete_assignment(self.db, assignment)
        self.db.commit()
        invalidate_calendar_month(assignment_date.year, assignment_date.month)
        logger.info(f"🗑️ Deleted assignment {assignment_id}")

    def delete_month(self, month: int, year: int, venue_ids: Optional[Iterable[int]] = None) -> int:
        """Clear a whole month of assignments, optionally for some venues only"""
        start, end = month_bounds(year, month)
        deleted = self.repo.delete_range(self.db, start, end, venue_ids)
        self.db.commit()
        invalidate_calendar_month(year, month)
        logger.info(f"🗑️ Deleted {deleted} assignments for {year}-{month:02d}")
        return deleted

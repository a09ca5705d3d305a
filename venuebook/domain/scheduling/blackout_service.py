"""Blackout service - Date ranges in which an artist takes no bookings

Creating a blackout blocks the artist's open availability inside the range:
AVAILABLE and TENTATIVE slots become UNAVAILABLE and recurring instances stop
being offered on those dates. A range that already holds a booking (a BOOKED
slot or a live assignment) is refused. Deleting a blackout does not reopen
the blocked slots; the artist edits them back explicitly.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import invalidate_calendar_month
from ...models_scheduling import BlackoutPeriod
from ...shared.errors import ConflictError, NotFoundError, ValidationError
from .availability_service import BOOKABLE_STATUSES
from .repository import (
    ArtistRepository,
    AssignmentRepository,
    AvailabilityRepository,
    BlackoutRepository,
)
from .schemas import BlackoutCreate, BlackoutUpdate, SlotStatus
from .time_calculator import local_today, month_bounds, to_local_date

logger = logging.getLogger(__name__)


def covered_months(start: date, end: date) -> list[tuple]:
    """(year, month) pairs touched by the inclusive range"""
    months = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append((year, month))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def is_blacked_out(blackouts, artist_id: int, slot_date: date) -> bool:
    return any(
        b.artist_id == artist_id and b.start_date <= slot_date <= b.end_date for b in blackouts
    )


class BlackoutService:
    """Service layer for artist blackout periods"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BlackoutRepository()

    def get_blackout(self, blackout_id: int, artist_id: Optional[int] = None) -> BlackoutPeriod:
        blackout = self.repo.get_blackout(self.db, blackout_id, artist_id)
        if not blackout:
            raise NotFoundError("Blackout period not found")
        return blackout

    def list_blackouts(
        self,
        artist_id: int,
        blackout_type: Optional[str] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
        upcoming: bool = False,
    ) -> list[BlackoutPeriod]:
        """
        Blackouts of an artist, optionally narrowed.

        ``upcoming`` keeps periods that have not ended yet and wins over
        ``year``/``month``; ``month`` without ``year`` is ignored.
        """
        start = end = None
        if upcoming:
            start = local_today()
        elif year and month:
            start, end = month_bounds(year, month)
        elif year:
            start, end = date(year, 1, 1), date(year, 12, 31)
        return self.repo.get_blackouts(self.db, artist_id, start, end, blackout_type)

    def find_blackout(self, artist_id: int, slot_date) -> Optional[BlackoutPeriod]:
        """The blackout covering ``slot_date``, if any"""
        slot_date = to_local_date(slot_date)
        blackouts = self.repo.get_blackouts(self.db, artist_id, slot_date, slot_date)
        return blackouts[0] if blackouts else None

    def _ensure_no_bookings(self, artist_id: int, start: date, end: date) -> None:
        booked_dates = {
            slot.date
            for slot in AvailabilityRepository.get_artist_slots_in_range(
                self.db, artist_id, start, end, [SlotStatus.BOOKED.value]
            )
        }
        booked_dates.update(
            a.date
            for a in AssignmentRepository.get_live_artist_assignments(self.db, artist_id, start, end)
        )
        if booked_dates:
            listed = ", ".join(d.isoformat() for d in sorted(booked_dates))
            logger.warning(
                f"⚠️ Blackout {start}..{end} for artist {artist_id} refused: booked on {listed}"
            )
            raise ConflictError(
                f"Cannot black out this period; the artist is booked on {listed}"
            )

    def _block_slots(self, blackout: BlackoutPeriod) -> int:
        slots = AvailabilityRepository.get_artist_slots_in_range(
            self.db, blackout.artist_id, blackout.start_date, blackout.end_date, BOOKABLE_STATUSES
        )
        for slot in slots:
            slot.status = SlotStatus.UNAVAILABLE.value
            slot.notes = f"Blackout: {blackout.title}"
        self.db.flush()
        return len(slots)

    @staticmethod
    def _validate_range(start: date, end: date) -> None:
        if end < start:
            raise ValidationError("End date must not be before start date", field="endDate")

    def create_blackout(self, artist_id: int, data: BlackoutCreate) -> BlackoutPeriod:
        """
        Black out [startDate, endDate] for an artist.

        Raises:
            NotFoundError: Unknown artist
            ValidationError: End date before start date
            ConflictError: The artist is already booked inside the range
        """
        logger.info(f"📥 Creating blackout for artist {artist_id}")
        if not ArtistRepository.get_artist(self.db, artist_id):
            raise NotFoundError("Artist not found")

        start, end = to_local_date(data.startDate), to_local_date(data.endDate)
        self._validate_range(start, end)
        self._ensure_no_bookings(artist_id, start, end)

        blackout = self.repo.add_blackout(
            self.db,
            artist_id,
            start_date=start,
            end_date=end,
            title=data.title.strip(),
            description=data.description,
            blackout_type=data.blackoutType.value,
        )
        blocked = self._block_slots(blackout)
        self.db.commit()
        self.db.refresh(blackout)

        for year, month in covered_months(start, end):
            invalidate_calendar_month(year, month)
        logger.info(
            f"✅ Blackout {blackout.id} created for artist {artist_id} "
            f"({start}..{end}), {blocked} slot(s) blocked"
        )
        return blackout

    def update_blackout(
        self, blackout_id: int, data: BlackoutUpdate, artist_id: Optional[int] = None
    ) -> BlackoutPeriod:
        """Edit a blackout; a changed range is re-checked and re-blocked"""
        blackout = self.get_blackout(blackout_id, artist_id)
        old_start, old_end = blackout.start_date, blackout.end_date

        start = to_local_date(data.startDate) if data.startDate else old_start
        end = to_local_date(data.endDate) if data.endDate else old_end
        self._validate_range(start, end)
        range_changed = (start, end) != (old_start, old_end)
        if range_changed:
            self._ensure_no_bookings(blackout.artist_id, start, end)

        blackout.start_date, blackout.end_date = start, end
        if data.title is not None:
            blackout.title = data.title.strip()
        if data.description is not None:
            blackout.description = data.description
        if data.blackoutType is not None:
            blackout.blackout_type = data.blackoutType.value
        if range_changed:
            self._block_slots(blackout)

        self.db.commit()
        self.db.refresh(blackout)
        if range_changed:
            for year, month in set(covered_months(old_start, old_end) + covered_months(start, end)):
                invalidate_calendar_month(year, month)
        logger.info(f"✅ Blackout {blackout.id} updated")
        return blackout

    def delete_blackout(self, blackout_id: int, artist_id: Optional[int] = None) -> None:
        blackout = self.get_blackout(blackout_id, artist_id)
        start, end = blackout.start_date, blackout.end_date
        self.repo.delete_blackout(self.db, blackout)
        self.db.commit()
        for year, month in covered_months(start, end):
            invalidate_calendar_month(year, month)
        logger.info(f"🗑️ Deleted blackout {blackout_id}")

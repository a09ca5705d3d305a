"""Availability service - Concrete artist availability slots

Every slot write enforces the no-overlap rule for one artist on one local
date. Overlap is evaluated on the buffer-extended range
``[start - bufferBefore, end + bufferAfter)`` clamped to the day; slots with
status TRAVEL_TIME are buffer-derived and never collide.
"""

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...cache import invalidate_calendar_month
from ...config import MAX_BULK_DATES
from ...models_scheduling import AvailabilitySlot
from ...shared.errors import ConflictError, NotFoundError, ValidationError
from ...shared.validators import MINUTES_PER_DAY
from .repository import ArtistRepository, AssignmentRepository, AvailabilityRepository
from .schemas import AssignmentStatus, BulkSlotRequest, SlotFields, SlotStatus, SlotUpsert
from .time_calculator import normalize_range, ranges_overlap, to_local_date, to_minutes

logger = logging.getLogger(__name__)

BOOKABLE_STATUSES = (SlotStatus.AVAILABLE.value, SlotStatus.TENTATIVE.value)


class SlotOverlapError(ValidationError):
    """A slot write would overlap another slot of the same artist and date"""


def extended_range(start_time: str, end_time: str, buffer_before: int = 0, buffer_after: int = 0):
    """Buffer-extended range in minutes, clamped to [0, 1440]"""
    start = max(0, to_minutes(start_time) - (buffer_before or 0))
    end = min(MINUTES_PER_DAY, to_minutes(end_time) + (buffer_after or 0))
    return start, end


def _covers(slot, start_min: int, end_min: int) -> bool:
    return to_minutes(slot.start_time) <= start_min and to_minutes(slot.end_time) >= end_min


def slot_values(data: SlotFields) -> dict:
    """Column values for a validated slot payload"""
    start, end = normalize_range(data.startTime, data.endTime)
    return {
        "start_time": start,
        "end_time": end,
        "status": data.status.value,
        "price_multiplier": data.priceMultiplier,
        "minimum_hours": data.minimumHours,
        "buffer_before": data.bufferBefore,
        "buffer_after": data.bufferAfter,
        "notes": data.notes,
        "requirements": data.requirements,
    }


class BulkResult:
    """Mixed outcome of a multi-date write"""

    def __init__(self):
        self.updated: list[AvailabilitySlot] = []
        self.failed: list[dict] = []

    def fail(self, slot_date: date, reason: str, detail: Optional[str] = None) -> None:
        self.failed.append({"date": slot_date, "reason": reason, "detail": detail})


class AvailabilityService:
    """Service layer for the availability store"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_slots(self, artist_id: int, start, end) -> list[AvailabilitySlot]:
        """Concrete slots only; see PatternService.get_merged_slots for virtual ones"""
        return self.repo.get_slots(self.db, artist_id, to_local_date(start), to_local_date(end))

    def get_slot(self, slot_id: int) -> AvailabilitySlot:
        slot = self.repo.get_slot(self.db, slot_id)
        if not slot:
            raise NotFoundError("Availability slot not found")
        return slot

    def find_overlap(
        self,
        artist_id: int,
        slot_date: date,
        values: dict,
        exclude_id: Optional[int] = None,
    ) -> Optional[AvailabilitySlot]:
        """First slot on the same date whose buffered range overlaps ``values``"""
        if values.get("status") == SlotStatus.TRAVEL_TIME.value:
            return None

        start, end = extended_range(
            values["start_time"],
            values["end_time"],
            values.get("buffer_before", 0),
            values.get("buffer_after", 0),
        )
        for other in self.repo.get_slots_on_date(self.db, artist_id, slot_date, exclude_id):
            if other.status == SlotStatus.TRAVEL_TIME.value:
                continue
            other_start, other_end = extended_range(
                other.start_time, other.end_time, other.buffer_before, other.buffer_after
            )
            if ranges_overlap(start, end, other_start, other_end):
                return other
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write_slot(
        self,
        artist_id: int,
        slot_date: date,
        values: dict,
        slot_id: Optional[int] = None,
        existing: Optional[AvailabilitySlot] = None,
    ) -> AvailabilitySlot:
        """
        Create or update one slot inside the caller's transaction.

        The slot is identified by ``slot_id`` or by the same
        (artist, date, start_time); otherwise a new slot is created.

        Raises:
            NotFoundError: ``slot_id`` does not exist for this artist
            SlotOverlapError: The write would overlap another slot
        """
        if slot_id is not None:
            existing = self.repo.get_slot(self.db, slot_id)
            if not existing or existing.artist_id != artist_id:
                raise NotFoundError("Availability slot not found")
        elif existing is None:
            existing = self.repo.get_slot_by_start(
                self.db, artist_id, slot_date, values["start_time"]
            )

        clash = self.find_overlap(
            artist_id, slot_date, values, exclude_id=existing.id if existing else None
        )
        if clash:
            raise SlotOverlapError(
                f"Slot overlaps existing {clash.status} slot "
                f"{clash.start_time}-{clash.end_time} on {slot_date.isoformat()}",
                field="startTime",
            )

        if existing:
            return self.repo.apply_updates(self.db, existing, date=slot_date, **values)
        return self.repo.add_slot(self.db, artist_id=artist_id, date=slot_date, **values)

    def upsert_slot(self, artist_id: int, data: SlotUpsert) -> AvailabilitySlot:
        """Create or update a single slot in its own transaction"""
        if not ArtistRepository.get_artist(self.db, artist_id):
            raise NotFoundError("Artist not found")

        slot_date = to_local_date(data.date)
        values = slot_values(data)
        previous_date = None
        if data.id is not None:
            previous = self.get_slot(data.id)
            previous_date = previous.date

        try:
            slot = self.write_slot(artist_id, slot_date, values, slot_id=data.id)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate slot for artist {artist_id} on {slot_date}: {e.orig}")
            raise ConflictError("A slot already starts at this time on this date") from e
        except ValidationError:
            self.db.rollback()
            logger.warning(f"⚠️ Rejected slot write for artist {artist_id} on {slot_date}")
            raise

        self.db.refresh(slot)
        invalidate_calendar_month(slot_date.year, slot_date.month)
        if previous_date and (previous_date.year, previous_date.month) != (slot_date.year, slot_date.month):
            invalidate_calendar_month(previous_date.year, previous_date.month)
        logger.info(f"✅ Slot {slot.id} saved for artist {artist_id} on {slot_date}")
        return slot

    def bulk_upsert(
        self,
        artist_id: int,
        dates: Iterable,
        values: dict,
        overwrite_existing: bool = True,
    ) -> BulkResult:
        """
        Apply the same slot values to many dates.

        Each date is written in its own savepoint: a failing date is skipped
        and reported (reason ``overlap``, ``exists`` or ``invalid``) while
        the others are kept.
        """
        dates = list(dates)
        if len(dates) > MAX_BULK_DATES:
            raise ValidationError(
                f"At most {MAX_BULK_DATES} dates per request", field="dates"
            )
        if not ArtistRepository.get_artist(self.db, artist_id):
            raise NotFoundError("Artist not found")

        result = BulkResult()
        touched_months = set()
        seen = set()

        for raw_date in dates:
            try:
                slot_date = to_local_date(raw_date)
            except ValidationError as e:
                result.fail(raw_date, "invalid", e.message)
                continue
            if slot_date in seen:
                continue
            seen.add(slot_date)

            existing = self.repo.get_slot_by_start(
                self.db, artist_id, slot_date, values["start_time"]
            )
            if existing and not overwrite_existing:
                result.fail(slot_date, "exists", "Availability already exists for this date and time")
                continue

            savepoint = self.db.begin_nested()
            try:
                slot = self.write_slot(artist_id, slot_date, values, existing=existing)
                savepoint.commit()
            except SlotOverlapError as e:
                savepoint.rollback()
                result.fail(slot_date, "overlap", e.message)
                continue
            except IntegrityError:
                savepoint.rollback()
                result.fail(slot_date, "exists", "Availability already exists for this date and time")
                continue
            except ValidationError as e:
                savepoint.rollback()
                result.fail(slot_date, "invalid", e.message)
                continue

            result.updated.append(slot)
            touched_months.add((slot_date.year, slot_date.month))

        self.db.commit()
        for slot in result.updated:
            self.db.refresh(slot)
        for year, month in touched_months:
            invalidate_calendar_month(year, month)

        if result.failed:
            logger.warning(
                f"⚠️ Bulk availability for artist {artist_id}: "
                f"{len(result.updated)} saved, {len(result.failed)} failed"
            )
        else:
            logger.info(f"✅ Bulk availability for artist {artist_id}: {len(result.updated)} saved")
        return result

    def bulk_upsert_slots(self, artist_id: int, data: BulkSlotRequest) -> BulkResult:
        return self.bulk_upsert(
            artist_id, data.dates, slot_values(data), overwrite_existing=data.overwriteExisting
        )

    def delete_slot(self, slot_id: int, artist_id: Optional[int] = None) -> None:
        """Hard-delete a slot; BOOKED slots must be released instead"""
        slot = self.get_slot(slot_id)
        if artist_id is not None and slot.artist_id != artist_id:
            raise NotFoundError("Availability slot not found")
        if slot.status == SlotStatus.BOOKED.value:
            logger.warning(f"⚠️ Refused to delete BOOKED slot {slot_id}")
            raise ConflictError("Booked slots cannot be deleted; release the booking first")

        slot_date = slot.date
        self.repo.delete_slot(self.db, slot)
        self.db.commit()
        invalidate_calendar_month(slot_date.year, slot_date.month)
        logger.info(f"🗑️ Deleted slot {slot_id}")

    # ------------------------------------------------------------------
    # Booking lifecycle entry points
    # ------------------------------------------------------------------

    def mark_booked(self, artist_id: int, slot_date, start_time: str, end_time: str) -> AvailabilitySlot:
        """
        Record a confirmed booking in the artist's availability.

        A BOOKED slot already covering the range is returned as is (several
        assignments can share one booked block); otherwise a covering
        AVAILABLE/TENTATIVE slot is flipped to BOOKED, or a new BOOKED slot
        is created (subject to the overlap rule).
        """
        slot_date = to_local_date(slot_date)
        start, end = normalize_range(start_time, end_time)
        start_min, end_min = to_minutes(start), to_minutes(end)

        slots = self.repo.get_slots_on_date(self.db, artist_id, slot_date)
        for slot in slots:
            if slot.status == SlotStatus.BOOKED.value and _covers(slot, start_min, end_min):
                return slot
        for slot in slots:
            if slot.status in BOOKABLE_STATUSES and _covers(slot, start_min, end_min):
                slot.status = SlotStatus.BOOKED.value
                self.db.commit()
                self.db.refresh(slot)
                invalidate_calendar_month(slot_date.year, slot_date.month)
                logger.info(f"✅ Slot {slot.id} marked BOOKED for artist {artist_id} on {slot_date}")
                return slot

        values = {
            "start_time": start,
            "end_time": end,
            "status": SlotStatus.BOOKED.value,
            "price_multiplier": 1.0,
            "buffer_before": 0,
            "buffer_after": 0,
        }
        try:
            slot = self.write_slot(artist_id, slot_date, values)
            self.db.commit()
        except (ValidationError, IntegrityError):
            self.db.rollback()
            raise
        self.db.refresh(slot)
        invalidate_calendar_month(slot_date.year, slot_date.month)
        logger.info(f"✅ Created BOOKED slot {slot.id} for artist {artist_id} on {slot_date}")
        return slot

    def release_booked(
        self, artist_id: int, slot_date, start_time: str, end_time: str
    ) -> Optional[AvailabilitySlot]:
        """
        Return the BOOKED slot covering the range to AVAILABLE, if there is one.

        The slot stays BOOKED while any other live (non-cancelled) assignment
        of the artist on that date still falls inside it. Callers release
        after the assignment itself was deleted, cancelled or moved.
        """
        slot_date = to_local_date(slot_date)
        start, end = normalize_range(start_time, end_time)
        start_min, end_min = to_minutes(start), to_minutes(end)

        for slot in self.repo.get_slots_on_date(self.db, artist_id, slot_date):
            if slot.status == SlotStatus.BOOKED.value and _covers(slot, start_min, end_min):
                holder = self._live_assignment_in(slot)
                if holder:
                    logger.info(
                        f"Slot {slot.id} stays BOOKED: assignment {holder.id} "
                        f"{holder.start_time}-{holder.end_time} still holds it"
                    )
                    return None
                slot.status = SlotStatus.AVAILABLE.value
                self.db.commit()
                self.db.refresh(slot)
                invalidate_calendar_month(slot_date.year, slot_date.month)
                logger.info(f"✅ Released BOOKED slot {slot.id} for artist {artist_id} on {slot_date}")
                return slot

        logger.info(f"No BOOKED slot to release for artist {artist_id} on {slot_date} {start}-{end}")
        return None

    def _live_assignment_in(self, slot: AvailabilitySlot):
        """First non-cancelled assignment of the slot's artist overlapping the slot"""
        slot_start, slot_end = to_minutes(slot.start_time), to_minutes(slot.end_time)
        for assignment in AssignmentRepository.get_artist_assignments_on_date(
            self.db, slot.artist_id, slot.date
        ):
            if assignment.status == AssignmentStatus.CANCELLED.value:
                continue
            start, end = normalize_range(assignment.start_time, assignment.end_time)
            if ranges_overlap(to_minutes(start), to_minutes(end), slot_start, slot_end):
                return assignment
        return None

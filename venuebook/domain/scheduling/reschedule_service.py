"""Reschedule service - Drag-and-drop moves of availability slots"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...cache import invalidate_calendar_month
from ...models_scheduling import AvailabilitySlot
from ...shared.errors import ConflictError, NotFoundError, ValidationError
from .availability_service import AvailabilityService, SlotOverlapError
from .schemas import SlotStatus
from .time_calculator import add_minutes, parse_time, to_local_date, to_minutes

logger = logging.getLogger(__name__)


class RescheduleService:
    """Move slots between dates or within a day, re-checking overlap"""

    def __init__(self, db: Session):
        self.db = db
        self.availability = AvailabilityService(db)

    def _load_movable(self, slot_id: int, artist_id=None) -> AvailabilitySlot:
        slot = self.availability.get_slot(slot_id)
        if artist_id is not None and slot.artist_id != artist_id:
            raise NotFoundError("Availability slot not found")
        if slot.status == SlotStatus.BOOKED.value:
            raise ConflictError("Booked slots cannot be moved; reschedule the booking instead")
        return slot

    def _check_and_apply(self, slot: AvailabilitySlot, new_date, start_time: str, end_time: str):
        values = {
            "start_time": start_time,
            "end_time": end_time,
            "status": slot.status,
            "buffer_before": slot.buffer_before,
            "buffer_after": slot.buffer_after,
        }
        clash = self.availability.find_overlap(slot.artist_id, new_date, values, exclude_id=slot.id)
        if clash:
            logger.warning(
                f"⚠️ Move of slot {slot.id} to {new_date} {start_time} rejected: overlaps slot {clash.id}"
            )
            raise SlotOverlapError(
                f"Slot overlaps existing {clash.status} slot "
                f"{clash.start_time}-{clash.end_time} on {new_date.isoformat()}",
                field="date",
            )

        old_date = slot.date
        slot.date = new_date
        slot.start_time = start_time
        slot.end_time = end_time
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("A slot already starts at this time on this date") from e

        self.db.refresh(slot)
        invalidate_calendar_month(new_date.year, new_date.month)
        if (old_date.year, old_date.month) != (new_date.year, new_date.month):
            invalidate_calendar_month(old_date.year, old_date.month)
        return slot

    def move_slot(self, slot_id: int, new_date, artist_id=None) -> AvailabilitySlot:
        """
        Move a slot to another date, keeping its times.

        Moving onto the slot's own date is a no-op. If the slot would overlap
        something on the target date the move is rejected and the slot stays
        where it was.
        """
        slot = self._load_movable(slot_id, artist_id)
        new_date = to_local_date(new_date)
        if new_date == slot.date:
            return slot

        slot = self._check_and_apply(slot, new_date, slot.start_time, slot.end_time)
        logger.info(f"✅ Moved slot {slot.id} to {new_date}")
        return slot

    def reorder_slot(self, slot_id: int, start_time: str, artist_id=None) -> AvailabilitySlot:
        """Shift a slot within its day to a new start, keeping its duration"""
        slot = self._load_movable(slot_id, artist_id)
        start = parse_time(start_time, "startTime")
        if start == slot.start_time:
            return slot

        duration = to_minutes(slot.end_time) - to_minutes(slot.start_time)
        try:
            end = add_minutes(start, duration)
        except ValidationError as e:
            raise ValidationError("Slot would run past the end of the day", field="startTime") from e

        slot = self._check_and_apply(slot, slot.date, start, end)
        logger.info(f"✅ Reordered slot {slot.id} to {start}-{end}")
        return slot

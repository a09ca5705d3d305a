"""Recurring pattern service - Lazy expansion of recurring availability

Patterns are never expanded eagerly into rows. Reads synthesize virtual
slots for the requested window; a virtual instance becomes a concrete row
only when it is edited (``materialize``).
"""

import logging
from datetime import date, datetime, time
from typing import Optional

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, rrule
from dateutil.rrule import FR, MO, SA, SU, TH, TU, WE
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...cache import invalidate_all_calendars, invalidate_calendar_month
from ...models_scheduling import AvailabilitySlot, RecurringPattern
from ...shared.errors import ConflictError, NotFoundError, ValidationError
from .availability_service import AvailabilityService, slot_values
from .blackout_service import is_blacked_out
from .repository import (
    ArtistRepository,
    AvailabilityRepository,
    BlackoutRepository,
    PatternRepository,
)
from .schemas import (
    Frequency,
    RecurringPatternCreate,
    RecurringPatternUpdate,
    SlotStatus,
    SlotUpsert,
)
from .time_calculator import normalize_range, to_local_date

logger = logging.getLogger(__name__)

# Sunday=0 .. Saturday=6
_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)
_FREQUENCIES = {
    Frequency.DAILY.value: DAILY,
    Frequency.WEEKLY.value: WEEKLY,
    Frequency.MONTHLY.value: MONTHLY,
}


class VirtualSlot:
    """Unpersisted availability produced by a recurring pattern for one date"""

    id = None
    template_id = None
    buffer_before = 0
    buffer_after = 0
    notes = None
    requirements = None
    is_virtual = True

    def __init__(self, pattern: RecurringPattern, slot_date: date):
        self.artist_id = pattern.artist_id
        self.date = slot_date
        self.start_time = pattern.start_time
        self.end_time = pattern.end_time
        self.status = SlotStatus.AVAILABLE.value
        self.price_multiplier = pattern.price_multiplier
        self.minimum_hours = pattern.minimum_hours
        self.recurring_pattern_id = pattern.id

    def __repr__(self):
        return f"<VirtualSlot pattern={self.recurring_pattern_id} {self.date} {self.start_time}-{self.end_time}>"


def pattern_dates(pattern: RecurringPattern, start: date, end: date) -> list[date]:
    """Dates in [start, end] produced by the pattern's rule and validity window"""
    if not pattern.is_active:
        return []

    window_start = max(start, pattern.valid_from)
    window_end = min(end, pattern.valid_until) if pattern.valid_until else end
    if window_start > window_end:
        return []

    freq = _FREQUENCIES.get(pattern.frequency)
    if freq is None:
        logger.warning(f"⚠️ Pattern {pattern.id} has unsupported frequency {pattern.frequency}")
        return []

    rule_args = {
        "dtstart": datetime.combine(window_start, time.min),
        "until": datetime.combine(window_end, time.min),
    }
    if freq == WEEKLY:
        if pattern.day_of_week is None:
            return []
        rule_args["byweekday"] = _WEEKDAYS[pattern.day_of_week]
    elif freq == MONTHLY:
        if pattern.day_of_month is None:
            return []
        # Months without that day (e.g. the 31st) produce nothing
        rule_args["bymonthday"] = pattern.day_of_month

    return [occurrence.date() for occurrence in rrule(freq, **rule_args)]


def expand(pattern: RecurringPattern, start: date, end: date) -> list[VirtualSlot]:
    """Virtual slots for every date in [start, end] the pattern produces"""
    return [VirtualSlot(pattern, slot_date) for slot_date in pattern_dates(pattern, start, end)]


def merge_slots(concrete: list, virtual: list) -> list:
    """
    Concrete rows win: any concrete slot on a date suppresses every virtual
    instance for the same artist and date. Result sorted by (date, start).
    """
    occupied = {(slot.artist_id, slot.date) for slot in concrete}
    merged = list(concrete)
    merged.extend(v for v in virtual if (v.artist_id, v.date) not in occupied)
    merged.sort(key=lambda s: (s.date, s.start_time, s.artist_id))
    return merged


def drop_blacked_out(virtual: list, blackouts: list) -> list:
    """Recurring instances are not offered on an artist's blackout dates"""
    if not blackouts:
        return virtual
    return [v for v in virtual if not is_blacked_out(blackouts, v.artist_id, v.date)]


class PatternService:
    """Service layer for recurring patterns"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PatternRepository()

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------

    def get_merged_slots(self, artist_id: int, start, end) -> list:
        """Concrete slots plus virtual pattern instances for one artist"""
        start, end = to_local_date(start), to_local_date(end)
        concrete = AvailabilityRepository.get_slots(self.db, artist_id, start, end)
        virtual = []
        for pattern in self.repo.get_active_patterns_in_window(self.db, start, end, artist_id):
            virtual.extend(expand(pattern, start, end))
        blackouts = BlackoutRepository.get_blackouts(self.db, artist_id, start, end)
        virtual = drop_blacked_out(virtual, blackouts)
        return merge_slots(concrete, virtual)

    def get_merged_slots_for_range(self, start: date, end: date, statuses=None) -> list:
        """Merged slots of every artist, optionally filtered by status"""
        concrete = AvailabilityRepository.get_slots_for_range(self.db, start, end)
        virtual = []
        for pattern in self.repo.get_active_patterns_in_window(self.db, start, end):
            virtual.extend(expand(pattern, start, end))
        virtual = drop_blacked_out(
            virtual, BlackoutRepository.get_blackouts_for_range(self.db, start, end)
        )
        merged = merge_slots(concrete, virtual)
        if statuses:
            merged = [slot for slot in merged if slot.status in statuses]
        return merged

    def _materialize_pending(self, pattern: RecurringPattern, slot_date: date) -> AvailabilitySlot:
        """Linked slot for ``slot_date``, flushed but not committed"""
        existing = self.repo.get_linked_slot(self.db, pattern.id, slot_date)
        if existing:
            return existing

        if slot_date not in pattern_dates(pattern, slot_date, slot_date):
            raise ValidationError(
                f"Pattern '{pattern.name}' has no instance on {slot_date.isoformat()}",
                field="date",
            )

        virtual = VirtualSlot(pattern, slot_date)
        values = {
            "start_time": virtual.start_time,
            "end_time": virtual.end_time,
            "status": virtual.status,
            "price_multiplier": virtual.price_multiplier,
            "minimum_hours": virtual.minimum_hours,
            "buffer_before": 0,
            "buffer_after": 0,
            "recurring_pattern_id": pattern.id,
        }
        return AvailabilityService(self.db).write_slot(pattern.artist_id, slot_date, values)

    def materialize(self, pattern_id: int, slot_date, artist_id: Optional[int] = None) -> AvailabilitySlot:
        """
        Persist the virtual instance of a pattern on ``slot_date``.

        Idempotent: an already materialized instance is returned unchanged.

        Raises:
            NotFoundError: Unknown pattern (or not owned by ``artist_id``)
            ValidationError: The pattern does not produce ``slot_date``
        """
        pattern = self.get_pattern(pattern_id, artist_id)
        slot_date = to_local_date(slot_date)

        try:
            slot = self._materialize_pending(pattern, slot_date)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("A slot already starts at this time on this date") from e
        except ValidationError:
            self.db.rollback()
            raise

        self.db.refresh(slot)
        logger.info(f"✅ Materialized pattern {pattern.id} on {slot_date} as slot {slot.id}")
        return slot

    def edit_instance(self, artist_id: int, data: SlotUpsert) -> AvailabilitySlot:
        """
        Materialize a virtual instance and apply ``data`` to it in one transaction.

        A rejected edit leaves no materialized row behind.
        """
        pattern = self.get_pattern(data.recurringPatternId, artist_id)
        slot_date = to_local_date(data.date)
        values = slot_values(data)

        try:
            slot = self._materialize_pending(pattern, slot_date)
            slot = AvailabilityService(self.db).write_slot(
                artist_id, slot_date, values, existing=slot
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("A slot already starts at this time on this date") from e
        except ValidationError:
            self.db.rollback()
            logger.warning(
                f"⚠️ Rejected edit of pattern {pattern.id} instance on {slot_date}; rolled back"
            )
            raise

        self.db.refresh(slot)
        invalidate_calendar_month(slot_date.year, slot_date.month)
        logger.info(f"✅ Edited pattern {pattern.id} instance on {slot_date} as slot {slot.id}")
        return slot

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def get_pattern(self, pattern_id: int, artist_id: Optional[int] = None) -> RecurringPattern:
        pattern = self.repo.get_pattern(self.db, pattern_id, artist_id)
        if not pattern:
            raise NotFoundError("Recurring pattern not found")
        return pattern

    def list_patterns(self, artist_id: int, is_active: Optional[bool] = None) -> list[RecurringPattern]:
        return self.repo.get_patterns(self.db, artist_id, is_active)

    @staticmethod
    def _validate_rule(frequency: str, day_of_week, day_of_month, valid_from, valid_until) -> None:
        if valid_until and valid_until <= valid_from:
            raise ValidationError(
                "Valid until date must be after valid from date", field="validUntil"
            )
        if frequency == Frequency.WEEKLY.value and day_of_week is None:
            raise ValidationError("Day of week is required for weekly patterns", field="dayOfWeek")
        if frequency == Frequency.MONTHLY.value and day_of_month is None:
            raise ValidationError(
                "Day of month is required for monthly patterns", field="dayOfMonth"
            )

    def create_pattern(self, artist_id: int, data: RecurringPatternCreate) -> RecurringPattern:
        logger.info(f"📥 Creating recurring pattern for artist {artist_id}")
        if not ArtistRepository.get_artist(self.db, artist_id):
            raise NotFoundError("Artist not found")

        start, end = normalize_range(data.startTime, data.endTime)
        self._validate_rule(
            data.frequency.value, data.dayOfWeek, data.dayOfMonth, data.validFrom, data.validUntil
        )

        pattern = self.repo.add_pattern(
            self.db,
            artist_id,
            name=data.name,
            description=data.description,
            frequency=data.frequency.value,
            day_of_week=data.dayOfWeek,
            day_of_month=data.dayOfMonth,
            start_time=start,
            end_time=end,
            price_multiplier=data.priceMultiplier,
            minimum_hours=data.minimumHours,
            valid_from=data.validFrom,
            valid_until=data.validUntil,
            is_active=data.isActive,
        )
        self.db.commit()
        self.db.refresh(pattern)
        invalidate_all_calendars()
        logger.info(f"✅ Recurring pattern {pattern.id} created")
        return pattern

    def update_pattern(
        self, pattern_id: int, data: RecurringPatternUpdate, artist_id: Optional[int] = None
    ) -> RecurringPattern:
        pattern = self.get_pattern(pattern_id, artist_id)

        start, end = normalize_range(
            data.startTime if data.startTime is not None else pattern.start_time,
            data.endTime if data.endTime is not None else pattern.end_time,
        )
        frequency = data.frequency.value if data.frequency is not None else pattern.frequency
        day_of_week = data.dayOfWeek if data.dayOfWeek is not None else pattern.day_of_week
        day_of_month = data.dayOfMonth if data.dayOfMonth is not None else pattern.day_of_month
        valid_from = data.validFrom if data.validFrom is not None else pattern.valid_from
        valid_until = data.validUntil if data.validUntil is not None else pattern.valid_until
        self._validate_rule(frequency, day_of_week, day_of_month, valid_from, valid_until)

        pattern.start_time = start
        pattern.end_time = end
        pattern.frequency = frequency
        pattern.day_of_week = day_of_week
        pattern.day_of_month = day_of_month
        pattern.valid_from = valid_from
        pattern.valid_until = valid_until
        if data.name is not None:
            pattern.name = data.name
        if data.description is not None:
            pattern.description = data.description
        if data.priceMultiplier is not None:
            pattern.price_multiplier = data.priceMultiplier
        if data.minimumHours is not None:
            pattern.minimum_hours = data.minimumHours
        if data.isActive is not None:
            pattern.is_active = data.isActive

        self.db.commit()
        self.db.refresh(pattern)
        invalidate_all_calendars()
        logger.info(f"✅ Recurring pattern {pattern.id} updated")
        return pattern

    def delete_pattern(self, pattern_id: int, artist_id: Optional[int] = None) -> None:
        pattern = self.get_pattern(pattern_id, artist_id)

        linked = self.repo.count_linked_slots(self.db, pattern.id)
        if linked:
            logger.warning(f"⚠️ Pattern {pattern.id} still has {linked} linked slots")
            raise ConflictError(
                "Cannot delete pattern with existing availability slots. "
                "Deactivate it instead or remove the slots first."
            )

        self.db.delete(pattern)
        self.db.commit()
        invalidate_all_calendars()
        logger.info(f"🗑️ Deleted recurring pattern {pattern_id}")

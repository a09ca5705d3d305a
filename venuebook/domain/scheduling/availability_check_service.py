"""Availability check - Can an artist take a booking at a given date, time and length?

The check runs in order and stops at the first failing rule:

1. booking window: at least the minimum notice ahead, at most the maximum
   advance (``TOO_SOON`` / ``TOO_FAR``);
2. no blackout covering the date (``BLACKOUT_DATE``);
3. no live assignment overlapping the requested range (``BOOKING_CONFLICT``);
4. an AVAILABLE or TENTATIVE slot, concrete or recurring, covering the whole
   range (``NO_AVAILABILITY``).

Failures other than ``TOO_FAR`` come back with nearby alternative slots.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import MAX_ADVANCE_DAYS, MAX_ALTERNATIVE_SLOTS, MIN_ADVANCE_HOURS
from ...shared.errors import NotFoundError, ValidationError
from ...shared.validators import MINUTES_PER_DAY
from .availability_service import BOOKABLE_STATUSES
from .blackout_service import BlackoutService, is_blacked_out
from .pattern_service import PatternService
from .repository import (
    ArtistRepository,
    AssignmentRepository,
    BlackoutRepository,
    TemplateRepository,
)
from .schemas import AvailabilityCheckRequest, AvailabilityCheckResponse, CheckReason
from .serializers import alternative_response, blackout_response, slot_response
from .time_calculator import (
    from_minutes,
    local_now,
    normalize_range,
    ranges_overlap,
    to_minutes,
)

logger = logging.getLogger(__name__)

SAME_DAY_ALTERNATIVE = "SAME_DAY_ALTERNATIVE"
ADJACENT_DAY = "ADJACENT_DAY"
ALTERNATIVE_TIME = "ALTERNATIVE_TIME"


def alternative_reason(day_difference: int) -> str:
    if day_difference == 0:
        return SAME_DAY_ALTERNATIVE
    if abs(day_difference) == 1:
        return ADJACENT_DAY
    return ALTERNATIVE_TIME


def _slot_minutes(slot) -> tuple:
    return to_minutes(slot.start_time), to_minutes(slot.end_time)


class AvailabilityChecker:
    """Answers booking-time availability questions for one artist"""

    def __init__(self, db: Session):
        self.db = db
        self.patterns = PatternService(db)
        self.blackouts = BlackoutService(db)

    def minimum_advance_hours(self, artist_id: int) -> int:
        """The default template's notice if the artist has one, else the global setting"""
        defaults = TemplateRepository.get_templates(
            self.db, artist_id, is_active=True, is_default=True
        )
        if defaults:
            return defaults[0].minimum_advance_hours
        return MIN_ADVANCE_HOURS

    def check(
        self, artist_id: int, data: AvailabilityCheckRequest, now: Optional[datetime] = None
    ) -> AvailabilityCheckResponse:
        if not ArtistRepository.get_artist(self.db, artist_id):
            raise NotFoundError("Artist not found")

        start_min = to_minutes(data.startTime)
        end_min = start_min + data.duration
        if end_min > MINUTES_PER_DAY:
            raise ValidationError("The requested time must end by midnight", field="duration")
        start, end = normalize_range(data.startTime, from_minutes(end_min))

        now = now or local_now()
        requested_at = datetime.combine(data.date, datetime.min.time()) + timedelta(minutes=start_min)
        min_hours = self.minimum_advance_hours(artist_id)

        def unavailable(reason: CheckReason, message: str, alternatives=True, **extra):
            logger.info(
                f"Artist {artist_id} unavailable on {data.date} {start}-{end}: {reason.value}"
            )
            found = []
            if alternatives and data.includeAlternatives:
                found = self.find_alternatives(
                    artist_id, data.date, data.duration, data.alternativeRange, now
                )
            return AvailabilityCheckResponse(
                available=False, reason=reason, message=message, alternatives=found, **extra
            )

        if requested_at < now + timedelta(hours=min_hours):
            return unavailable(
                CheckReason.TOO_SOON,
                f"Bookings require {min_hours} hours advance notice",
                minAdvanceHours=min_hours,
            )
        if data.date > now.date() + timedelta(days=MAX_ADVANCE_DAYS):
            return unavailable(
                CheckReason.TOO_FAR,
                f"Bookings can only be made up to {MAX_ADVANCE_DAYS} days in advance",
                alternatives=False,
                maxAdvanceDays=MAX_ADVANCE_DAYS,
            )

        blackout = self.blackouts.find_blackout(artist_id, data.date)
        if blackout:
            return unavailable(
                CheckReason.BLACKOUT_DATE,
                f"Artist is not available: {blackout.title}",
                blackout=blackout_response(blackout),
            )

        for assignment in AssignmentRepository.get_live_artist_assignments(
            self.db, artist_id, data.date, data.date
        ):
            booked_start, booked_end = _slot_minutes(assignment)
            if ranges_overlap(start_min, end_min, booked_start, booked_end):
                return unavailable(
                    CheckReason.BOOKING_CONFLICT,
                    "Artist has a booking that conflicts with the requested time",
                    conflictingAssignmentId=assignment.id,
                )

        slot = self._covering_slot(artist_id, data.date, start_min, end_min)
        if slot is None:
            return unavailable(
                CheckReason.NO_AVAILABILITY, "Artist is not available at the requested time"
            )

        billable = max(data.duration / 60, slot.minimum_hours or 0)
        return AvailabilityCheckResponse(
            available=True,
            message="Artist is available for the requested time",
            slot=slot_response(slot),
            billableHours=billable,
            minAdvanceHours=min_hours,
        )

    def _covering_slot(self, artist_id: int, slot_date: date, start_min: int, end_min: int):
        for slot in self.patterns.get_merged_slots(artist_id, slot_date, slot_date):
            if slot.status not in BOOKABLE_STATUSES:
                continue
            slot_start, slot_end = _slot_minutes(slot)
            if slot_start <= start_min and slot_end >= end_min:
                return slot
        return None

    def find_alternatives(
        self,
        artist_id: int,
        requested: date,
        duration: int,
        search_days: int,
        now: Optional[datetime] = None,
    ) -> list:
        """
        Open slots within ``search_days`` of ``requested`` long enough for
        ``duration`` minutes, nearest dates first.

        Past dates, blackout dates and slots that already hold a live
        assignment are skipped.
        """
        today = (now or local_now()).date()
        start = max(requested - timedelta(days=search_days), today)
        end = requested + timedelta(days=search_days)
        if end < start:
            return []

        blackouts = BlackoutRepository.get_blackouts(self.db, artist_id, start, end)
        booked = {}
        for assignment in AssignmentRepository.get_live_artist_assignments(
            self.db, artist_id, start, end
        ):
            booked.setdefault(assignment.date, []).append(_slot_minutes(assignment))

        candidates = []
        for slot in self.patterns.get_merged_slots(artist_id, start, end):
            if slot.status not in BOOKABLE_STATUSES:
                continue
            if is_blacked_out(blackouts, artist_id, slot.date):
                continue
            slot_start, slot_end = _slot_minutes(slot)
            if slot_end - slot_start < duration:
                continue
            if any(ranges_overlap(slot_start, slot_end, b_start, b_end)
                   for b_start, b_end in booked.get(slot.date, [])):
                continue
            candidates.append(slot)

        candidates.sort(key=lambda s: (abs((s.date - requested).days), s.date, s.start_time))
        return [
            alternative_response(
                slot, alternative_reason((slot.date - requested).days), (slot.date - requested).days
            )
            for slot in candidates[:MAX_ALTERNATIVE_SLOTS]
        ]

"""Calendar service - Compose the venue schedule grid

A view is a grid of dated rows against (venue, slot) columns. Each cell
holds at most one assignment, rows carry the open availability of every
artist for that date, and conflicts are flagged per row and per cell.
Month views are cached in Redis and dropped by every write path.
"""

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...cache import build_calendar_key, cache
from ...config import CALENDAR_CACHE_TTL
from ...models import MAIN_SLOT, Venue
from .assignment_service import AssignmentService
from .conflict_service import ConflictService
from .pattern_service import PatternService
from .repository import ArtistRepository, VenueRepository
from .schemas import (
    CalendarCell,
    CalendarColumn,
    CalendarRow,
    CalendarView,
    ScheduleResponse,
    SlotStatus,
    ViewMode,
)
from .serializers import (
    artist_summary,
    assignment_response,
    conflict_response,
    slot_response,
    venue_response,
)
from .time_calculator import local_today, month_bounds, month_days, week_days

logger = logging.getLogger(__name__)

OPEN_STATUSES = (SlotStatus.AVAILABLE.value, SlotStatus.TENTATIVE.value)


def column_key(venue_id: int, slot: Optional[str]) -> str:
    return f"{venue_id}:{slot or MAIN_SLOT}"


def build_columns(venues: Iterable[Venue]) -> list[CalendarColumn]:
    """
    One column per (venue, slot).

    Multi-slot venues expand to "{venue} {slot}" columns with the slot's own
    hours (falling back to the venue's); single-slot venues get one column.
    """
    columns = []
    for venue in venues:
        for slot in venue.slot_names:
            start, end = venue.hours_for_slot(slot)
            columns.append(
                CalendarColumn(
                    key=column_key(venue.id, slot),
                    venueId=venue.id,
                    venueName=venue.name,
                    slot=slot,
                    label=f"{venue.name} {slot}" if slot else venue.name,
                    startTime=start,
                    endTime=end,
                )
            )
    return columns


def view_dates(view_mode: ViewMode, month: int, year: int, day: Optional[date] = None) -> list[date]:
    """Row dates: the whole month, the Monday-start week of ``day``, or ``day``"""
    if view_mode == ViewMode.MONTH:
        return month_days(year, month)
    anchor = day or month_bounds(year, month)[0]
    if view_mode == ViewMode.WEEK:
        return week_days(anchor)
    return [anchor]


class CalendarService:
    """Service layer for composed calendar views"""

    def __init__(self, db: Session):
        self.db = db

    def build(
        self,
        venue_ids: Optional[Iterable[int]],
        month: int,
        year: int,
        view_mode: ViewMode = ViewMode.MONTH,
        day: Optional[date] = None,
        today: Optional[date] = None,
    ) -> CalendarView:
        view_mode = ViewMode(view_mode)
        venue_ids = sorted(set(venue_ids)) if venue_ids else None
        today = today or local_today()

        cache_key = None
        if view_mode == ViewMode.MONTH:
            cache_key = build_calendar_key(year, month, venue_ids, today.isoformat())
            cached = cache.get(cache_key)
            if cached:
                return CalendarView.model_validate(cached)

        view = self._compose(venue_ids, month, year, view_mode, day, today)

        if cache_key:
            cache.set(cache_key, view.model_dump(mode="json"), ttl=CALENDAR_CACHE_TTL)
        return view

    def _compose(self, venue_ids, month, year, view_mode, day, today) -> CalendarView:
        venues = VenueRepository.get_venues(self.db, venue_ids)
        columns = build_columns(venues)
        dates = view_dates(view_mode, month, year, day)
        start, end = dates[0], dates[-1]

        assignments = AssignmentService(self.db).list_for_range(start, end, venue_ids)
        by_cell = {(a.date, column_key(a.venue_id, a.slot)): a for a in assignments}

        # Across all venues: a double booking matters even if one venue is filtered out
        conflicts = ConflictService(self.db).detect_for_range(start, end)
        conflicts_by_date = {}
        for conflict in conflicts:
            conflicts_by_date.setdefault(conflict.date, []).append(conflict)

        open_slots = PatternService(self.db).get_merged_slots_for_range(start, end, OPEN_STATUSES)
        availability_by_date = {}
        for slot in open_slots:
            availability_by_date.setdefault(slot.date, []).append(slot)

        rows = []
        for row_date in dates:
            is_past = row_date < today
            day_conflicts = conflicts_by_date.get(row_date, [])
            cells = []
            for column in columns:
                assignment = by_cell.get((row_date, column.key))
                cells.append(
                    CalendarCell(
                        columnKey=column.key,
                        assignment=assignment_response(assignment) if assignment else None,
                        bookable=assignment is None and not is_past,
                        hasConflict=any(column.venueName in c.venues for c in day_conflicts),
                    )
                )
            rows.append(
                CalendarRow(
                    date=row_date,
                    weekday=row_date.strftime("%A"),
                    isPast=is_past,
                    readOnly=is_past,
                    hasConflict=bool(day_conflicts),
                    cells=cells,
                    availability=[slot_response(s) for s in availability_by_date.get(row_date, [])],
                )
            )

        logger.debug(
            f"Composed {view_mode.value} calendar {start}..{end}: "
            f"{len(columns)} columns, {len(assignments)} assignments, {len(conflicts)} conflicts"
        )
        return CalendarView(
            viewMode=view_mode,
            month=month,
            year=year,
            startDate=start,
            endDate=end,
            columns=columns,
            rows=rows,
            conflicts=[conflict_response(c) for c in conflicts],
        )

    def schedule_payload(
        self, month: int, year: int, venue_ids: Optional[Iterable[int]] = None
    ) -> ScheduleResponse:
        """Flat month payload: venues, assignments, the DJ roster and conflicts"""
        start, end = month_bounds(year, month)
        venues = VenueRepository.get_venues(self.db)
        assignments = AssignmentService(self.db).list_for_range(start, end, venue_ids)
        djs = ArtistRepository.get_artists_by_category(self.db, "DJ")
        conflicts = ConflictService(self.db).detect_for_range(start, end)

        return ScheduleResponse(
            venues=[venue_response(v) for v in venues],
            assignments=[assignment_response(a) for a in assignments],
            djs=[artist_summary(a) for a in djs],
            conflicts=[conflict_response(c) for c in conflicts],
            month=month,
            year=year,
            startDate=start,
            endDate=end,
        )

"""Conflict service - Detect artists double-booked on the same local date

Conflicts are advisory: they are computed on read, returned next to the
data, and never block a write. Both the single-date and the range path feed
the same evaluator so they always agree.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models_scheduling import Assignment
from .repository import AssignmentRepository
from .schemas import AssignmentStatus
from .time_calculator import ranges_overlap, to_local_date, to_minutes

logger = logging.getLogger(__name__)


class Conflict:
    """One artist booked more than once on one date"""

    def __init__(self, conflict_date: date, artist_id: int, venues: list[str]):
        self.date = conflict_date
        self.artist_id = artist_id
        self.venues = venues

    def __eq__(self, other):
        if not isinstance(other, Conflict):
            return NotImplemented
        return (self.date, self.artist_id, self.venues) == (other.date, other.artist_id, other.venues)

    def __repr__(self):
        return f"<Conflict {self.date} artist={self.artist_id} venues={self.venues}>"


def evaluate(assignments: Iterable[Assignment]) -> Optional[Conflict]:
    """
    Decide whether one artist's assignments on one date conflict.

    A conflict is two or more distinct venues, or two overlapping ranges at
    the same venue. Special events and cancelled rows are ignored. Venue
    names are listed in order of their first start time.
    """
    rows = sorted(
        (
            a
            for a in assignments
            if a.artist_id is not None and a.status != AssignmentStatus.CANCELLED.value
        ),
        key=lambda a: (to_minutes(a.start_time), a.id or 0),
    )
    if len(rows) < 2:
        return None

    venues = []
    for row in rows:
        name = row.venue.name if row.venue else str(row.venue_id)
        if name not in venues:
            venues.append(name)

    first = rows[0]
    if len(venues) >= 2:
        return Conflict(first.date, first.artist_id, venues)

    for i, a in enumerate(rows):
        for b in rows[i + 1:]:
            if ranges_overlap(
                to_minutes(a.start_time), to_minutes(a.end_time),
                to_minutes(b.start_time), to_minutes(b.end_time),
            ):
                return Conflict(first.date, first.artist_id, venues)
    return None


def evaluate_all(assignments: Iterable[Assignment]) -> list[Conflict]:
    """Group by (date, artist) and evaluate each group; sorted by date then artist"""
    groups = defaultdict(list)
    for a in assignments:
        if a.artist_id is not None:
            groups[(a.date, a.artist_id)].append(a)

    conflicts = []
    for key in sorted(groups):
        conflict = evaluate(groups[key])
        if conflict:
            conflicts.append(conflict)
    return conflicts


class ConflictService:
    """Service layer for conflict detection"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AssignmentRepository()

    def detect_for_artist_on_date(self, artist_id: int, on_date) -> Optional[Conflict]:
        on_date = to_local_date(on_date)
        rows = self.repo.get_artist_assignments_on_date(self.db, artist_id, on_date)
        conflict = evaluate(rows)
        if conflict:
            logger.warning(
                f"⚠️ Artist {artist_id} double-booked on {on_date}: {', '.join(conflict.venues)}"
            )
        return conflict

    def detect_for_range(self, start, end) -> list[Conflict]:
        """All conflicts in [start, end] from a single batched query"""
        start, end = to_local_date(start), to_local_date(end)
        rows = self.repo.get_artist_assignments_for_range(self.db, start, end)
        return evaluate_all(rows)

"""Booking coordinator - Keep artist availability in step with assignments

Assignments and availability slots are stored independently. The
coordinator wraps the assignment writes and mirrors them into availability:
a new artist assignment marks the artist BOOKED for that range, a removed
or cancelled one releases it once no other live assignment still needs it.
Mirroring is best effort; a failure is logged and the assignment write
stands.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import SYNC_AVAILABILITY_ON_ASSIGNMENT
from ...models_scheduling import Assignment
from ...shared.errors import SchedulingError
from .assignment_service import AssignmentService
from .availability_service import AvailabilityService
from .conflict_service import Conflict
from .schemas import AssignmentCreate, AssignmentStatus, AssignmentUpdate

logger = logging.getLogger(__name__)


def _is_live(snapshot: dict) -> bool:
    return snapshot["status"] != AssignmentStatus.CANCELLED.value


class BookingCoordinator:
    """Assignment writes with availability side effects"""

    def __init__(self, db: Session, sync_enabled: Optional[bool] = None):
        self.db = db
        self.assignments = AssignmentService(db)
        self.availability = AvailabilityService(db)
        self.sync_enabled = (
            SYNC_AVAILABILITY_ON_ASSIGNMENT if sync_enabled is None else sync_enabled
        )

    def _mark(self, artist_id: int, snapshot: dict) -> None:
        try:
            self.availability.mark_booked(
                artist_id, snapshot["date"], snapshot["start_time"], snapshot["end_time"]
            )
        except (SchedulingError, SQLAlchemyError) as e:
            self.db.rollback()
            logger.warning(
                f"⚠️ Availability out of sync: could not mark artist {artist_id} BOOKED "
                f"on {snapshot['date']} {snapshot['start_time']}-{snapshot['end_time']}: {e}"
            )

    def _release(self, artist_id: int, snapshot: dict) -> None:
        try:
            self.availability.release_booked(
                artist_id, snapshot["date"], snapshot["start_time"], snapshot["end_time"]
            )
        except (SchedulingError, SQLAlchemyError) as e:
            self.db.rollback()
            logger.warning(
                f"⚠️ Availability out of sync: could not release artist {artist_id} "
                f"on {snapshot['date']} {snapshot['start_time']}-{snapshot['end_time']}: {e}"
            )

    @staticmethod
    def _snapshot(assignment: Assignment) -> dict:
        return {
            "artist_id": assignment.artist_id,
            "date": assignment.date,
            "start_time": assignment.start_time,
            "end_time": assignment.end_time,
            "status": assignment.status,
        }

    def create(self, data: AssignmentCreate) -> tuple[Assignment, Optional[Conflict]]:
        assignment, conflict = self.assignments.create(data)
        if self.sync_enabled and assignment.artist_id is not None:
            self._mark(assignment.artist_id, self._snapshot(assignment))
        return assignment, conflict

    def update(
        self, assignment_id: int, data: AssignmentUpdate
    ) -> tuple[Assignment, Optional[Conflict]]:
        before = self._snapshot(self.assignments.get_assignment(assignment_id))
        assignment, conflict = self.assignments.update(assignment_id, data)
        after = self._snapshot(assignment)

        if self.sync_enabled and before != after:
            if before["artist_id"] is not None:
                self._release(before["artist_id"], before)
            if after["artist_id"] is not None and _is_live(after):
                self._mark(after["artist_id"], after)
        return assignment, conflict

    def delete(self, assignment_id: int) -> None:
        before = self._snapshot(self.assignments.get_assignment(assignment_id))
        self.assignments.delete(assignment_id)
        if self.sync_enabled and before["artist_id"] is not None:
            self._release(before["artist_id"], before)

"""Schedule router - FastAPI endpoints for venue assignments and calendar views"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import ROLE_ADMIN, ROLE_VENUE, Actor, get_current_actor, require_roles
from ...database import get_db
from .booking_coordinator import BookingCoordinator
from .calendar_service import CalendarService
from .pdf_service import generate_schedule_pdf
from .schemas import (
    AssignmentCreate,
    AssignmentResult,
    AssignmentUpdate,
    CalendarView,
    ScheduleResponse,
    ViewMode,
)
from .serializers import assignment_response, conflict_response
from .time_calculator import local_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedule", tags=["Schedule"])

require_scheduler = require_roles(ROLE_ADMIN, ROLE_VENUE)


def get_booking_coordinator(db: Session = Depends(get_db)) -> BookingCoordinator:
    """Dependency injection for BookingCoordinator"""
    return BookingCoordinator(db)


def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    """Dependency injection for CalendarService"""
    return CalendarService(db)


def _month_year(month: Optional[int], year: Optional[int]) -> tuple[int, int]:
    """Default to the current local month"""
    today = local_today()
    return month or today.month, year or today.year


def _result(assignment, conflict) -> AssignmentResult:
    return AssignmentResult(
        assignment=assignment_response(assignment),
        conflict=conflict_response(conflict) if conflict else None,
    )


# ============================================================================
# READS
# ============================================================================


@router.get("", response_model=ScheduleResponse)
async def get_schedule(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2020, le=2100),
    venueIds: Optional[list[int]] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: CalendarService = Depends(get_calendar_service),
):
    """Month of assignments across venues, with the DJ roster and conflicts"""
    month, year = _month_year(month, year)
    return service.schedule_payload(month, year, venueIds)


@router.get("/calendar", response_model=CalendarView)
async def get_calendar(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2020, le=2100),
    venueIds: Optional[list[int]] = Query(None),
    view: ViewMode = Query(ViewMode.MONTH),
    day: Optional[date] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: CalendarService = Depends(get_calendar_service),
):
    """Composed month/week/day grid of venue slots"""
    if day and (month is None or year is None):
        month, year = month or day.month, year or day.year
    month, year = _month_year(month, year)
    return service.build(venueIds, month, year, view, day)


@router.get("/pdf")
async def export_schedule_pdf(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2020, le=2100),
    venueIds: Optional[list[int]] = Query(None),
    actor: Actor = Depends(require_scheduler),
    service: CalendarService = Depends(get_calendar_service),
):
    """Download the month schedule as a PDF"""
    month, year = _month_year(month, year)
    view = service.build(venueIds, month, year, ViewMode.MONTH)
    pdf_bytes, filename = generate_schedule_pdf(view)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# WRITES
# ============================================================================


@router.post("", response_model=AssignmentResult, status_code=201)
async def create_assignment(
    data: AssignmentCreate,
    actor: Actor = Depends(require_scheduler),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
):
    """Assign an artist (or a special event) to a venue slot"""
    assignment, conflict = coordinator.create(data)
    return _result(assignment, conflict)


@router.patch("/{assignment_id}", response_model=AssignmentResult)
async def update_assignment(
    assignment_id: int,
    data: AssignmentUpdate,
    actor: Actor = Depends(require_scheduler),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
):
    """Update an assignment; pass ``version`` for a conditional update"""
    assignment, conflict = coordinator.update(assignment_id, data)
    return _result(assignment, conflict)


@router.delete("/{assignment_id}", status_code=204)
async def delete_assignment(
    assignment_id: int,
    actor: Actor = Depends(require_scheduler),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
):
    coordinator.delete(assignment_id)
    return Response(status_code=204)


@router.delete("")
async def delete_month(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2020, le=2100),
    venueIds: Optional[list[int]] = Query(None),
    actor: Actor = Depends(require_roles(ROLE_ADMIN)),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
):
    """Clear every assignment of a month"""
    deleted = coordinator.assignments.delete_month(month, year, venueIds)
    return {"deleted": deleted}

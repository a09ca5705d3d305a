"""Availability router - FastAPI endpoints for artist availability, blackouts, templates and patterns"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import Actor, ensure_artist_access, get_current_actor
from ...database import get_db
from .availability_check_service import AvailabilityChecker
from .availability_service import AvailabilityService, BulkResult
from .blackout_service import BlackoutService
from .pattern_service import PatternService
from .reschedule_service import RescheduleService
from .schemas import (
    ApplyTemplateRequest,
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    BlackoutCreate,
    BlackoutResponse,
    BlackoutType,
    BlackoutUpdate,
    BulkFailure,
    BulkResultResponse,
    BulkSlotRequest,
    MaterializeRequest,
    MoveSlotRequest,
    RecurringPatternCreate,
    RecurringPatternResponse,
    RecurringPatternUpdate,
    ReorderSlotRequest,
    SlotResponse,
    SlotUpsert,
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
    ViewMode,
)
from .serializers import blackout_response, pattern_response, slot_response, template_response
from .template_service import TemplateService
from .time_calculator import local_today, resolve_view_range

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def get_pattern_service(db: Session = Depends(get_db)) -> PatternService:
    """Dependency injection for PatternService"""
    return PatternService(db)


def get_template_service(db: Session = Depends(get_db)) -> TemplateService:
    """Dependency injection for TemplateService"""
    return TemplateService(db)


def get_reschedule_service(db: Session = Depends(get_db)) -> RescheduleService:
    """Dependency injection for RescheduleService"""
    return RescheduleService(db)


def get_blackout_service(db: Session = Depends(get_db)) -> BlackoutService:
    """Dependency injection for BlackoutService"""
    return BlackoutService(db)


def get_availability_checker(db: Session = Depends(get_db)) -> AvailabilityChecker:
    """Dependency injection for AvailabilityChecker"""
    return AvailabilityChecker(db)


def _bulk_response(result: BulkResult) -> BulkResultResponse:
    return BulkResultResponse(
        updated=[slot_response(s) for s in result.updated],
        failed=[BulkFailure(**f) for f in result.failed],
    )


# ============================================================================
# SLOTS
# ============================================================================


@router.patch("/move", response_model=SlotResponse)
async def move_slot(
    data: MoveSlotRequest,
    actor: Actor = Depends(get_current_actor),
    availability: AvailabilityService = Depends(get_availability_service),
    service: RescheduleService = Depends(get_reschedule_service),
):
    """Drag a slot onto another date"""
    slot = availability.get_slot(data.slotId)
    ensure_artist_access(actor, slot.artist_id)
    return slot_response(service.move_slot(data.slotId, data.date))


@router.patch("/reorder", response_model=SlotResponse)
async def reorder_slot(
    data: ReorderSlotRequest,
    actor: Actor = Depends(get_current_actor),
    availability: AvailabilityService = Depends(get_availability_service),
    service: RescheduleService = Depends(get_reschedule_service),
):
    """Drag a slot to a new start time on the same day"""
    slot = availability.get_slot(data.slotId)
    ensure_artist_access(actor, slot.artist_id)
    return slot_response(service.reorder_slot(data.slotId, data.startTime))


@router.delete("/slots/{slot_id}", status_code=204)
async def delete_slot(
    slot_id: int,
    actor: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
):
    slot = service.get_slot(slot_id)
    ensure_artist_access(actor, slot.artist_id)
    service.delete_slot(slot_id)
    return Response(status_code=204)


@router.get("/{artist_id}")
async def get_availability(
    artist_id: int,
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    view: ViewMode = Query(ViewMode.MONTH),
    actor: Actor = Depends(get_current_actor),
    service: PatternService = Depends(get_pattern_service),
):
    """Concrete and recurring availability of an artist for a date window"""
    start, end = resolve_view_range(view.value, startDate or local_today(), endDate)
    slots = service.get_merged_slots(artist_id, start, end)
    return {
        "availability": [slot_response(s) for s in slots],
        "startDate": start,
        "endDate": end,
    }


@router.put("/{artist_id}", response_model=SlotResponse)
async def upsert_availability(
    artist_id: int,
    data: SlotUpsert,
    actor: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
    patterns: PatternService = Depends(get_pattern_service),
):
    """
    Create or update a slot.

    Editing a virtual recurring instance (``recurringPatternId`` without
    ``id``) materializes it and applies the edit in one transaction.
    """
    ensure_artist_access(actor, artist_id)
    if data.id is None and data.recurringPatternId is not None:
        return slot_response(patterns.edit_instance(artist_id, data))
    return slot_response(service.upsert_slot(artist_id, data))


@router.post("/{artist_id}/bulk", response_model=BulkResultResponse)
async def bulk_availability(
    artist_id: int,
    data: BulkSlotRequest,
    actor: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Write the same slot to many dates; failures are reported per date"""
    ensure_artist_access(actor, artist_id)
    return _bulk_response(service.bulk_upsert_slots(artist_id, data))


@router.post("/{artist_id}/check", response_model=AvailabilityCheckResponse)
async def check_availability(
    artist_id: int,
    data: AvailabilityCheckRequest,
    actor: Actor = Depends(get_current_actor),
    service: AvailabilityChecker = Depends(get_availability_checker),
):
    """Can the artist take a booking at this date, time and length? Suggests alternatives if not"""
    return service.check(artist_id, data)


# ============================================================================
# BLACKOUTS
# ============================================================================


@router.get("/{artist_id}/blackouts", response_model=list[BlackoutResponse])
async def list_blackouts(
    artist_id: int,
    blackoutType: Optional[BlackoutType] = Query(None, alias="type"),
    year: Optional[int] = Query(None, ge=2020, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    upcoming: bool = Query(False),
    actor: Actor = Depends(get_current_actor),
    service: BlackoutService = Depends(get_blackout_service),
):
    ensure_artist_access(actor, artist_id)
    blackouts = service.list_blackouts(
        artist_id, blackoutType.value if blackoutType else None, year, month, upcoming
    )
    return [blackout_response(b) for b in blackouts]


@router.post("/{artist_id}/blackouts", response_model=BlackoutResponse, status_code=201)
async def create_blackout(
    artist_id: int,
    data: BlackoutCreate,
    actor: Actor = Depends(get_current_actor),
    service: BlackoutService = Depends(get_blackout_service),
):
    """Block a date range; refused with 409 when the artist is already booked in it"""
    ensure_artist_access(actor, artist_id)
    return blackout_response(service.create_blackout(artist_id, data))


@router.patch("/{artist_id}/blackouts/{blackout_id}", response_model=BlackoutResponse)
async def update_blackout(
    artist_id: int,
    blackout_id: int,
    data: BlackoutUpdate,
    actor: Actor = Depends(get_current_actor),
    service: BlackoutService = Depends(get_blackout_service),
):
    ensure_artist_access(actor, artist_id)
    return blackout_response(service.update_blackout(blackout_id, data, artist_id))


@router.delete("/{artist_id}/blackouts/{blackout_id}", status_code=204)
async def delete_blackout(
    artist_id: int,
    blackout_id: int,
    actor: Actor = Depends(get_current_actor),
    service: BlackoutService = Depends(get_blackout_service),
):
    ensure_artist_access(actor, artist_id)
    service.delete_blackout(blackout_id, artist_id)
    return Response(status_code=204)


# ============================================================================
# TEMPLATES
# ============================================================================


@router.get("/{artist_id}/templates", response_model=list[TemplateResponse])
async def list_templates(
    artist_id: int,
    isActive: Optional[bool] = Query(None),
    isDefault: Optional[bool] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: TemplateService = Depends(get_template_service),
):
    ensure_artist_access(actor, artist_id)
    return [template_response(t) for t in service.list_templates(artist_id, isActive, isDefault)]


@router.post("/{artist_id}/templates", response_model=TemplateResponse, status_code=201)
async def create_template(
    artist_id: int,
    data: TemplateCreate,
    actor: Actor = Depends(get_current_actor),
    service: TemplateService = Depends(get_template_service),
):
    ensure_artist_access(actor, artist_id)
    return template_response(service.create_template(artist_id, data))


@router.patch("/{artist_id}/templates/{template_id}", response_model=TemplateResponse)
async def update_template(
    artist_id: int,
    template_id: int,
    data: TemplateUpdate,
    actor: Actor = Depends(get_current_actor),
    service: TemplateService = Depends(get_template_service),
):
    ensure_artist_access(actor, artist_id)
    return template_response(service.update_template(template_id, data, artist_id))


@router.delete("/{artist_id}/templates/{template_id}", status_code=204)
async def delete_template(
    artist_id: int,
    template_id: int,
    actor: Actor = Depends(get_current_actor),
    service: TemplateService = Depends(get_template_service),
):
    ensure_artist_access(actor, artist_id)
    service.delete_template(template_id, artist_id)
    return Response(status_code=204)


@router.post("/{artist_id}/templates/{template_id}/apply", response_model=BulkResultResponse)
async def apply_template(
    artist_id: int,
    template_id: int,
    data: ApplyTemplateRequest,
    actor: Actor = Depends(get_current_actor),
    service: TemplateService = Depends(get_template_service),
):
    """Apply a template to a list of dates"""
    ensure_artist_access(actor, artist_id)
    return _bulk_response(service.apply_template(artist_id, template_id, data))


# ============================================================================
# RECURRING PATTERNS
# ============================================================================


@router.get("/{artist_id}/recurring", response_model=list[RecurringPatternResponse])
async def list_patterns(
    artist_id: int,
    isActive: Optional[bool] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: PatternService = Depends(get_pattern_service),
):
    ensure_artist_access(actor, artist_id)
    return [pattern_response(p) for p in service.list_patterns(artist_id, isActive)]


@router.post("/{artist_id}/recurring", response_model=RecurringPatternResponse, status_code=201)
async def create_pattern(
    artist_id: int,
    data: RecurringPatternCreate,
    actor: Actor = Depends(get_current_actor),
    service: PatternService = Depends(get_pattern_service),
):
    ensure_artist_access(actor, artist_id)
    return pattern_response(service.create_pattern(artist_id, data))


@router.patch("/{artist_id}/recurring/{pattern_id}", response_model=RecurringPatternResponse)
async def update_pattern(
    artist_id: int,
    pattern_id: int,
    data: RecurringPatternUpdate,
    actor: Actor = Depends(get_current_actor),
    service: PatternService = Depends(get_pattern_service),
):
    ensure_artist_access(actor, artist_id)
    return pattern_response(service.update_pattern(pattern_id, data, artist_id))


@router.delete("/{artist_id}/recurring/{pattern_id}", status_code=204)
async def delete_pattern(
    artist_id: int,
    pattern_id: int,
    actor: Actor = Depends(get_current_actor),
    service: PatternService = Depends(get_pattern_service),
):
    ensure_artist_access(actor, artist_id)
    service.delete_pattern(pattern_id, artist_id)
    return Response(status_code=204)


@router.post("/{artist_id}/recurring/{pattern_id}/materialize", response_model=SlotResponse)
async def materialize_pattern(
    artist_id: int,
    pattern_id: int,
    data: MaterializeRequest,
    actor: Actor = Depends(get_current_actor),
    service: PatternService = Depends(get_pattern_service),
):
    """Turn the pattern's virtual instance on a date into a concrete slot"""
    ensure_artist_access(actor, artist_id)
    return slot_response(service.materialize(pattern_id, data.date, artist_id))

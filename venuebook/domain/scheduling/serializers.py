"""Scheduling serializers - Map ORM rows and derived values onto response schemas"""

from ...models import Artist, Venue
from ...models_scheduling import Assignment, BlackoutPeriod, RecurringPattern, TimeSlotTemplate
from .schemas import (
    AlternativeSlot,
    ArtistSummary,
    AssignmentResponse,
    BlackoutResponse,
    ConflictResponse,
    RecurringPatternResponse,
    SlotResponse,
    TemplateResponse,
    VenueResponse,
)


def slot_response(slot) -> SlotResponse:
    """Concrete AvailabilitySlot rows and VirtualSlot instances share one shape"""
    return SlotResponse(
        id=slot.id,
        artistId=slot.artist_id,
        date=slot.date,
        startTime=slot.start_time,
        endTime=slot.end_time,
        status=slot.status,
        priceMultiplier=slot.price_multiplier if slot.price_multiplier is not None else 1.0,
        minimumHours=slot.minimum_hours,
        bufferBefore=slot.buffer_before or 0,
        bufferAfter=slot.buffer_after or 0,
        notes=slot.notes,
        requirements=slot.requirements,
        recurringPatternId=slot.recurring_pattern_id,
        templateId=slot.template_id,
        isVirtual=getattr(slot, "is_virtual", False),
    )


def alternative_response(slot, reason: str, day_difference: int) -> AlternativeSlot:
    return AlternativeSlot(
        **slot_response(slot).model_dump(), reason=reason, dayDifference=day_difference
    )


def blackout_response(blackout: BlackoutPeriod) -> BlackoutResponse:
    return BlackoutResponse(
        id=blackout.id,
        artistId=blackout.artist_id,
        startDate=blackout.start_date,
        endDate=blackout.end_date,
        title=blackout.title,
        description=blackout.description,
        blackoutType=blackout.blackout_type,
    )


def pattern_response(pattern: RecurringPattern) -> RecurringPatternResponse:
    return RecurringPatternResponse(
        id=pattern.id,
        artistId=pattern.artist_id,
        name=pattern.name,
        description=pattern.description,
        frequency=pattern.frequency,
        dayOfWeek=pattern.day_of_week,
        dayOfMonth=pattern.day_of_month,
        startTime=pattern.start_time,
        endTime=pattern.end_time,
        priceMultiplier=pattern.price_multiplier,
        minimumHours=pattern.minimum_hours,
        validFrom=pattern.valid_from,
        validUntil=pattern.valid_until,
        isActive=pattern.is_active,
    )


def template_response(template: TimeSlotTemplate) -> TemplateResponse:
    return TemplateResponse(
        id=template.id,
        artistId=template.artist_id,
        name=template.name,
        description=template.description,
        duration=template.duration,
        bufferBefore=template.buffer_before,
        bufferAfter=template.buffer_after,
        priceMultiplier=template.price_multiplier,
        minimumAdvanceHours=template.minimum_advance_hours,
        isDefault=template.is_default,
        isActive=template.is_active,
    )


def assignment_response(assignment: Assignment) -> AssignmentResponse:
    feedback = assignment.feedback
    return AssignmentResponse(
        id=assignment.id,
        venueId=assignment.venue_id,
        venueName=assignment.venue.name if assignment.venue else None,
        artistId=assignment.artist_id,
        artistName=assignment.artist.stage_name if assignment.artist else None,
        specialEvent=assignment.special_event,
        date=assignment.date,
        startTime=assignment.start_time,
        endTime=assignment.end_time,
        slot=assignment.slot,
        status=assignment.status,
        notes=assignment.notes,
        feedbackRating=feedback.overall_rating if feedback else None,
        version=assignment.version,
    )


def conflict_response(conflict) -> ConflictResponse:
    return ConflictResponse(
        date=conflict.date, artistId=conflict.artist_id, venues=list(conflict.venues)
    )


def venue_response(venue: Venue) -> VenueResponse:
    return VenueResponse(
        id=venue.id,
        name=venue.name,
        startTime=venue.start_time,
        endTime=venue.end_time,
        slots=list(venue.slots or []),
    )


def artist_summary(artist: Artist) -> ArtistSummary:
    return ArtistSummary(
        id=artist.id,
        stageName=artist.stage_name,
        category=artist.category,
        profileImage=artist.profile_image,
    )

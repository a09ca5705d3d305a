"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_time_string


class SlotStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    TENTATIVE = "TENTATIVE"
    UNAVAILABLE = "UNAVAILABLE"
    BOOKED = "BOOKED"
    TRAVEL_TIME = "TRAVEL_TIME"


class AssignmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Frequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class BlackoutType(str, Enum):
    PERSONAL = "PERSONAL"
    HOLIDAY = "HOLIDAY"
    MAINTENANCE = "MAINTENANCE"
    OTHER = "OTHER"


class CheckReason(str, Enum):
    TOO_SOON = "TOO_SOON"
    TOO_FAR = "TOO_FAR"
    BLACKOUT_DATE = "BLACKOUT_DATE"
    BOOKING_CONFLICT = "BOOKING_CONFLICT"
    NO_AVAILABILITY = "NO_AVAILABILITY"


class ViewMode(str, Enum):
    MONTH = "month"
    WEEK = "week"
    DAY = "day"


# ============================================================================
# AVAILABILITY
# ============================================================================


class SlotFields(BaseModel):
    """Attributes written onto an availability slot"""

    status: SlotStatus = SlotStatus.AVAILABLE
    startTime: str
    endTime: str
    priceMultiplier: float = Field(default=1.0, ge=0)
    minimumHours: Optional[int] = Field(default=None, ge=1, le=24)
    bufferBefore: int = Field(default=0, ge=0)
    bufferAfter: int = Field(default=0, ge=0)
    notes: Optional[str] = None
    requirements: Optional[str] = None

    @field_validator("startTime")
    @classmethod
    def validate_start(cls, v):
        return validate_time_string(v, allow_end_of_day=False)

    @field_validator("endTime")
    @classmethod
    def validate_end(cls, v):
        return validate_time_string(v, allow_end_of_day=True)


class SlotUpsert(SlotFields):
    """PUT availability: create or update the slot for one date"""

    date: date
    id: Optional[int] = None
    # Editing a virtual instance of a recurring pattern materializes it first
    recurringPatternId: Optional[int] = None


class BulkSlotRequest(SlotFields):
    dates: list[date] = Field(min_length=1)
    overwriteExisting: bool = True


class MoveSlotRequest(BaseModel):
    slotId: int
    date: date


class ReorderSlotRequest(BaseModel):
    slotId: int
    startTime: str

    @field_validator("startTime")
    @classmethod
    def validate_start(cls, v):
        return validate_time_string(v, allow_end_of_day=False)


class SlotResponse(BaseModel):
    id: Optional[int] = None  # None for virtual (unpersisted) pattern instances
    artistId: int
    date: date
    startTime: str
    endTime: str
    status: str
    priceMultiplier: float
    minimumHours: Optional[int] = None
    bufferBefore: int = 0
    bufferAfter: int = 0
    notes: Optional[str] = None
    requirements: Optional[str] = None
    recurringPatternId: Optional[int] = None
    templateId: Optional[int] = None
    isVirtual: bool = False


class BulkFailure(BaseModel):
    date: date
    reason: str
    detail: Optional[str] = None


class BulkResultResponse(BaseModel):
    updated: list[SlotResponse]
    failed: list[BulkFailure]


# ============================================================================
# BLACKOUTS
# ============================================================================


class BlackoutCreate(BaseModel):
    startDate: date
    endDate: date  # inclusive
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    blackoutType: BlackoutType = BlackoutType.PERSONAL


class BlackoutUpdate(BaseModel):
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    blackoutType: Optional[BlackoutType] = None


class BlackoutResponse(BaseModel):
    id: int
    artistId: int
    startDate: date
    endDate: date
    title: str
    description: Optional[str] = None
    blackoutType: str


# ============================================================================
# AVAILABILITY CHECK
# ============================================================================


class AvailabilityCheckRequest(BaseModel):
    date: date
    startTime: str
    duration: int = Field(ge=30, le=1440)  # minutes
    includeAlternatives: bool = True
    alternativeRange: int = Field(default=7, ge=1, le=30)  # days either side

    @field_validator("startTime")
    @classmethod
    def validate_start(cls, v):
        return validate_time_string(v, allow_end_of_day=False)


class AlternativeSlot(SlotResponse):
    reason: str  # SAME_DAY_ALTERNATIVE | ADJACENT_DAY | ALTERNATIVE_TIME
    dayDifference: int


class AvailabilityCheckResponse(BaseModel):
    available: bool
    reason: Optional[CheckReason] = None
    message: str
    slot: Optional[SlotResponse] = None
    billableHours: Optional[float] = None
    minAdvanceHours: Optional[int] = None
    maxAdvanceDays: Optional[int] = None
    blackout: Optional[BlackoutResponse] = None
    conflictingAssignmentId: Optional[int] = None
    alternatives: list[AlternativeSlot] = []


# ============================================================================
# RECURRING PATTERNS
# ============================================================================


class RecurringPatternCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    frequency: Frequency
    dayOfWeek: Optional[int] = Field(default=None, ge=0, le=6)  # Sunday=0
    dayOfMonth: Optional[int] = Field(default=None, ge=1, le=31)
    startTime: str
    endTime: str
    priceMultiplier: float = Field(default=1.0, ge=0.1, le=10)
    minimumHours: Optional[int] = Field(default=None, ge=1, le=24)
    validFrom: date
    validUntil: Optional[date] = None
    isActive: bool = True

    @field_validator("startTime")
    @classmethod
    def validate_start(cls, v):
        return validate_time_string(v, allow_end_of_day=False)

    @field_validator("endTime")
    @classmethod
    def validate_end(cls, v):
        return validate_time_string(v, allow_end_of_day=True)


class RecurringPatternUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    frequency: Optional[Frequency] = None
    dayOfWeek: Optional[int] = Field(default=None, ge=0, le=6)
    dayOfMonth: Optional[int] = Field(default=None, ge=1, le=31)
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    priceMultiplier: Optional[float] = Field(default=None, ge=0.1, le=10)
    minimumHours: Optional[int] = Field(default=None, ge=1, le=24)
    validFrom: Optional[date] = None
    validUntil: Optional[date] = None
    isActive: Optional[bool] = None

    @field_validator("startTime")
    @classmethod
    def validate_start(cls, v):
        return validate_time_string(v, allow_end_of_day=False) if v is not None else v

    @field_validator("endTime")
    @classmethod
    def validate_end(cls, v):
        return validate_time_string(v, allow_end_of_day=True) if v is not None else v


class RecurringPatternResponse(BaseModel):
    id: int
    artistId: int
    name: str
    description: Optional[str] = None
    frequency: str
    dayOfWeek: Optional[int] = None
    dayOfMonth: Optional[int] = None
    startTime: str
    endTime: str
    priceMultiplier: float
    minimumHours: Optional[int] = None
    validFrom: date
    validUntil: Optional[date] = None
    isActive: bool


class MaterializeRequest(BaseModel):
    date: date


# ============================================================================
# TEMPLATES
# ============================================================================


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    duration: int = Field(ge=30, le=1440)  # minutes, max 24 hours
    bufferBefore: int = Field(default=0, ge=0, le=480)
    bufferAfter: int = Field(default=0, ge=0, le=480)
    priceMultiplier: float = Field(default=1.0, ge=0.1, le=10)
    minimumAdvanceHours: int = Field(default=24, ge=1, le=8760)
    isDefault: bool = False
    isActive: bool = True


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    duration: Optional[int] = Field(default=None, ge=30, le=1440)
    bufferBefore: Optional[int] = Field(default=None, ge=0, le=480)
    bufferAfter: Optional[int] = Field(default=None, ge=0, le=480)
    priceMultiplier: Optional[float] = Field(default=None, ge=0.1, le=10)
    minimumAdvanceHours: Optional[int] = Field(default=None, ge=1, le=8760)
    isDefault: Optional[bool] = None
    isActive: Optional[bool] = None


class TemplateResponse(BaseModel):
    id: int
    artistId: int
    name: str
    description: Optional[str] = None
    duration: int
    bufferBefore: int
    bufferAfter: int
    priceMultiplier: float
    minimumAdvanceHours: int
    isDefault: bool
    isActive: bool


class ApplyTemplateRequest(BaseModel):
    dates: list[date] = Field(min_length=1)
    startTime: str
    overwriteExisting: bool = False

    @field_validator("startTime")
    @classmethod
    def validate_start(cls, v):
        return validate_time_string(v, allow_end_of_day=False)


# ============================================================================
# ASSIGNMENTS
# ============================================================================


class AssignmentCreate(BaseModel):
    venueId: int
    artistId: Optional[int] = None
    specialEvent: Optional[str] = Field(default=None, max_length=255)
    date: date
    startTime: str
    endTime: str
    slot: Optional[str] = None
    notes: Optional[str] = None


class AssignmentUpdate(BaseModel):
    artistId: Optional[int] = None
    specialEvent: Optional[str] = Field(default=None, max_length=255)
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[AssignmentStatus] = None
    version: Optional[int] = None  # conditional update: reject if the row moved on


class ConflictResponse(BaseModel):
    date: date
    artistId: int
    venues: list[str]


class AssignmentResponse(BaseModel):
    id: int
    venueId: int
    venueName: Optional[str] = None
    artistId: Optional[int] = None
    artistName: Optional[str] = None
    specialEvent: Optional[str] = None
    date: date
    startTime: str
    endTime: str
    slot: Optional[str] = None
    status: str
    notes: Optional[str] = None
    feedbackRating: Optional[float] = None
    version: int


class AssignmentResult(BaseModel):
    assignment: AssignmentResponse
    conflict: Optional[ConflictResponse] = None


# ============================================================================
# CALENDAR
# ============================================================================


class VenueResponse(BaseModel):
    id: int
    name: str
    startTime: str
    endTime: str
    slots: list[str] = []


class ArtistSummary(BaseModel):
    id: int
    stageName: str
    category: Optional[str] = None
    profileImage: Optional[str] = None


class CalendarColumn(BaseModel):
    key: str  # "{venueId}:{slot or main}"
    venueId: int
    venueName: str
    slot: Optional[str] = None
    label: str
    startTime: str
    endTime: str


class CalendarCell(BaseModel):
    columnKey: str
    assignment: Optional[AssignmentResponse] = None
    bookable: bool
    hasConflict: bool = False


class CalendarRow(BaseModel):
    date: date
    weekday: str
    isPast: bool
    readOnly: bool
    hasConflict: bool
    cells: list[CalendarCell]
    availability: list[SlotResponse] = []


class CalendarView(BaseModel):
    viewMode: ViewMode
    month: int
    year: int
    startDate: date
    endDate: date
    columns: list[CalendarColumn]
    rows: list[CalendarRow]
    conflicts: list[ConflictResponse]


class ScheduleResponse(BaseModel):
    venues: list[VenueResponse]
    assignments: list[AssignmentResponse]
    djs: list[ArtistSummary]
    conflicts: list[ConflictResponse]
    month: int
    year: int
    startDate: date
    endDate: date

"""
Scheduling Models: artist availability, recurrence rules, slot templates
and venue assignments
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class AvailabilitySlot(Base):
    """A dated, timed block of an artist's own availability"""

    __tablename__ = "availability_slots"
    __table_args__ = (
        UniqueConstraint("artist_id", "date", "start_time", name="uq_slot_artist_date_start"),
    )

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=False, index=True)

    # Local calendar date, no time component
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM, 24:00 = end of day

    # AVAILABLE | TENTATIVE | UNAVAILABLE | BOOKED | TRAVEL_TIME
    status = Column(String(20), default="AVAILABLE", nullable=False, index=True)

    # Pricing and buffers
    price_multiplier = Column(Float, default=1.0, nullable=False)
    minimum_hours = Column(Integer, nullable=True)
    buffer_before = Column(Integer, default=0, nullable=False)  # minutes
    buffer_after = Column(Integer, default=0, nullable=False)  # minutes

    notes = Column(Text, nullable=True)
    requirements = Column(Text, nullable=True)

    # Provenance
    recurring_pattern_id = Column(
        Integer, ForeignKey("recurring_patterns.id"), nullable=True, index=True
    )
    template_id = Column(
        Integer, ForeignKey("time_slot_templates.id", ondelete="SET NULL"), nullable=True
    )

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    artist = relationship("Artist", back_populates="availability_slots")
    recurring_pattern = relationship("RecurringPattern", back_populates="slots")


class RecurringPattern(Base):
    """Recurrence rule that lazily produces availability for matching dates"""

    __tablename__ = "recurring_patterns"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)

    frequency = Column(String(20), nullable=False)  # DAILY | WEEKLY | MONTHLY
    day_of_week = Column(Integer, nullable=True)  # 0-6, Sunday=0
    day_of_month = Column(Integer, nullable=True)  # 1-31

    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    price_multiplier = Column(Float, default=1.0, nullable=False)
    minimum_hours = Column(Integer, nullable=True)

    valid_from = Column(Date, nullable=False)
    valid_until = Column(Date, nullable=True)  # open-ended when null
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    slots = relationship("AvailabilitySlot", back_populates="recurring_pattern")


class TimeSlotTemplate(Base):
    """Reusable bundle of slot attributes applied imperatively to chosen dates"""

    __tablename__ = "time_slot_templates"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)

    duration = Column(Integer, nullable=False)  # minutes
    buffer_before = Column(Integer, default=0, nullable=False)
    buffer_after = Column(Integer, default=0, nullable=False)
    price_multiplier = Column(Float, default=1.0, nullable=False)
    minimum_advance_hours = Column(Integer, default=24, nullable=False)

    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Assignment(Base):
    """Booking of one artist (or a special-event placeholder) to a venue/date/slot"""

    __tablename__ = "assignments"
    __table_args__ = (
        UniqueConstraint("venue_id", "date", "slot_key", name="uq_assignment_venue_date_slot"),
    )

    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False, index=True)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=True, index=True)
    special_event = Column(String(255), nullable=True)  # closure / special night label

    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    # Venue slot name; null means the venue's single implicit slot
    slot = Column(String(50), nullable=True)
    # slot or "main": NULLs are distinct in UNIQUE constraints, this column is not
    slot_key = Column(String(50), nullable=False, default="main")

    # SCHEDULED | CONFIRMED | COMPLETED | CANCELLED
    status = Column(String(20), default="SCHEDULED", nullable=False)
    notes = Column(Text, nullable=True)

    # Optimistic locking: concurrent writers on the same row get a ConflictError
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    venue = relationship("Venue", back_populates="assignments")
    artist = relationship("Artist", back_populates="assignments")
    feedback = relationship(
        "Feedback",
        back_populates="assignment",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version}


class BlackoutPeriod(Base):
    """Inclusive date range in which an artist takes no bookings"""

    __tablename__ = "blackout_periods"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=False, index=True)

    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)

    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    # PERSONAL | HOLIDAY | MAINTENANCE | OTHER
    blackout_type = Column(String(20), default="PERSONAL", nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

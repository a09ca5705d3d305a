from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Slot key used when a venue runs a single implicit slot
MAIN_SLOT = "main"


class Venue(Base):
    __tablename__ = "venues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    # Default operating window, HH:MM (24:00 allowed as end-of-day)
    start_time = Column(String(5), nullable=False, default="20:00")
    end_time = Column(String(5), nullable=False, default="24:00")
    # Named sub-periods of the night, e.g. ["Early", "Late"]; empty = single "main" slot
    slots = Column(JSON, default=list, nullable=True)
    # Optional per-slot hours: {"Early": {"startTime": "18:00", "endTime": "21:00"}}
    slot_hours = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    assignments = relationship("Assignment", back_populates="venue")

    @property
    def slot_names(self) -> list:
        """Named slots, or [None] for the implicit main slot"""
        return list(self.slots) if self.slots else [None]

    def hours_for_slot(self, slot):
        """Slot-specific hours, falling back to the venue's overall window"""
        hours = (self.slot_hours or {}).get(slot) if slot else None
        if hours:
            return hours.get("startTime", self.start_time), hours.get("endTime", self.end_time)
        return self.start_time, self.end_time


class Artist(Base):
    """Foreign reference: artist profiles are owned by the marketplace"""

    __tablename__ = "artists"

    id = Column(Integer, primary_key=True, index=True)
    stage_name = Column(String(255), nullable=False)
    category = Column(String(50), nullable=True, index=True)  # DJ, BAND, SINGER...
    profile_image = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    availability_slots = relationship("AvailabilitySlot", back_populates="artist")
    assignments = relationship("Assignment", back_populates="artist")


class Feedback(Base):
    """Night rating written by the feedback service; read-only here"""

    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(
        Integer, ForeignKey("assignments.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    overall_rating = Column(Float, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    assignment = relationship("Assignment", back_populates="feedback")


# Register scheduling tables on the same metadata so relationships resolve
from . import models_scheduling  # noqa: E402, F401

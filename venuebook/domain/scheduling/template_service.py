"""Template service - Reusable slot templates and their application to dates"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from ...config import MAX_BULK_DATES
from ...models_scheduling import TimeSlotTemplate
from ...shared.errors import NotFoundError, ValidationError
from ...shared.validators import MINUTES_PER_DAY
from .availability_service import AvailabilityService, BulkResult
from .repository import ArtistRepository, TemplateRepository
from .schemas import ApplyTemplateRequest, SlotStatus, TemplateCreate, TemplateUpdate
from .time_calculator import from_minutes, parse_time, to_minutes

logger = logging.getLogger(__name__)


class TemplateService:
    """Service layer for time slot templates"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TemplateRepository()

    def get_template(self, template_id: int, artist_id: Optional[int] = None) -> TimeSlotTemplate:
        template = self.repo.get_template(self.db, template_id, artist_id)
        if not template:
            raise NotFoundError("Template not found")
        return template

    def list_templates(
        self,
        artist_id: int,
        is_active: Optional[bool] = None,
        is_default: Optional[bool] = None,
    ) -> list[TimeSlotTemplate]:
        return self.repo.get_templates(self.db, artist_id, is_active, is_default)

    def create_template(self, artist_id: int, data: TemplateCreate) -> TimeSlotTemplate:
        """Create a template; a new default replaces the artist's previous default"""
        logger.info(f"📥 Creating slot template for artist {artist_id}")
        if not ArtistRepository.get_artist(self.db, artist_id):
            raise NotFoundError("Artist not found")

        if data.isDefault:
            self.repo.clear_default(self.db, artist_id)

        template = self.repo.add_template(
            self.db,
            artist_id,
            name=data.name,
            description=data.description,
            duration=data.duration,
            buffer_before=data.bufferBefore,
            buffer_after=data.bufferAfter,
            price_multiplier=data.priceMultiplier,
            minimum_advance_hours=data.minimumAdvanceHours,
            is_default=data.isDefault,
            is_active=data.isActive,
        )
        self.db.commit()
        self.db.refresh(template)
        logger.info(f"✅ Template {template.id} created")
        return template

    def update_template(
        self, template_id: int, data: TemplateUpdate, artist_id: Optional[int] = None
    ) -> TimeSlotTemplate:
        template = self.get_template(template_id, artist_id)

        if data.isDefault:
            self.repo.clear_default(self.db, template.artist_id, except_id=template.id)

        updates = {
            "name": data.name,
            "description": data.description,
            "duration": data.duration,
            "buffer_before": data.bufferBefore,
            "buffer_after": data.bufferAfter,
            "price_multiplier": data.priceMultiplier,
            "minimum_advance_hours": data.minimumAdvanceHours,
            "is_default": data.isDefault,
            "is_active": data.isActive,
        }
        for key, value in updates.items():
            if value is not None:
                setattr(template, key, value)

        self.db.commit()
        self.db.refresh(template)
        return template

    def delete_template(self, template_id: int, artist_id: Optional[int] = None) -> None:
        template = self.get_template(template_id, artist_id)
        self.db.delete(template)
        self.db.commit()
        logger.info(f"🗑️ Deleted template {template_id}")

    def apply_template(
        self, artist_id: int, template_id: int, data: ApplyTemplateRequest
    ) -> BulkResult:
        """
        Write one AVAILABLE slot per requested date from the template.

        The slot runs from ``startTime`` for the template's duration and must
        end by 24:00. Dates are written independently; failures come back in
        the result instead of aborting the batch.
        """
        template = self.repo.get_template(self.db, template_id, artist_id)
        if not template or not template.is_active:
            raise NotFoundError("Template not found or inactive")

        if len(data.dates) > MAX_BULK_DATES:
            raise ValidationError(f"At most {MAX_BULK_DATES} dates per request", field="dates")

        start = parse_time(data.startTime, "startTime")
        end_minutes = to_minutes(start) + template.duration
        if end_minutes > MINUTES_PER_DAY:
            raise ValidationError(
                "Template duration runs past the end of the day", field="startTime"
            )

        values = {
            "start_time": start,
            "end_time": from_minutes(end_minutes),
            "status": SlotStatus.AVAILABLE.value,
            "price_multiplier": template.price_multiplier,
            "minimum_hours": math.ceil(template.duration / 60),
            "buffer_before": template.buffer_before,
            "buffer_after": template.buffer_after,
            "notes": f"Applied template: {template.name}",
            "template_id": template.id,
        }

        logger.info(
            f"📥 Applying template {template.id} to {len(data.dates)} dates for artist {artist_id}"
        )
        return AvailabilityService(self.db).bulk_upsert(
            artist_id, data.dates, values, overwrite_existing=data.overwriteExisting
        )

"""Scheduling domain - Artist availability, venue assignments and calendar views"""

from .router_availability import router as availability_router
from .router_schedule import router as schedule_router

__all__ = ["availability_router", "schedule_router"]

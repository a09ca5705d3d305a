"""Domain error taxonomy shared by the scheduling services.

Services raise these; ``main.py`` maps them onto HTTP responses so routers
stay thin. Informational conflicts (an artist double-booked across venues)
are returned as data and never raised.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base class for all scheduling errors"""

    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        body = {"detail": self.message}
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(SchedulingError):
    """Malformed or overlapping time ranges, bad enums, negative buffers"""

    status_code = 400


class ConflictError(SchedulingError):
    """Uniqueness violation or lost-update race; caller must re-fetch and retry"""

    status_code = 409


class NotFoundError(SchedulingError):
    """Operation on a non-existent slot, assignment, pattern or template"""

    status_code = 404

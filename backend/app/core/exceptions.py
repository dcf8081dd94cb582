"""
Allocation error taxonomy.

Every failure the engine can surface is one of these. They carry enough context
(seat, date, user) for a caller to render a message, and an HTTP status used by
the API layer. None of them are retried inside the engine.
"""

from datetime import date
from typing import Any, Optional


class AllocationError(Exception):
    status_code: int = 400
    kind: str = "AllocationError"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = {k: _jsonable(v) for k, v in context.items() if v is not None}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.kind, "context": self.context}


def _jsonable(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value


class OutsideBookingHorizon(AllocationError):
    status_code = 403
    kind = "OutsideBookingHorizon"


class InvalidTimeRange(AllocationError):
    status_code = 400
    kind = "InvalidTimeRange"


class DuplicateUserBooking(AllocationError):
    status_code = 400
    kind = "DuplicateUserBooking"


class SeatAlreadyBooked(AllocationError):
    status_code = 409
    kind = "SeatAlreadyBooked"


class NoDesignatedSeat(AllocationError):
    status_code = 400
    kind = "NoDesignatedSeat"


class NotDesignatedSeat(AllocationError):
    status_code = 400
    kind = "NotDesignatedSeat"


class FloatingWindowClosed(AllocationError):
    status_code = 403
    kind = "FloatingWindowClosed"


class Forbidden(AllocationError):
    status_code = 403
    kind = "Forbidden"


class NotFound(AllocationError):
    status_code = 404
    kind = "NotFound"


class SeatNotFound(NotFound):
    kind = "SeatNotFound"


class AlreadyCancelled(AllocationError):
    status_code = 409
    kind = "AlreadyCancelled"


class UserNotFound(AllocationError):
    status_code = 404
    kind = "UserNotFound"


class StoreUnavailable(AllocationError):
    status_code = 503
    kind = "StoreUnavailable"

    def __init__(self, message: str = "Seat store is unavailable", cause: Optional[BaseException] = None, **context: Any):
        if cause is not None:
            context.setdefault("cause", type(cause).__name__)
        super().__init__(message, **context)

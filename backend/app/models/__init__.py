from app.models.user import User, UserRole
from app.models.seat import Seat, SeatKind, ReleaseState
from app.models.booking import Booking, BookingType, BookingStatus

__all__ = [
    "User", "UserRole",
    "Seat", "SeatKind", "ReleaseState",
    "Booking", "BookingType", "BookingStatus",
]

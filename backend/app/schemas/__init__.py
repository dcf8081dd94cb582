from app.schemas.seat import SeatResponse, SeatOccupancyResponse, DailyStatsResponse
from app.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingCancelResponse,
    ReleaseRequest,
    ReleaseResponse,
    AvailabilityResponse,
    WeekDayResponse,
)

__all__ = [
    "SeatResponse", "SeatOccupancyResponse", "DailyStatsResponse",
    "BookingCreate", "BookingResponse", "BookingCancelResponse",
    "ReleaseRequest", "ReleaseResponse", "AvailabilityResponse", "WeekDayResponse",
]

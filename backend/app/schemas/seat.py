"""
Pydantic schemas for seat listings and daily statistics.
"""

from datetime import date
from typing import Optional
from pydantic import BaseModel

from app.models.seat import SeatKind, ReleaseState
from app.models.booking import BookingType


class SeatResponse(BaseModel):
    id: int
    seat_number: str
    kind: SeatKind
    squad: Optional[int]
    batch: Optional[int]
    owner_user_id: Optional[int]
    release_state: ReleaseState
    release_date: Optional[date]
    released_by_user_id: Optional[int]

    model_config = {"from_attributes": True}


class SeatOccupancyResponse(SeatResponse):
    is_booked: bool
    booked_by_user_id: Optional[int] = None
    booking_id: Optional[int] = None
    booking_type: Optional[BookingType] = None


class DailyStatsResponse(BaseModel):
    date: date
    total_seats: int
    base_floating: int
    designated_total: int
    released_seats: int
    total_floating: int
    booked: int
    available: int
    cached: bool = False


class HousekeepingResponse(BaseModel):
    completed_bookings: int
    cleared_releases: int

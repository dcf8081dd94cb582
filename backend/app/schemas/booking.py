"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.models.booking import BookingType, BookingStatus
from app.schemas.seat import SeatResponse

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class BookingCreate(BaseModel):
    seat_id: int
    date: date
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)


class BookingResponse(BaseModel):
    id: int
    user_id: int
    seat_id: int
    date: date
    booking_type: BookingType
    start_time: str
    end_time: str
    status: BookingStatus
    booked_at: datetime
    cancelled_at: Optional[datetime]

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: BookingStatus
    seat_released: bool


class ReleaseRequest(BaseModel):
    date: date


class ReleaseResponse(BaseModel):
    message: str
    seat: SeatResponse
    cancelled_booking_id: Optional[int] = None
    already_released: bool = False


class SeatAvailabilityResponse(SeatResponse):
    is_booked: bool
    is_available: bool
    booked_by_requesting_user: bool
    released_by_owner: bool


class FloatingPoolResponse(BaseModel):
    total: int
    booked: int
    available: int
    base_floating: int
    released: int


class AvailabilityResponse(BaseModel):
    date: date
    is_working_day: bool
    can_book_floating: bool
    floating_window_message: Optional[str] = None
    seats: list[SeatAvailabilityResponse]
    floating_info: FloatingPoolResponse
    user_has_booking: bool
    current_booking: Optional[BookingResponse] = None
    has_released_own_seat: bool


class AllocationResponse(BaseModel):
    booking_id: int
    seat_id: int
    seat_number: str
    seat_kind: str
    user_id: int
    batch: int
    squad: int
    booking_type: BookingType
    start_time: str
    end_time: str


class WeekDayResponse(BaseModel):
    date: date
    day_name: str
    week_number: int
    batch_in_office: Optional[int]
    is_working_day: bool
    can_book_floating: bool
    my_booking: Optional[BookingResponse] = None
    total_bookings: int
    allocations: list[AllocationResponse]

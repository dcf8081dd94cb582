"""
Booking endpoints: availability, reserve, cancel, release, my bookings, schedule.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_current_user
from app.core.clock import Clock, get_clock
from app.db.session import get_db
from app.schemas.booking import (
    AvailabilityResponse,
    BookingCancelResponse,
    BookingCreate,
    BookingResponse,
    FloatingPoolResponse,
    ReleaseRequest,
    ReleaseResponse,
    SeatAvailabilityResponse,
    WeekDayResponse,
)
from app.schemas.seat import SeatResponse
from app.services.allocation_service import (
    cancel_booking,
    compute_availability,
    get_user_bookings,
    release_designated_seat,
    reserve_seat,
)
from app.services.cache_service import invalidate_stats_cache
from app.services.stats_service import week_schedule

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("/available/{target_date}", response_model=AvailabilityResponse)
async def get_availability(
    target_date: date,
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Every seat for the date with booked/available flags from the caller's
    point of view. Showing a seat as available does not reserve it.
    """
    snapshot = await compute_availability(db, user.id, target_date, clock.now())
    pool = snapshot.floating_pool
    return AvailabilityResponse(
        date=snapshot.date,
        is_working_day=snapshot.is_working_day,
        can_book_floating=snapshot.can_book_floating,
        floating_window_message=snapshot.floating_window_message,
        seats=[
            SeatAvailabilityResponse(
                **SeatResponse.model_validate(s.seat).model_dump(),
                is_booked=s.is_booked,
                is_available=s.is_available,
                booked_by_requesting_user=s.booked_by_requesting_user,
                released_by_owner=s.released_by_owner,
            )
            for s in snapshot.seats
        ],
        floating_info=FloatingPoolResponse(
            total=pool.total,
            booked=pool.booked,
            available=pool.available,
            base_floating=pool.base_floating,
            released=pool.released,
        ),
        user_has_booking=snapshot.user_has_booking,
        current_booking=(
            BookingResponse.model_validate(snapshot.current_booking) if snapshot.current_booking else None
        ),
        has_released_own_seat=snapshot.has_released_own_seat,
    )


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve a seat for one day. At most one active booking per person per day
    and per seat per day; the loser of a race gets 400/409.
    """
    booking = await reserve_seat(
        db,
        user.id,
        booking_data.seat_id,
        booking_data.date,
        clock.now(),
        start_time=booking_data.start_time,
        end_time=booking_data.end_time,
    )
    # Drop the cached stats only once the change is visible to other readers
    await db.commit()
    await invalidate_stats_cache(booking.date)
    return booking


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking. Owners and admins only."""
    result = await cancel_booking(db, booking_id, user.id, user.is_admin, clock.now())
    await db.commit()
    await invalidate_stats_cache(result.booking.date)
    return BookingCancelResponse(
        message=result.message,
        booking_id=result.booking.id,
        status=result.booking.status,
        seat_released=result.seat_released,
    )


@router.post("/release", response_model=ReleaseResponse)
async def release_seat_endpoint(
    release_data: ReleaseRequest,
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Give up your designated seat for one date so others can book it."""
    result = await release_designated_seat(db, user.id, release_data.date, clock.now())
    await db.commit()
    await invalidate_stats_cache(release_data.date)
    return ReleaseResponse(
        message=result.message,
        seat=SeatResponse.model_validate(result.seat),
        cancelled_booking_id=result.cancelled_booking_id,
        already_released=result.already_released,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_my_bookings(
    on_date: Optional[date] = Query(None, alias="date"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's bookings, newest date first, optionally for one date."""
    return await get_user_bookings(db, user.id, on_date)


@router.get("/schedule", response_model=list[WeekDayResponse])
async def get_schedule(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Rotation, own booking and full seat allocations per day (default: next 14 days)."""
    return await week_schedule(db, user.id, clock.now(), start, end)

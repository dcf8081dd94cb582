"""
Seat endpoints: inventory, per-date occupancy, daily stats and housekeeping.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_current_user, require_admin
from app.core.clock import Clock, get_clock
from app.core.logging import get_logger
from app.db.session import get_db
from app.repositories import SeatDirectory
from app.schemas.seat import DailyStatsResponse, HousekeepingResponse, SeatOccupancyResponse, SeatResponse
from app.services.allocation_service import run_housekeeping
from app.services.cache_service import get_cached_stats, invalidate_stats_cache, set_cached_stats
from app.services.stats_service import daily_stats, seats_by_date

logger = get_logger(__name__)
router = APIRouter(prefix="/seats", tags=["Seats"])


@router.get("/", response_model=list[SeatResponse])
async def list_seats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SeatDirectory(db).list_seats()


@router.get("/stats", response_model=DailyStatsResponse)
async def get_daily_stats(
    target_date: Optional[date] = Query(None, alias="date"),
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Seat totals for a date (default today).
    Cached in Redis per date; invalidated by any booking change on that date.
    """
    target_date = target_date or clock.now().date()

    cached = await get_cached_stats(target_date)
    if cached:
        logger.info("daily_stats_cache_hit", date=target_date.isoformat())
        cached["cached"] = True
        return DailyStatsResponse(**cached)

    stats = await daily_stats(db, target_date)
    data = stats.to_dict()
    await set_cached_stats(target_date, data)
    return DailyStatsResponse(**data)


@router.get("/date/{target_date}", response_model=list[SeatOccupancyResponse])
async def get_seats_by_date(
    target_date: date,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Every seat with its occupant for the date."""
    rows = await seats_by_date(db, target_date)
    return [
        SeatOccupancyResponse(
            **SeatResponse.model_validate(seat).model_dump(),
            is_booked=booking is not None,
            booked_by_user_id=booking.user_id if booking else None,
            booking_id=booking.id if booking else None,
            booking_type=booking.booking_type if booking else None,
        )
        for seat, booking in rows
    ]


@router.post("/housekeeping", response_model=HousekeepingResponse)
async def housekeeping(
    admin: CurrentUser = Depends(require_admin),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Complete past bookings and clear releases for dates already gone. Admin only."""
    result = await run_housekeeping(db, clock.now())
    await db.commit()
    await invalidate_stats_cache()
    return HousekeepingResponse(
        completed_bookings=result.completed_bookings,
        cleared_releases=result.cleared_releases,
    )

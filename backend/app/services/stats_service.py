"""
Read-only rollups over the seat directory and booking ledger.
Nothing here writes; results are point-in-time and may trail concurrent writes.
"""

from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidTimeRange
from app.models.booking import Booking
from app.models.seat import Seat, SeatKind
from app.repositories import BookingLedger, SeatDirectory, UserRepository
from app.services.allocation_service import released_pool_seat_ids
from app.services.calendar_rules import (
    batch_in_office,
    cycle_week,
    date_range,
    floating_window_open,
)

MAX_SCHEDULE_DAYS = 62


@dataclass
class DailyStats:
    date: date
    total_seats: int
    base_floating: int
    designated_total: int
    released_seats: int
    total_floating: int
    booked: int
    available: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


async def daily_stats(db: AsyncSession, target: date) -> DailyStats:
    directory, ledger = SeatDirectory(db), BookingLedger(db)

    seats = await directory.list_seats()
    base_floating = sum(1 for s in seats if s.kind == SeatKind.FLOATING)
    released = await released_pool_seat_ids(directory, ledger, target, seats)
    booked = len(await ledger.list_active_on_date(target))

    return DailyStats(
        date=target,
        total_seats=len(seats),
        base_floating=base_floating,
        designated_total=len(seats) - base_floating,
        released_seats=len(released),
        total_floating=base_floating + len(released),
        booked=booked,
        available=len(seats) - booked,
    )


async def seats_by_date(db: AsyncSession, target: date) -> list[tuple[Seat, Optional[Booking]]]:
    """Every seat paired with its active booking for `target`, if any."""
    seats = await SeatDirectory(db).list_seats()
    by_seat = {b.seat_id: b for b in await BookingLedger(db).list_active_on_date(target)}
    return [(seat, by_seat.get(seat.id)) for seat in seats]


async def week_schedule(
    db: AsyncSession,
    user_id: int,
    now: datetime,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[dict]:
    """
    Day-by-day view for `user_id`: rotation, their own booking, whether the
    floating pool is open, and who sits where.
    """
    start = start or now.date()
    end = end or start + timedelta(days=14)
    if end < start:
        raise InvalidTimeRange("End date must not be before start date", start=start, end=end)
    if (end - start).days > MAX_SCHEDULE_DAYS:
        raise InvalidTimeRange(
            f"Schedule range is limited to {MAX_SCHEDULE_DAYS} days", start=start, end=end
        )

    user = await UserRepository(db).get_user(user_id)
    ledger = BookingLedger(db)

    schedule = []
    for day in date_range(start, end):
        rows = await ledger.list_active_allocations_on_date(day)
        in_office = batch_in_office(day)
        my_booking = next((b for b, _, _ in rows if b.user_id == user.id), None)
        schedule.append({
            "date": day,
            "day_name": day.strftime("%A"),
            "week_number": cycle_week(day),
            "batch_in_office": in_office,
            "is_working_day": in_office == user.batch,
            "can_book_floating": floating_window_open(day, now),
            "my_booking": my_booking,
            "total_bookings": len(rows),
            "allocations": [
                {
                    "booking_id": booking.id,
                    "seat_id": seat.id,
                    "seat_number": seat.seat_number,
                    "seat_kind": seat.kind.value,
                    "user_id": occupant.id,
                    "batch": occupant.batch,
                    "squad": occupant.squad,
                    "booking_type": booking.booking_type,
                    "start_time": booking.start_time,
                    "end_time": booking.end_time,
                }
                for booking, seat, occupant in rows
            ],
        })
    return schedule

"""
Booking Ledger: every reservation ever made, with its lifecycle status.

The two partial unique indexes on `bookings` decide reservation races; `create`
translates their violations into the matching domain errors. Status changes are
conditional UPDATEs keyed on the current status.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyCancelled,
    DuplicateUserBooking,
    NotFound,
    SeatAlreadyBooked,
    StoreUnavailable,
)
from app.core.logging import get_logger
from app.db.errors import store_operation
from app.models.booking import (
    Booking,
    BookingStatus,
    BookingType,
    UQ_ACTIVE_SEAT_DATE,
    UQ_ACTIVE_USER_DATE,
)
from app.models.seat import Seat
from app.models.user import User

logger = get_logger(__name__)


def _conflict_from_integrity_error(exc: IntegrityError, user_id: int, seat_id: int, target: date):
    text = str(exc.orig)
    # PostgreSQL names the index; SQLite names the columns
    if UQ_ACTIVE_USER_DATE in text or "bookings.user_id" in text:
        return DuplicateUserBooking(
            "You already have a booking for this date", user_id=user_id, date=target
        )
    if UQ_ACTIVE_SEAT_DATE in text or "bookings.seat_id" in text:
        return SeatAlreadyBooked(
            "Seat is already booked for this date", seat_id=seat_id, date=target
        )
    return StoreUnavailable("Booking could not be stored", cause=exc, seat_id=seat_id, date=target)


class BookingLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _read(self, stmt):
        # Bulk UPDATEs do not touch the identity map; reads always refresh it
        return await self.db.execute(stmt.execution_options(populate_existing=True))

    @store_operation
    async def get(self, booking_id: int) -> Optional[Booking]:
        result = await self._read(select(Booking).where(Booking.id == booking_id))
        return result.scalar_one_or_none()

    @store_operation
    async def find_active_for_user_on_date(self, user_id: int, target: date) -> Optional[Booking]:
        result = await self._read(
            select(Booking).where(
                Booking.user_id == user_id,
                Booking.date == target,
                Booking.status == BookingStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    @store_operation
    async def find_active_for_seat_on_date(self, seat_id: int, target: date) -> Optional[Booking]:
        result = await self._read(
            select(Booking).where(
                Booking.seat_id == seat_id,
                Booking.date == target,
                Booking.status == BookingStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    @store_operation
    async def find_cancelled_owner_booking_for_seat_on_date(
        self, seat_id: int, user_id: int, target: date
    ) -> Optional[Booking]:
        result = await self._read(
            select(Booking)
            .where(
                Booking.seat_id == seat_id,
                Booking.user_id == user_id,
                Booking.date == target,
                Booking.status == BookingStatus.CANCELLED,
            )
            .order_by(Booking.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @store_operation
    async def create(
        self,
        user_id: int,
        seat_id: int,
        target: date,
        booking_type: BookingType,
        start_time: str,
        end_time: str,
        booked_at: datetime,
    ) -> Booking:
        """
        Insert an Active booking. Must run inside a transaction or savepoint the
        caller owns; a uniqueness violation is raised as the matching conflict.
        """
        booking = Booking(
            user_id=user_id,
            seat_id=seat_id,
            date=target,
            booking_type=booking_type,
            start_time=start_time,
            end_time=end_time,
            status=BookingStatus.ACTIVE,
            booked_at=booked_at,
        )
        self.db.add(booking)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise _conflict_from_integrity_error(exc, user_id, seat_id, target) from exc
        await self.db.refresh(booking)
        return booking

    @store_operation
    async def cancel(self, booking_id: int, cancelled_at: datetime) -> Booking:
        """Active -> Cancelled. Only one concurrent caller can make this transition."""
        result = await self.db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatus.ACTIVE)
            .values(status=BookingStatus.CANCELLED, cancelled_at=cancelled_at, updated_at=cancelled_at)
            .execution_options(synchronize_session=False)
        )
        booking = await self.get(booking_id)
        if booking is None:
            raise NotFound("Booking not found", booking_id=booking_id)
        if not result.rowcount:
            raise AlreadyCancelled(
                f"Booking is already {booking.status.value}",
                booking_id=booking_id,
                status=booking.status.value,
            )
        return booking

    @store_operation
    async def list_for_user(self, user_id: int, on_date: Optional[date] = None) -> list[Booking]:
        query = select(Booking).where(Booking.user_id == user_id)
        if on_date is not None:
            query = query.where(Booking.date == on_date)
        result = await self._read(query.order_by(Booking.date.desc(), Booking.id.desc()))
        return list(result.scalars().all())

    @store_operation
    async def list_active_on_date(self, target: date) -> list[Booking]:
        result = await self._read(
            select(Booking).where(Booking.date == target, Booking.status == BookingStatus.ACTIVE)
        )
        return list(result.scalars().all())

    @store_operation
    async def list_active_allocations_on_date(self, target: date) -> list[tuple[Booking, Seat, User]]:
        """Active bookings joined with their seat and occupant, ordered by seat number."""
        result = await self._read(
            select(Booking, Seat, User)
            .join(Seat, Seat.id == Booking.seat_id)
            .join(User, User.id == Booking.user_id)
            .where(Booking.date == target, Booking.status == BookingStatus.ACTIVE)
            .order_by(Seat.seat_number.asc())
        )
        return [tuple(row) for row in result.all()]

    @store_operation
    async def cancelled_designated_seat_ids_on(self, target: date) -> set[int]:
        """Seats whose owner cancelled a designated booking for `target`."""
        result = await self._read(
            select(Booking.seat_id).where(
                Booking.date == target,
                Booking.status == BookingStatus.CANCELLED,
                Booking.booking_type == BookingType.DESIGNATED,
            )
        )
        return set(result.scalars().all())

    @store_operation
    async def complete_before(self, today: date, completed_at: datetime) -> int:
        result = await self.db.execute(
            update(Booking)
            .where(Booking.status == BookingStatus.ACTIVE, Booking.date < today)
            .values(status=BookingStatus.COMPLETED, updated_at=completed_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

"""
Seat allocation engine.

CONCURRENCY STRATEGY: Unique Partial Indexes as the Arbiter
===========================================================

Problem:
  Two people click "book" on the same seat for the same day at the same
  moment. Both read "no active booking for this seat", both insert.
  Result: a double-booked desk. The same race exists for one person booking
  two different seats from two browser tabs.

Solution:
  The database owns the invariant. `bookings` carries two partial unique
  indexes, both restricted to status = 'active':

    (seat_id, date)   -> one occupant per seat per day
    (user_id, date)   -> one seat per person per day

  reserve() still runs the cheap look-ups first so the common failure gets a
  clear error without touching the write path, but the look-ups decide nothing.
  The INSERT and the release-flag reset run inside one SAVEPOINT; if either
  index rejects the row the savepoint is rolled back and the caller gets
  SeatAlreadyBooked / DuplicateUserBooking with no partial writes.

  Cancellation and release are conditional UPDATEs keyed on the current status
  (WHERE status = 'active', WHERE NOT already released for that date), so two
  racing callers cannot both perform the same transition.

  release() checks the seat for a stranger's booking and then flags it; a
  reserve() landing in between would leave a released seat with an occupant.
  Both operations therefore lock the seat row (SELECT ... FOR UPDATE) before
  reading bookings, so one waits for the other to commit.

  No retries happen here. A store failure surfaces as StoreUnavailable and the
  caller decides whether to try again.

Released seats
--------------
A designated seat released by its owner joins the floating pool for exactly
one date. Release arrives two ways, both treated identically:
  - the owner calls release() for a date
  - the owner cancels their own designated booking for today or later
The next successful booking of that seat for that date consumes the release.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import (
    AllocationError,
    AlreadyCancelled,
    DuplicateUserBooking,
    FloatingWindowClosed,
    Forbidden,
    InvalidTimeRange,
    NoDesignatedSeat,
    NotFound,
    OutsideBookingHorizon,
    SeatAlreadyBooked,
    SeatNotFound,
    StoreUnavailable,
)
from app.core.logging import get_logger
from app.core.metrics import record_cancellation, record_release, record_reservation_attempt, reservation_latency
from app.models.booking import Booking, BookingType
from app.models.seat import Seat, SeatKind
from app.repositories import BookingLedger, SeatDirectory, UserRepository
from app.services.calendar_rules import (
    floating_window_message,
    floating_window_open,
    is_designated_working_day,
    within_booking_horizon,
)

logger = get_logger(__name__)


@dataclass
class SeatAvailability:
    seat: Seat
    is_booked: bool
    is_available: bool
    booked_by_requesting_user: bool
    released_by_owner: bool


@dataclass
class FloatingPool:
    base_floating: int
    released: int
    booked: int

    @property
    def total(self) -> int:
        return self.base_floating + self.released

    @property
    def available(self) -> int:
        return self.total - self.booked


@dataclass
class AvailabilitySnapshot:
    date: date
    is_working_day: bool
    can_book_floating: bool
    floating_window_message: Optional[str]
    seats: list[SeatAvailability]
    floating_pool: FloatingPool
    current_booking: Optional[Booking]
    has_released_own_seat: bool

    @property
    def user_has_booking(self) -> bool:
        return self.current_booking is not None


@dataclass
class CancelResult:
    booking: Booking
    seat_released: bool
    message: str


@dataclass
class ReleaseResult:
    seat: Seat
    cancelled_booking_id: Optional[int]
    already_released: bool
    message: str


@dataclass
class HousekeepingResult:
    completed_bookings: int
    cleared_releases: int


def _horizon_error(target: date, today: date) -> OutsideBookingHorizon:
    if target < today:
        return OutsideBookingHorizon("Cannot book for past dates", date=target)
    horizon = get_settings().BOOKING_HORIZON_DAYS
    return OutsideBookingHorizon(
        f"Bookings are only allowed for the next {horizon} days", date=target
    )


async def released_pool_seat_ids(
    directory: SeatDirectory,
    ledger: BookingLedger,
    target: date,
    seats: Optional[list[Seat]] = None,
) -> set[int]:
    """
    Designated seats that sit in the floating pool for `target`: seats whose
    release slot names that date, plus seats whose owner cancelled a
    designated booking for it.
    """
    if seats is None:
        released = await directory.released_seat_ids_on(target)
    else:
        released = {s.id for s in seats if s.is_released_for(target)}
    return released | await ledger.cancelled_designated_seat_ids_on(target)


async def compute_availability(
    db: AsyncSession,
    user_id: int,
    target: date,
    now: datetime,
) -> AvailabilitySnapshot:
    """Every seat for `target`, annotated from the requesting user's point of view."""
    users, directory, ledger = UserRepository(db), SeatDirectory(db), BookingLedger(db)

    user = await users.get_user(user_id)
    if not within_booking_horizon(target, now.date()):
        raise _horizon_error(target, now.date())

    is_working_day = is_designated_working_day(target, user.batch)
    seats = await directory.list_seats()
    active = await ledger.list_active_on_date(target)

    booked_seat_ids = {b.seat_id for b in active}
    user_booking = next((b for b in active if b.user_id == user.id), None)
    own_seat = next(
        (s for s in seats if s.is_designated and s.owner_user_id == user.id), None
    )

    has_released_own_seat = False
    if own_seat is not None and not (user_booking and user_booking.seat_id == own_seat.id):
        if own_seat.is_released_for(target):
            has_released_own_seat = True
        else:
            cancelled = await ledger.find_cancelled_owner_booking_for_seat_on_date(
                own_seat.id, user.id, target
            )
            has_released_own_seat = cancelled is not None

    released_ids = await released_pool_seat_ids(directory, ledger, target, seats)
    pool_ids = {s.id for s in seats if s.kind == SeatKind.FLOATING} | released_ids
    pool = FloatingPool(
        base_floating=sum(1 for s in seats if s.kind == SeatKind.FLOATING),
        released=len(released_ids),
        booked=sum(1 for b in active if b.seat_id in pool_ids),
    )

    annotated = [
        SeatAvailability(
            seat=seat,
            is_booked=seat.id in booked_seat_ids,
            is_available=seat.id not in booked_seat_ids,
            booked_by_requesting_user=bool(user_booking and user_booking.seat_id == seat.id),
            released_by_owner=bool(own_seat and seat.id == own_seat.id and has_released_own_seat),
        )
        for seat in seats
    ]

    window_open = floating_window_open(target, now)
    return AvailabilitySnapshot(
        date=target,
        is_working_day=is_working_day,
        can_book_floating=window_open,
        floating_window_message=None if window_open else floating_window_message(target),
        seats=annotated,
        floating_pool=pool,
        current_booking=user_booking,
        has_released_own_seat=has_released_own_seat,
    )


async def reserve_seat(
    db: AsyncSession,
    user_id: int,
    seat_id: int,
    target: date,
    now: datetime,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
) -> Booking:
    """
    Book `seat_id` for `user_id` on `target`.
    Designated type only when the seat is the caller's own designated seat.
    """
    with reservation_latency.time():
        try:
            booking = await _reserve(db, user_id, seat_id, target, now, start_time, end_time)
        except (DuplicateUserBooking, SeatAlreadyBooked) as exc:
            record_reservation_attempt("conflict")
            logger.warning(
                "booking_conflict", user_id=user_id, seat_id=seat_id, date=target.isoformat(), error=exc.kind
            )
            raise
        except StoreUnavailable:
            record_reservation_attempt("error")
            raise
        except AllocationError:
            record_reservation_attempt("rejected")
            raise

    record_reservation_attempt("success")
    return booking


async def _reserve(
    db: AsyncSession,
    user_id: int,
    seat_id: int,
    target: date,
    now: datetime,
    start_time: Optional[str],
    end_time: Optional[str],
) -> Booking:
    settings = get_settings()
    start_time = start_time or settings.DEFAULT_START_TIME
    end_time = end_time or settings.DEFAULT_END_TIME
    if start_time >= end_time:
        raise InvalidTimeRange(
            "End time must be after start time", start_time=start_time, end_time=end_time
        )

    if not within_booking_horizon(target, now.date()):
        raise _horizon_error(target, now.date())

    users, directory, ledger = UserRepository(db), SeatDirectory(db), BookingLedger(db)
    user = await users.get_user(user_id)
    seat = await directory.get_seat(seat_id, lock=True)
    if seat is None:
        raise SeatNotFound("Seat not found", seat_id=seat_id)

    # Fast-path checks for a readable error; the unique indexes are the real guard
    if await ledger.find_active_for_user_on_date(user.id, target):
        raise DuplicateUserBooking(
            "You already have a booking for this date", user_id=user.id, date=target
        )
    if await ledger.find_active_for_seat_on_date(seat.id, target):
        raise SeatAlreadyBooked(
            f"Seat {seat.seat_number} is already booked", seat_id=seat.id, date=target
        )

    is_own_seat = seat.is_designated and seat.owner_user_id == user.id
    booking_type = BookingType.DESIGNATED if is_own_seat else BookingType.FLOATING

    if (
        settings.ENFORCE_FLOATING_WINDOW
        and booking_type == BookingType.FLOATING
        and not floating_window_open(target, now)
    ):
        raise FloatingWindowClosed(floating_window_message(target), seat_id=seat.id, date=target)

    async with db.begin_nested():
        booking = await ledger.create(
            user_id=user.id,
            seat_id=seat.id,
            target=target,
            booking_type=booking_type,
            start_time=start_time,
            end_time=end_time,
            booked_at=now,
        )
        # The booking row now represents occupancy; the release for this date is consumed
        release_consumed = await directory.clear_release(seat.id, only_for=target)

    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user.id,
        seat_id=seat.id,
        seat_number=seat.seat_number,
        date=target.isoformat(),
        booking_type=booking_type.value,
        release_consumed=release_consumed,
    )
    return booking


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    requesting_user_id: int,
    is_admin: bool,
    now: datetime,
) -> CancelResult:
    """
    Cancel a booking. Cancelling a designated booking for today or later
    hands the seat to the floating pool for that date.
    """
    directory, ledger = SeatDirectory(db), BookingLedger(db)

    booking = await ledger.get(booking_id)
    if booking is None:
        raise NotFound("Booking not found", booking_id=booking_id)
    if booking.user_id != requesting_user_id and not is_admin:
        raise Forbidden("Not authorized to cancel this booking", booking_id=booking_id, user_id=requesting_user_id)

    booking = await ledger.cancel(booking.id, cancelled_at=now)
    record_cancellation()

    seat_released = False
    if booking.booking_type == BookingType.DESIGNATED and booking.date >= now.date():
        if await directory.mark_released(booking.seat_id, by_user_id=requesting_user_id, target=booking.date):
            record_release("cancellation")
        seat_released = True

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        user_id=booking.user_id,
        cancelled_by=requesting_user_id,
        seat_id=booking.seat_id,
        date=booking.date.isoformat(),
        seat_released=seat_released,
    )

    if seat_released:
        message = "Booking cancelled - your seat is now available as a floating seat for others."
    else:
        message = "Booking cancelled successfully"
    return CancelResult(booking=booking, seat_released=seat_released, message=message)


async def release_designated_seat(
    db: AsyncSession,
    user_id: int,
    target: date,
    now: datetime,
) -> ReleaseResult:
    """
    Owner gives up their designated seat for `target`. Their own booking on it,
    if any, is cancelled first. Releasing twice is a no-op the second time.
    """
    users, directory, ledger = UserRepository(db), SeatDirectory(db), BookingLedger(db)

    user = await users.get_user(user_id)
    seat = await directory.find_owned_seat(user.id, lock=True)
    if seat is None:
        raise NoDesignatedSeat("You do not have a designated seat", user_id=user.id)

    cancelled_booking_id = None
    existing = await ledger.find_active_for_seat_on_date(seat.id, target)
    if existing is not None:
        if existing.user_id != user.id:
            raise Forbidden(
                "Seat is booked by someone else for this date",
                seat_id=seat.id,
                date=target,
            )
        try:
            await ledger.cancel(existing.id, cancelled_at=now)
            record_cancellation()
        except AlreadyCancelled:
            logger.info("release_booking_already_cancelled", booking_id=existing.id)
        cancelled_booking_id = existing.id

    changed = await directory.mark_released(seat.id, by_user_id=user.id, target=target)
    if changed:
        record_release("owner")
    seat = await directory.get_seat(seat.id)

    if cancelled_booking_id is not None:
        message = "Booking cancelled and seat released - it is now available as a floating seat for others."
    elif changed:
        message = "Seat released successfully - it is now available as a floating seat."
    else:
        message = "Seat was already released for this date."

    return ReleaseResult(
        seat=seat,
        cancelled_booking_id=cancelled_booking_id,
        already_released=not changed,
        message=message,
    )


async def get_user_bookings(
    db: AsyncSession, user_id: int, on_date: Optional[date] = None
) -> list[Booking]:
    """Every booking of the user, newest date first."""
    await UserRepository(db).get_user(user_id)
    return await BookingLedger(db).list_for_user(user_id, on_date)


async def run_housekeeping(db: AsyncSession, now: datetime) -> HousekeepingResult:
    """
    Complete active bookings dated before today and return stale releases to
    normal. Neither affects decisions for today or later.
    """
    today = now.date()
    completed = await BookingLedger(db).complete_before(today, completed_at=now)
    cleared = await SeatDirectory(db).clear_releases_before(today)
    logger.info("housekeeping_completed", today=today.isoformat(), completed=completed, cleared=cleared)
    return HousekeepingResult(completed_bookings=completed, cleared_releases=cleared)

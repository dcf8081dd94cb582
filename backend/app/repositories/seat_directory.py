"""
Seat Directory: the fixed seat inventory plus each seat's single release slot.

Release writes are conditional UPDATEs so that two callers racing on the same
seat cannot both "win" a state transition. Release and reserve take a row
lock on the seat (FOR UPDATE; a no-op on SQLite, where BEGIN IMMEDIATE already
serialises writers) so that the booking check and the release flag change
together.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select, update, and_, not_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import SeatNotFound, NotDesignatedSeat
from app.core.logging import get_logger
from app.db.errors import store_operation
from app.models.seat import Seat, SeatKind, ReleaseState

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SeatDirectory:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _read(self, stmt):
        # Bulk UPDATEs do not touch the identity map; reads always refresh it
        return await self.db.execute(stmt.execution_options(populate_existing=True))

    @store_operation
    async def list_seats(self) -> list[Seat]:
        result = await self._read(select(Seat).order_by(Seat.seat_number.asc()))
        return list(result.scalars().all())

    @store_operation
    async def get_seat(self, seat_id: int, lock: bool = False) -> Optional[Seat]:
        stmt = select(Seat).where(Seat.id == seat_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self._read(stmt)
        return result.scalar_one_or_none()

    @store_operation
    async def find_owned_seat(self, user_id: int, lock: bool = False) -> Optional[Seat]:
        stmt = select(Seat).where(Seat.kind == SeatKind.DESIGNATED, Seat.owner_user_id == user_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self._read(stmt)
        return result.scalar_one_or_none()

    @store_operation
    async def released_seat_ids_on(self, target: date) -> set[int]:
        result = await self._read(
            select(Seat.id).where(
                Seat.kind == SeatKind.DESIGNATED,
                Seat.release_state == ReleaseState.RELEASED,
                Seat.release_date == target,
            )
        )
        return set(result.scalars().all())

    @store_operation
    async def mark_released(self, seat_id: int, by_user_id: int, target: date) -> bool:
        """
        Put a designated seat into the floating pool for `target`.
        Returns False when it was already released for that date.
        """
        result = await self.db.execute(
            update(Seat)
            .where(
                Seat.id == seat_id,
                Seat.kind == SeatKind.DESIGNATED,
                not_(and_(Seat.release_state == ReleaseState.RELEASED, Seat.release_date == target)),
            )
            .values(
                release_state=ReleaseState.RELEASED,
                release_date=target,
                released_by_user_id=by_user_id,
                updated_at=_utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("seat_released", seat_id=seat_id, released_by=by_user_id, date=target.isoformat())
            return True

        seat = await self.get_seat(seat_id)
        if seat is None:
            raise SeatNotFound(f"Seat {seat_id} not found", seat_id=seat_id)
        if not seat.is_designated:
            raise NotDesignatedSeat(
                f"Seat {seat.seat_number} is a floating seat and cannot be released",
                seat_id=seat_id,
            )
        return False

    @store_operation
    async def clear_release(self, seat_id: int, only_for: Optional[date] = None) -> bool:
        """Back to normal. No-op (False) if the seat is not released."""
        conditions = [Seat.id == seat_id, Seat.release_state == ReleaseState.RELEASED]
        if only_for is not None:
            conditions.append(Seat.release_date == only_for)

        result = await self.db.execute(
            update(Seat)
            .where(*conditions)
            .values(
                release_state=ReleaseState.NORMAL,
                release_date=None,
                released_by_user_id=None,
                updated_at=_utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("seat_release_cleared", seat_id=seat_id)
            return True
        return False

    @store_operation
    async def clear_releases_before(self, today: date) -> int:
        result = await self.db.execute(
            update(Seat)
            .where(Seat.release_state == ReleaseState.RELEASED, Seat.release_date < today)
            .values(
                release_state=ReleaseState.NORMAL,
                release_date=None,
                released_by_user_id=None,
                updated_at=_utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

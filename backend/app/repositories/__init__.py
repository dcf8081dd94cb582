"""
Storage-facing collaborators of the allocation engine.
Each wraps one AsyncSession; none of them commit.
"""

from app.repositories.user_repository import UserRepository
from app.repositories.seat_directory import SeatDirectory
from app.repositories.booking_ledger import BookingLedger

__all__ = ["UserRepository", "SeatDirectory", "BookingLedger"]

"""
Booking model: one user's intent to sit at one seat on one calendar day.

Key design decisions:
- Partial unique indexes over (user_id, date) and (seat_id, date) restricted to
  status = 'active' are the enforcement point for "one seat per user per day"
  and "one occupant per seat per day". The insert either lands or fails with an
  IntegrityError; there is no read-then-write window
- Rows are never deleted; cancellation and completion are status transitions
- booking_type, times and date are fixed at creation
"""

import enum

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, CheckConstraint, Index, Enum, text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class BookingType(str, enum.Enum):
    DESIGNATED = "designated"
    FLOATING = "floating"


class BookingStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ACTIVE_ONLY = text("status = 'active'")

UQ_ACTIVE_USER_DATE = "uq_bookings_active_user_date"
UQ_ACTIVE_SEAT_DATE = "uq_bookings_active_seat_date"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    booking_type = Column(
        Enum(BookingType, native_enum=False, create_constraint=True, length=20,
             values_callable=lambda e: [m.value for m in e], name="booking_type"),
        nullable=False,
    )
    start_time = Column(String(5), nullable=False, default="09:00")
    end_time = Column(String(5), nullable=False, default="18:00")
    status = Column(
        Enum(BookingStatus, native_enum=False, create_constraint=True, length=20,
             values_callable=lambda e: [m.value for m in e], name="booking_status"),
        nullable=False,
        default=BookingStatus.ACTIVE,
    )
    booked_at = Column(DateTime(timezone=True), nullable=False)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="bookings", lazy="raise")
    seat = relationship("Seat", back_populates="bookings", lazy="raise")

    __table_args__ = (
        Index(UQ_ACTIVE_USER_DATE, "user_id", "date", unique=True,
              postgresql_where=ACTIVE_ONLY, sqlite_where=ACTIVE_ONLY),
        Index(UQ_ACTIVE_SEAT_DATE, "seat_id", "date", unique=True,
              postgresql_where=ACTIVE_ONLY, sqlite_where=ACTIVE_ONLY),
        Index("ix_bookings_date_status", "date", "status"),
        CheckConstraint("start_time < end_time", name="check_booking_time_range"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, seat={self.seat_id}, date={self.date}, status={self.status})>"

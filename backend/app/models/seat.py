"""
Seat model.

Key design decisions:
- `kind` never changes after creation; designated seats carry batch/squad and
  at most one owner (unique owner_user_id)
- Release is a single (release_date, released_by) slot. `released` only means
  something when release_date equals the date being asked about; a release for
  a past date is inert until housekeeping clears it
"""

import enum
from datetime import date

from sqlalchemy import Column, Integer, String, Date, ForeignKey, CheckConstraint, Enum, Index
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class SeatKind(str, enum.Enum):
    DESIGNATED = "designated"
    FLOATING = "floating"


class ReleaseState(str, enum.Enum):
    NORMAL = "normal"
    RELEASED = "released"


def _enum(enum_cls, name: str) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        create_constraint=True,
        length=20,
        values_callable=lambda e: [m.value for m in e],
        name=name,
    )


class Seat(Base, TimestampMixin):
    __tablename__ = "seats"

    id = Column(Integer, primary_key=True, index=True)
    seat_number = Column(String(20), unique=True, nullable=False)
    kind = Column(_enum(SeatKind, "seat_kind"), nullable=False)
    squad = Column(Integer, nullable=True)
    batch = Column(Integer, nullable=True)
    owner_user_id = Column(
        Integer, ForeignKey("users.id", name="fk_seats_owner_user"), nullable=True, unique=True
    )

    release_state = Column(_enum(ReleaseState, "seat_release_state"), nullable=False, default=ReleaseState.NORMAL)
    release_date = Column(Date, nullable=True)
    released_by_user_id = Column(Integer, ForeignKey("users.id", name="fk_seats_released_by"), nullable=True)

    owner = relationship("User", foreign_keys=[owner_user_id], lazy="raise")
    bookings = relationship("Booking", back_populates="seat", lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "kind = 'designated' OR (owner_user_id IS NULL AND squad IS NULL AND batch IS NULL)",
            name="check_floating_seat_unbound",
        ),
        CheckConstraint(
            "release_state = 'normal' OR kind = 'designated'",
            name="check_release_only_designated",
        ),
        Index("ix_seats_kind_release", "kind", "release_state", "release_date"),
    )

    @property
    def is_designated(self) -> bool:
        return self.kind == SeatKind.DESIGNATED

    def is_released_for(self, target: date) -> bool:
        return (
            self.kind == SeatKind.DESIGNATED
            and self.release_state == ReleaseState.RELEASED
            and self.release_date == target
        )

    def __repr__(self) -> str:
        return f"<Seat(id={self.id}, number={self.seat_number}, kind={self.kind.value})>"

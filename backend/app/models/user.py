"""
User as seen by the allocation engine.

Identity (names, credentials) lives with the identity provider; this table
carries only what allocation needs: the batch/squad assignment and the
optional weak link to a designated seat.
"""

import enum

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, Enum
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    EMPLOYEE = "employee"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    employee_id = Column(String(50), unique=True, index=True, nullable=False)
    batch = Column(Integer, nullable=False)
    squad = Column(Integer, nullable=False)
    role = Column(
        Enum(UserRole, native_enum=False, create_constraint=True, length=20,
             values_callable=lambda e: [m.value for m in e], name="user_role"),
        nullable=False,
        default=UserRole.EMPLOYEE,
    )
    # Weak reference: the seat row's owner_user_id is authoritative
    designated_seat_id = Column(
        Integer, ForeignKey("seats.id", use_alter=True, name="fk_users_designated_seat"), nullable=True
    )

    designated_seat = relationship("Seat", foreign_keys=[designated_seat_id], lazy="raise")
    bookings = relationship("Booking", back_populates="user", lazy="raise")

    __table_args__ = (
        CheckConstraint("batch IN (1, 2)", name="check_user_batch"),
        CheckConstraint("squad BETWEEN 1 AND 5", name="check_user_squad"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, batch={self.batch}, squad={self.squad})>"

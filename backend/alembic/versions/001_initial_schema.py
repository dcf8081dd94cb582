"""Initial schema: users, seats, bookings with partial unique indexes.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_ONLY = sa.text("status = 'active'")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table (designated_seat_id FK added after seats exists)
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("employee_id", sa.String(50), nullable=False),
        sa.Column("batch", sa.Integer(), nullable=False),
        sa.Column("squad", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'employee'")),
        sa.Column("designated_seat_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("batch IN (1, 2)", name="check_user_batch"),
        sa.CheckConstraint("squad BETWEEN 1 AND 5", name="check_user_squad"),
        sa.CheckConstraint("role IN ('employee', 'admin')", name="user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_employee_id", "users", ["employee_id"], unique=True)

    # Seats table
    op.create_table(
        "seats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("seat_number", sa.String(20), nullable=False, unique=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("squad", sa.Integer(), nullable=True),
        sa.Column("batch", sa.Integer(), nullable=True),
        sa.Column("owner_user_id", sa.Integer(), sa.ForeignKey("users.id", name="fk_seats_owner_user"),
                  nullable=True, unique=True),
        sa.Column("release_state", sa.String(20), nullable=False, server_default=sa.text("'normal'")),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column("released_by_user_id", sa.Integer(),
                  sa.ForeignKey("users.id", name="fk_seats_released_by"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("kind IN ('designated', 'floating')", name="seat_kind"),
        sa.CheckConstraint("release_state IN ('normal', 'released')", name="seat_release_state"),
        sa.CheckConstraint(
            "kind = 'designated' OR (owner_user_id IS NULL AND squad IS NULL AND batch IS NULL)",
            name="check_floating_seat_unbound",
        ),
        sa.CheckConstraint("release_state = 'normal' OR kind = 'designated'", name="check_release_only_designated"),
    )
    op.create_index("ix_seats_id", "seats", ["id"])
    # Availability and stats both filter released designated seats by date
    op.create_index("ix_seats_kind_release", "seats", ["kind", "release_state", "release_date"])

    # Batch mode so SQLite (no ALTER of constraints) gets a table rebuild
    with op.batch_alter_table("users") as batch_op:
        batch_op.create_foreign_key(
            "fk_users_designated_seat", "seats", ["designated_seat_id"], ["id"]
        )

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("seat_id", sa.Integer(), sa.ForeignKey("seats.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("booking_type", sa.String(20), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False, server_default=sa.text("'09:00'")),
        sa.Column("end_time", sa.String(5), nullable=False, server_default=sa.text("'18:00'")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("booking_type IN ('designated', 'floating')", name="booking_type"),
        sa.CheckConstraint("status IN ('active', 'cancelled', 'completed')", name="booking_status"),
        sa.CheckConstraint("start_time < end_time", name="check_booking_time_range"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_seat_id", "bookings", ["seat_id"])
    op.create_index("ix_bookings_date_status", "bookings", ["date", "status"])
    # THE CONCURRENCY GUARD: at most one active row per (user, day) and per (seat, day).
    # Cancelled and completed rows are outside the index, so history is kept.
    op.create_index(
        "uq_bookings_active_user_date", "bookings", ["user_id", "date"],
        unique=True, postgresql_where=ACTIVE_ONLY, sqlite_where=ACTIVE_ONLY,
    )
    op.create_index(
        "uq_bookings_active_seat_date", "bookings", ["seat_id", "date"],
        unique=True, postgresql_where=ACTIVE_ONLY, sqlite_where=ACTIVE_ONLY,
    )


def downgrade() -> None:
    op.drop_table("bookings")
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_constraint("fk_users_designated_seat", type_="foreignkey")
    op.drop_table("seats")
    op.drop_table("users")

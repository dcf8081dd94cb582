"""
Pytest fixtures: per-test SQLite database, seeded office, fixed clock, client.

Each test gets a fresh database file so sessions opened concurrently (as in
the race tests) see the same data. The HTTP client opens one session per
request and commits it, exactly like the production dependency.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["REDIS_ENABLED"] = "false"
os.environ.setdefault("ENVIRONMENT", "test")

from dataclasses import dataclass
from datetime import date, datetime
from typing import AsyncGenerator
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.main import app
from app.core.clock import FixedClock, get_clock
from app.db.base import Base
from app.db.session import build_engine, get_db
from app.models import Seat, SeatKind, User, UserRole

OFFICE_TZ = ZoneInfo("Asia/Kolkata")
# Monday 19 Oct 2026: cycle week 1, batch 1 is in office Mon-Wed
TODAY = date(2026, 10, 19)


def at(day: date, hour: int, minute: int = 0, second: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, second, tzinfo=OFFICE_TZ)


def headers_for(user: User) -> dict:
    return {"X-User-Id": str(user.id), "X-User-Role": user.role.value}


@dataclass
class Office:
    alice: User  # batch 1, owns D001
    bob: User  # batch 2, owns D021
    carol: User  # batch 1, no designated seat
    admin: User
    d001: Seat
    d002: Seat
    d021: Seat
    f001: Seat
    f002: Seat


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'seats.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(at(TODAY, 10))


@pytest_asyncio.fixture
async def office(db_session: AsyncSession) -> Office:
    """Three employees and an admin; three designated and two floating seats."""
    alice = User(name="Alice", email="alice@example.com", employee_id="E001", batch=1, squad=1)
    bob = User(name="Bob", email="bob@example.com", employee_id="E002", batch=2, squad=1)
    carol = User(name="Carol", email="carol@example.com", employee_id="E003", batch=1, squad=2)
    admin = User(
        name="Admin", email="admin@example.com", employee_id="A001", batch=1, squad=3, role=UserRole.ADMIN
    )
    db_session.add_all([alice, bob, carol, admin])
    await db_session.flush()

    d001 = Seat(seat_number="D001", kind=SeatKind.DESIGNATED, batch=1, squad=1, owner_user_id=alice.id)
    d002 = Seat(seat_number="D002", kind=SeatKind.DESIGNATED, batch=1, squad=1)
    d021 = Seat(seat_number="D021", kind=SeatKind.DESIGNATED, batch=2, squad=1, owner_user_id=bob.id)
    f001 = Seat(seat_number="F001", kind=SeatKind.FLOATING)
    f002 = Seat(seat_number="F002", kind=SeatKind.FLOATING)
    db_session.add_all([d001, d002, d021, f001, f002])
    await db_session.flush()

    alice.designated_seat_id = d001.id
    bob.designated_seat_id = d021.id
    await db_session.commit()

    return Office(alice, bob, carol, admin, d001, d002, d021, f001, f002)


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, clock: FixedClock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB and clock dependencies pointed at the test fixtures."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

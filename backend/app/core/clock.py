"""
Clock abstraction. Services never read the wall clock themselves; routes
resolve a Clock through a dependency and pass `now` down explicitly.
"""

from datetime import datetime
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from app.core.config import get_settings


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Current time in the office timezone."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = ZoneInfo(tz_name or get_settings().OFFICE_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def set(self, instant: datetime) -> None:
        self.instant = instant


def get_clock() -> Clock:
    return SystemClock()

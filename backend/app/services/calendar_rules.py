"""
Calendar rules: which days belong to which batch, when the floating pool opens,
and how far ahead anyone may book. Pure functions, no I/O, no clock reads.

Batch rotation
--------------
Each month is cut into 7-day blocks counted from the 1st. Odd blocks are
"week 1" (Mon-Wed in office for batch 1), even blocks are "week 2" (Thu-Fri in
office for batch 2). Weekends belong to nobody.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from app.core.config import get_settings

WEEK_ONE_DAYS = (1, 2, 3)  # ISO weekdays Mon-Wed
WEEK_TWO_DAYS = (4, 5)  # Thu-Fri


def cycle_week(target: date) -> int:
    """1 or 2, by 7-day blocks counted from the first of the month."""
    block = (target.day - 1) // 7 + 1
    return 2 if block % 2 == 0 else 1


def batch_in_office(target: date) -> Optional[int]:
    weekday = target.isoweekday()
    if cycle_week(target) == 1:
        return 1 if weekday in WEEK_ONE_DAYS else None
    return 2 if weekday in WEEK_TWO_DAYS else None


def is_designated_working_day(target: date, batch: int) -> bool:
    return batch_in_office(target) == batch


def floating_window_opens_at(target: date, release_hour: Optional[int] = None) -> datetime:
    """Naive local instant at which floating seats for `target` become bookable."""
    if release_hour is None:
        release_hour = get_settings().FLOATING_RELEASE_HOUR
    return datetime.combine(target - timedelta(days=1), time(hour=release_hour))


def floating_window_open(target: date, now: datetime, release_hour: Optional[int] = None) -> bool:
    """
    Past dates: closed. Today: open. Future dates: open from the release hour
    (inclusive) on the prior calendar day. `now` is office-local wall time;
    any tzinfo is dropped before comparing.
    """
    today = now.date()
    if target < today:
        return False
    if target == today:
        return True
    return now.replace(tzinfo=None) >= floating_window_opens_at(target, release_hour)


def floating_window_message(target: date, release_hour: Optional[int] = None) -> str:
    opens = floating_window_opens_at(target, release_hour)
    return f"Floating seats can be booked after {opens:%H:%M} on {opens:%b %d}"


def within_booking_horizon(target: date, today: date, horizon_days: Optional[int] = None) -> bool:
    """today <= target <= today + horizon_days, inclusive at both ends."""
    if horizon_days is None:
        horizon_days = get_settings().BOOKING_HORIZON_DAYS
    return today <= target <= today + timedelta(days=horizon_days)


def date_range(start: date, end: date) -> list[date]:
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days

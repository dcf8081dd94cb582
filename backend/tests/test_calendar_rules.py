"""
Tests for the batch rotation, floating window and booking horizon rules.
"""

from datetime import date, datetime, timedelta

import pytest

from app.services.calendar_rules import (
    batch_in_office,
    cycle_week,
    date_range,
    floating_window_message,
    floating_window_open,
    is_designated_working_day,
    within_booking_horizon,
)
from conftest import TODAY, at


def test_cycle_week_counts_seven_day_blocks_from_first_of_month():
    assert cycle_week(date(2026, 10, 1)) == 1
    assert cycle_week(date(2026, 10, 7)) == 1
    assert cycle_week(date(2026, 10, 8)) == 2
    assert cycle_week(date(2026, 10, 14)) == 2
    assert cycle_week(date(2026, 10, 15)) == 1
    assert cycle_week(date(2026, 10, 29)) == 1


def test_monday_of_week_one_belongs_to_batch_one():
    monday = date(2026, 10, 5)
    assert monday.isoweekday() == 1
    assert is_designated_working_day(monday, 1) is True
    assert is_designated_working_day(monday, 2) is False


def test_week_one_thursday_is_nobodys_day():
    thursday = date(2026, 10, 1)
    assert batch_in_office(thursday) is None
    assert is_designated_working_day(thursday, 1) is False
    assert is_designated_working_day(thursday, 2) is False


def test_week_two_thursday_and_friday_belong_to_batch_two():
    assert batch_in_office(date(2026, 10, 8)) == 2
    assert batch_in_office(date(2026, 10, 9)) == 2
    # Monday of week two: batch one stays home
    assert batch_in_office(date(2026, 10, 12)) is None


def test_weekends_are_never_working_days():
    for day in (date(2026, 10, 3), date(2026, 10, 4), date(2026, 10, 10), date(2026, 10, 11)):
        assert batch_in_office(day) is None


def test_floating_window_for_tomorrow_opens_at_three_pm_today():
    tomorrow = TODAY + timedelta(days=1)
    assert floating_window_open(tomorrow, at(TODAY, 14, 59, 59)) is False
    assert floating_window_open(tomorrow, at(TODAY, 15, 0, 0)) is True
    assert floating_window_open(tomorrow, at(TODAY, 23, 30)) is True


def test_floating_window_same_day_always_open():
    assert floating_window_open(TODAY, at(TODAY, 0, 1)) is True


def test_floating_window_closed_for_past_and_far_future():
    assert floating_window_open(TODAY - timedelta(days=1), at(TODAY, 16)) is False
    assert floating_window_open(TODAY + timedelta(days=2), at(TODAY, 16)) is False


def test_floating_window_accepts_naive_now():
    tomorrow = TODAY + timedelta(days=1)
    assert floating_window_open(tomorrow, datetime(2026, 10, 19, 15, 0)) is True


def test_floating_window_message_names_the_prior_day():
    assert floating_window_message(date(2026, 10, 21)) == "Floating seats can be booked after 15:00 on Oct 20"


@pytest.mark.parametrize(
    "offset, expected",
    [(-1, False), (0, True), (7, True), (14, True), (15, False), (16, False)],
)
def test_booking_horizon_is_inclusive_fourteen_days(offset, expected):
    assert within_booking_horizon(TODAY + timedelta(days=offset), TODAY) is expected


def test_date_range_is_inclusive():
    days = date_range(date(2026, 10, 19), date(2026, 10, 21))
    assert days == [date(2026, 10, 19), date(2026, 10, 20), date(2026, 10, 21)]
    assert date_range(date(2026, 10, 21), date(2026, 10, 19)) == []

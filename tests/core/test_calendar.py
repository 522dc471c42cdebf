# tests/core/test_calendar.py
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from school_attendance.core.calendar import (
    NO_WEEK,
    build_calendar_grid,
    end_of_month,
    is_holiday,
    school_week_label,
    scope_date_range,
)

SEMESTER = SimpleNamespace(start_date=date(2025, 9, 1), total_weeks=20, holidays=["2025-10-01"])


def test_month_grid_is_whole_weeks_starting_monday():
    grid = build_calendar_grid(date(2025, 10, 15), view="month", today=date(2025, 10, 15))
    assert len(grid.days) % 7 == 0
    assert grid.start == date(2025, 9, 29)
    assert grid.end == date(2025, 11, 2)
    assert grid.days[0].date.weekday() == 0
    assert all(len(week.days) == 7 for week in grid.weeks)


def test_month_grid_flags_days():
    grid = build_calendar_grid(date(2025, 10, 15), view="month", semester=SEMESTER, today=date(2025, 10, 15))
    by_date = {d.date: d for d in grid.days}
    assert not by_date[date(2025, 9, 29)].in_current_month
    assert by_date[date(2025, 10, 1)].is_holiday
    assert by_date[date(2025, 10, 15)].is_today
    assert grid.weeks[0].school_week == "5"


def test_is_holiday_matches_iso_dates():
    assert is_holiday(date(2025, 10, 1), ["2025-10-01"])
    assert not is_holiday(date(2025, 10, 2), ["2025-10-01"])
    assert not is_holiday(date(2025, 10, 1), None)


def test_grid_without_holidays():
    semester = SimpleNamespace(start_date=date(2025, 9, 1), total_weeks=20, holidays=None)
    grid = build_calendar_grid(date(2025, 10, 15), semester=semester)
    assert not any(d.is_holiday for d in grid.days)


def test_week_grid():
    grid = build_calendar_grid(date(2025, 10, 15), view="week")
    assert [d.date for d in grid.days] == [date(2025, 10, 13) + timedelta(days=i) for i in range(7)]


def test_unknown_view_raises():
    with pytest.raises(ValueError):
        build_calendar_grid(date(2025, 10, 15), view="year")


def test_school_week_numbers():
    start = date(2025, 9, 1)
    assert school_week_label(start, start) == "1"
    assert school_week_label(start + timedelta(days=21), start) == "4"
    assert school_week_label(start - timedelta(days=1), start) == NO_WEEK
    assert school_week_label(start + timedelta(weeks=20), start, total_weeks=20) == NO_WEEK


def test_school_week_aligns_midweek_start():
    assert school_week_label(date(2025, 9, 1), date(2025, 9, 3)) == "1"


def test_school_week_without_semester_is_blank():
    assert school_week_label(date(2025, 9, 1), None) == ""
    grid = build_calendar_grid(date(2025, 10, 15), view="week")
    assert grid.weeks[0].school_week == ""


def test_end_of_month_leap_year():
    assert end_of_month(date(2024, 2, 10)) == date(2024, 2, 29)


def test_scope_date_ranges():
    today = date(2025, 10, 15)
    assert scope_date_range("today", today=today) == (today, today)
    assert scope_date_range("week", today=today) == (date(2025, 10, 13), date(2025, 10, 19))
    assert scope_date_range("month", today=today) == (date(2025, 10, 1), date(2025, 10, 31))
    assert scope_date_range("semester", today=today, semester=SEMESTER) == (date(2025, 9, 1), date(2026, 1, 19))

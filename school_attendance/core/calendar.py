# school_attendance/core/calendar.py
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple

from school_attendance.core.config import settings

MONTH_VIEW = "month"
WEEK_VIEW = "week"
NO_WEEK = "-"


@dataclass
class CalendarDay:
    date: date
    in_current_month: bool
    is_holiday: bool = False
    is_today: bool = False


@dataclass
class CalendarWeek:
    school_week: str
    days: List[CalendarDay] = field(default_factory=list)


@dataclass
class CalendarGrid:
    view: str
    reference: date
    start: date
    end: date
    weeks: List[CalendarWeek] = field(default_factory=list)

    @property
    def days(self) -> List[CalendarDay]:
        return [day for week in self.weeks for day in week.days]


def start_of_week(day: date) -> date:
    # Weeks always start on Monday
    return day - timedelta(days=day.weekday())


def end_of_week(day: date) -> date:
    return start_of_week(day) + timedelta(days=6)


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def end_of_month(day: date) -> date:
    next_month = (day.replace(day=28) + timedelta(days=4)).replace(day=1)
    return next_month - timedelta(days=1)


def school_week_label(day: date, start_date: Optional[date], total_weeks: Optional[int] = None) -> str:
    """
    School week number of ``day`` relative to the semester start.

    Both dates are aligned to their Monday before the difference is taken.
    Weeks before the start or past ``total_weeks`` render as "-".
    """
    if start_date is None:
        return ""
    total_weeks = total_weeks or settings.DEFAULT_TOTAL_WEEKS
    diff = (start_of_week(day) - start_of_week(start_date)).days // 7
    if diff < 0 or diff >= total_weeks:
        return NO_WEEK
    return str(diff + 1)


def is_holiday(day: date, holidays: Optional[Iterable[str]]) -> bool:
    return day.isoformat() in set(holidays or [])


def build_calendar_grid(reference: date, view: str = MONTH_VIEW, semester=None,
                        today: Optional[date] = None) -> CalendarGrid:
    """
    Lay out the days shown by a month or week view as whole Monday-first weeks.

    ``semester`` is any object (ORM row or namespace) with ``start_date``,
    ``total_weeks`` and ``holidays``; without it week labels are blank.
    """
    if view == MONTH_VIEW:
        start = start_of_week(start_of_month(reference))
        end = end_of_week(end_of_month(reference))
    elif view == WEEK_VIEW:
        start = start_of_week(reference)
        end = end_of_week(reference)
    else:
        raise ValueError(f"Unknown calendar view: {view}")

    start_date = getattr(semester, "start_date", None)
    total_weeks = getattr(semester, "total_weeks", None)
    holidays = set(getattr(semester, "holidays", None) or [])
    today = today or date.today()

    grid = CalendarGrid(view=view, reference=reference, start=start, end=end)
    day = start
    while day <= end:
        if day.weekday() == 0:
            grid.weeks.append(CalendarWeek(school_week=school_week_label(day, start_date, total_weeks)))
        grid.weeks[-1].days.append(CalendarDay(
            date=day,
            in_current_month=(day.year, day.month) == (reference.year, reference.month),
            is_holiday=is_holiday(day, holidays),
            is_today=day == today,
        ))
        day += timedelta(days=1)
    return grid


def semester_end(semester) -> date:
    total_weeks = semester.total_weeks or settings.DEFAULT_TOTAL_WEEKS
    return semester.start_date + timedelta(weeks=total_weeks)


def scope_date_range(scope: str, today: Optional[date] = None, semester=None) -> Tuple[date, date]:
    """Inclusive date range for a dashboard / export scope."""
    today = today or date.today()
    if scope == "week":
        return start_of_week(today), end_of_week(today)
    if scope == "month":
        return start_of_month(today), end_of_month(today)
    if scope == "semester":
        if semester is not None and semester.start_date:
            return semester.start_date, semester_end(semester)
        return start_of_month(today), end_of_month(today)
    return today, today

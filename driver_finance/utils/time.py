"""Time utilities (UTC now, calendar windows)."""
from __future__ import annotations
import calendar
from datetime import date, datetime, timezone, timedelta

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def month_start(day: date) -> date:
    return day.replace(day=1)

def month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])

def add_months(day: date, months: int) -> date:
    """First day of the month ``months`` away from ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)

def week_start_monday(day: date) -> date:
    return day - timedelta(days=day.weekday())

def week_start_sunday(day: date) -> date:
    # isoweekday: Monday=1 .. Sunday=7
    return day - timedelta(days=day.isoweekday() % 7)

def sunday_first_weekday(day: date) -> int:
    """Day of week with Sunday as 0 and Saturday as 6."""
    return day.isoweekday() % 7

def quarter_start(day: date) -> date:
    return date(day.year, ((day.month - 1) // 3) * 3 + 1, 1)

__all__ = [
    "utc_now",
    "month_start",
    "month_end",
    "add_months",
    "week_start_monday",
    "week_start_sunday",
    "sunday_first_weekday",
    "quarter_start",
]

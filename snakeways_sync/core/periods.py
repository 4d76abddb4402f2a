"""
Calendar helpers.

Day and month boundaries used for snapshot windows and the upstream
``days`` query parameter. All datetimes are naive local time.
"""

import calendar
from datetime import date, datetime, time
from typing import Optional, Tuple


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max)


def start_of_month(value: datetime) -> datetime:
    return datetime.combine(value.date().replace(day=1), time.min)


def end_of_month(value: datetime) -> datetime:
    last_day = calendar.monthrange(value.year, value.month)[1]
    return datetime.combine(value.date().replace(day=last_day), time.max)


def month_key(value: datetime) -> Tuple[int, int]:
    return (value.year, value.month)


def subtract_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` back by whole months, clamping the day to the month length."""
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def days_since_month_start(today: Optional[datetime] = None) -> int:
    """Number of days from the first of the month up to and including today.

    This is the ``days`` value that makes the upstream usage endpoints
    return the current month only.
    """
    today = today or datetime.now()
    return (start_of_day(today) - start_of_month(today)).days + 1


def as_datetime(value) -> datetime:
    """Accept a date or datetime and return a datetime."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


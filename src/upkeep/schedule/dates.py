# src/upkeep/schedule/dates.py

"""
Day-granularity date helpers.

Dates are stored as "YYYY-MM-DD" strings. Every helper here converts to a
datetime.date, computes, and converts back, so time-of-day never leaks into a
comparison. "Today" always comes from an injected Clock.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from ..core.ports import Clock

logger = logging.getLogger(__name__)

DateLike = date | datetime | str


def parse_iso_date(value: DateLike | None) -> date | None:
    """
    Best-effort conversion to a calendar date.

    Accepts date, datetime or an ISO string ("2025-02-01" or "2025-02-01T13:45:00").
    Aware datetimes are converted to local time first. Returns None for anything
    that cannot be read as a date.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()

    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        return None

    raw = value.strip()
    if not raw:
        return None

    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass

    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        logger.debug("Unparseable date value: %r", value)
        return None

    return parse_iso_date(dt)


def start_of_day(value: DateLike) -> date:
    """Same calendar day with the time-of-day dropped."""
    day = parse_iso_date(value)
    if day is None:
        raise ValueError(f"Not a date: {value!r}")
    return day


def today_iso(*, clock: Clock) -> str:
    return clock.today().isoformat()


def days_until(value: DateLike | None, *, clock: Clock) -> int | float:
    """
    Whole days from today to the given date (negative when in the past).

    Returns math.inf when the value is absent or unparseable, so such tasks never
    classify as due or overdue.
    """
    day = parse_iso_date(value)
    if day is None:
        return math.inf
    return (day - clock.today()).days


def shift_days(day: date, days: int) -> date:
    return day + timedelta(days=int(days))


def shift_months(day: date, months: int) -> date:
    """
    Calendar-month shift clamped to the last valid day of the target month.

    Jan 31 + 1 month -> Feb 28 (or Feb 29 in leap years), never March.
    """
    return day + relativedelta(months=+int(months))


def add_days(value: DateLike, days: int) -> str:
    return shift_days(start_of_day(value), days).isoformat()


def add_months(value: DateLike, months: int) -> str:
    return shift_months(start_of_day(value), months).isoformat()

# src/upkeep/core/clock.py

from __future__ import annotations

from datetime import date, datetime, timedelta


class SystemClock:
    """Wall-clock "today" in the local time zone."""

    def today(self) -> date:
        return date.today()

    def __repr__(self) -> str:
        return "SystemClock()"


class FixedClock:
    """
    Clock pinned to a given day.

    Used by tests and for replaying a schedule as of a past/future date.
    """

    def __init__(self, day: date | str) -> None:
        self._day = _as_date(day)

    def today(self) -> date:
        return self._day

    def set(self, day: date | str) -> None:
        self._day = _as_date(day)

    def advance(self, days: int = 1) -> date:
        self._day = self._day + timedelta(days=int(days))
        return self._day

    def __repr__(self) -> str:
        return f"FixedClock({self._day.isoformat()})"


def _as_date(day: date | str) -> date:
    if isinstance(day, str):
        return date.fromisoformat(day)
    if isinstance(day, datetime):
        return day.date()
    return day

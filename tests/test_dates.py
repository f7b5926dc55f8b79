# tests/test_dates.py

from __future__ import annotations

import math
from datetime import date, datetime

import pytest

from upkeep.core.clock import FixedClock
from upkeep.schedule.dates import (
    add_days,
    add_months,
    days_until,
    parse_iso_date,
    start_of_day,
    today_iso,
)


def test_days_until_missing_or_bad_date_is_infinite(clock) -> None:
    assert days_until(None, clock=clock) == math.inf
    assert days_until("", clock=clock) == math.inf
    assert days_until("not-a-date", clock=clock) == math.inf
    assert days_until("2025-13-40", clock=clock) == math.inf


@pytest.mark.parametrize(
    "value",
    ["2025-01-01", "2025-01-01T00:00:00", "2025-01-01T23:59:59", "2025-01-01T12:30"],
)
def test_days_until_ignores_time_of_day(clock, value) -> None:
    assert days_until(value, clock=clock) == 0


def test_days_until_counts_whole_days(clock) -> None:
    assert days_until("2025-01-04", clock=clock) == 3
    assert days_until("2024-12-31", clock=clock) == -1
    assert days_until(date(2025, 3, 1), clock=clock) == 59


def test_add_months_clamps_to_end_of_month() -> None:
    assert add_months("2024-01-31", 1) == "2024-02-29"
    assert add_months("2023-01-31", 1) == "2023-02-28"
    assert add_months("2025-03-31", 1) == "2025-04-30"
    assert add_months("2025-08-31", 6) == "2026-02-28"
    assert add_months("2024-02-29", 12) == "2025-02-28"


def test_add_months_crosses_year_boundary() -> None:
    assert add_months("2025-11-15", 3) == "2026-02-15"
    assert add_months("2025-01-15", -1) == "2024-12-15"


def test_add_days_is_plain_calendar_addition() -> None:
    assert add_days("2025-01-01", 7) == "2025-01-08"
    assert add_days("2025-01-31", 1) == "2025-02-01"
    assert add_days("2024-02-28", 1) == "2024-02-29"


def test_arithmetic_rejects_unparseable_input() -> None:
    with pytest.raises(ValueError):
        add_days("soon", 1)
    with pytest.raises(ValueError):
        start_of_day("")


def test_parse_iso_date_accepts_dates_and_datetimes() -> None:
    assert parse_iso_date("2025-02-01") == date(2025, 2, 1)
    assert parse_iso_date("2025-02-01T08:15:00") == date(2025, 2, 1)
    assert parse_iso_date(datetime(2025, 2, 1, 17, 45)) == date(2025, 2, 1)
    assert parse_iso_date(date(2025, 2, 1)) == date(2025, 2, 1)
    assert parse_iso_date(20250201) is None
    assert parse_iso_date(None) is None


def test_today_iso_follows_injected_clock() -> None:
    clock = FixedClock("2025-06-30")
    assert today_iso(clock=clock) == "2025-06-30"
    clock.advance(2)
    assert today_iso(clock=clock) == "2025-07-02"

# tests/test_advancer.py

from __future__ import annotations

from upkeep.core.clock import FixedClock
from upkeep.schedule.advancer import advance_on_completion, compute_next_from
from upkeep.schedule.models import Category, MaintenanceTask


def test_compute_next_from_each_category(clock) -> None:
    assert compute_next_from("2025-01-01", "Weekly", clock=clock) == "2025-01-08"
    assert compute_next_from("2025-01-31", "Monthly", clock=clock) == "2025-02-28"
    assert compute_next_from("2025-01-31", Category.HALF_YEAR, clock=clock) == "2025-07-31"
    assert compute_next_from("2024-02-29", "Yearly", clock=clock) == "2025-02-28"


def test_unknown_category_falls_back_to_weekly(clock) -> None:
    assert compute_next_from("2025-01-01", "Fortnightly", clock=clock) == "2025-01-08"
    assert compute_next_from("2025-01-01", None, clock=clock) == "2025-01-08"


def test_missing_anchor_means_today(clock) -> None:
    assert compute_next_from(None, "Monthly", clock=clock) == "2025-02-01"
    assert compute_next_from("", "Weekly", clock=clock) == "2025-01-08"
    assert compute_next_from("bogus", "Weekly", clock=clock) == "2025-01-08"


def test_advance_on_completion_anchors_on_today() -> None:
    clock = FixedClock("2025-03-31")
    task = MaintenanceTask(
        id="t1",
        task_name="Grease chain",
        category=Category.MONTHLY,
        last_service_date="2025-01-10",
        next_service_date="2025-02-10",
    )
    update = advance_on_completion(task, clock=clock)
    assert update.last_service_date == "2025-03-31"
    assert update.next_service_date == "2025-04-30"
    assert update.to_record() == {"lastServiceDate": "2025-03-31", "nextServiceDate": "2025-04-30"}


def test_advance_on_completion_is_stable_within_a_day(clock) -> None:
    task = MaintenanceTask(id="t1", task_name="Inspect", category=Category.WEEKLY)
    first = advance_on_completion(task, clock=clock)
    task.last_service_date = first.last_service_date
    task.next_service_date = first.next_service_date
    second = advance_on_completion(task, clock=clock)
    assert first == second

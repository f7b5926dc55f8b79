# tests/test_guard.py

from __future__ import annotations

import pytest

from upkeep.core.errors import InvalidTransitionError
from upkeep.schedule.guard import (
    EarlyCompletionGuard,
    EarlyMarkPolicy,
    GuardPhase,
    Verdict,
)
from upkeep.schedule.models import Category, MaintenanceTask


def _task(category: Category, next_date: str | None, last_date: str | None = None, task_id: str = "t1") -> MaintenanceTask:
    return MaintenanceTask(
        id=task_id,
        task_name="Lubricate bearings",
        category=category,
        last_service_date=last_date,
        next_service_date=next_date,
    )


def test_due_and_overdue_tasks_apply_directly(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock)

    due = guard.request(_task(Category.MONTHLY, "2025-01-01"))
    assert due.verdict is Verdict.APPLY
    assert due.days_left == 0

    overdue = guard.request(_task(Category.MONTHLY, "2024-12-20"))
    assert overdue.verdict is Verdict.APPLY
    assert guard.phase is GuardPhase.IDLE


def test_early_task_waits_for_confirmation(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock)
    decision = guard.request(_task(Category.MONTHLY, "2025-01-15"))

    assert decision.verdict is Verdict.CONFIRM
    assert decision.days_left == 14
    assert "14 day(s)" in decision.message
    assert guard.phase is GuardPhase.CONFIRMING
    assert guard.pending is not None
    assert guard.pending.task_id == "t1"


def test_cancel_returns_to_idle(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock)
    guard.request(_task(Category.WEEKLY, "2025-01-05"))

    pending = guard.cancel()
    assert pending.task_id == "t1"
    assert guard.phase is GuardPhase.IDLE
    assert guard.pending is None


def test_confirm_or_cancel_while_idle_is_rejected(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock)
    with pytest.raises(InvalidTransitionError):
        guard.cancel()
    with pytest.raises(InvalidTransitionError):
        guard.resolve()


def test_new_request_replaces_pending_one(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock)
    guard.request(_task(Category.WEEKLY, "2025-01-05", task_id="a"))
    guard.request(_task(Category.WEEKLY, "2025-01-06", task_id="b"))
    assert guard.pending is not None
    assert guard.pending.task_id == "b"
    assert guard.pending.days_left == 5


def test_missing_next_date_is_derived_from_last_service(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock)
    # Weekly from 2024-12-30 -> due 2025-01-06, five days away.
    decision = guard.request(_task(Category.WEEKLY, None, last_date="2024-12-30"))
    assert decision.verdict is Verdict.CONFIRM
    assert decision.days_left == 5


def test_missing_dates_anchor_on_today(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock)
    decision = guard.request(_task(Category.WEEKLY, None))
    assert decision.verdict is Verdict.CONFIRM
    assert decision.days_left == 7


def test_confirmation_can_be_switched_off(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock, confirm_early=False)
    decision = guard.request(_task(Category.MONTHLY, "2025-01-20"))
    assert decision.verdict is Verdict.APPLY
    assert guard.phase is GuardPhase.IDLE


def test_unreadable_next_date_applies_directly(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock)
    assert guard.request(_task(Category.MONTHLY, "someday")).verdict is Verdict.APPLY


def test_threshold_gate_is_off_by_default(clock) -> None:
    policy = EarlyMarkPolicy()
    assert not policy.is_blocked(_task(Category.WEEKLY, "2025-06-01"), clock=clock)


@pytest.mark.parametrize(
    ("category", "next_date", "blocked"),
    [
        (Category.WEEKLY, "2025-01-03", False),
        (Category.WEEKLY, "2025-01-04", True),
        (Category.MONTHLY, "2025-01-08", False),
        (Category.MONTHLY, "2025-01-09", True),
        (Category.HALF_YEAR, "2025-01-31", False),
        (Category.YEARLY, "2025-02-01", True),
        (Category.MONTHLY, None, True),
    ],
)
def test_strict_threshold_gate(clock, category, next_date, blocked) -> None:
    policy = EarlyMarkPolicy(allow_early_mark=False)
    assert policy.is_blocked(_task(category, next_date), clock=clock) is blocked


def test_gate_runs_before_confirmation(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock, policy=EarlyMarkPolicy(allow_early_mark=False))

    blocked = guard.request(_task(Category.MONTHLY, "2025-01-15"))
    assert blocked.verdict is Verdict.BLOCKED
    assert "7 day(s)" in blocked.message
    assert guard.phase is GuardPhase.IDLE

    # Inside the window the interactive confirmation still applies.
    near = guard.request(_task(Category.MONTHLY, "2025-01-05"))
    assert near.verdict is Verdict.CONFIRM


def test_custom_thresholds(clock) -> None:
    policy = EarlyMarkPolicy(allow_early_mark=False, thresholds={Category.WEEKLY: 5})
    assert not policy.is_blocked(_task(Category.WEEKLY, "2025-01-06"), clock=clock)
    assert policy.threshold_for(Category.YEARLY) == 30
    assert policy.threshold_for(Category.MONTHLY) == 7
    assert policy.threshold_for("Fortnightly") == 5


def test_direct_completion_supersedes_pending_confirmation(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock)
    assert guard.request(_task(Category.WEEKLY, "2025-01-08", task_id="a")).verdict is Verdict.CONFIRM

    # Another task applying directly leaves "a" waiting.
    assert guard.request(_task(Category.WEEKLY, "2025-01-01", task_id="b")).verdict is Verdict.APPLY
    assert guard.pending.task_id == "a"

    # "a" itself became due and was completed: nothing is left to confirm.
    clock.set("2025-01-08")
    assert guard.request(_task(Category.WEEKLY, "2025-01-08", task_id="a")).verdict is Verdict.APPLY
    assert guard.phase is GuardPhase.IDLE
    with pytest.raises(InvalidTransitionError):
        guard.require_pending()


def test_blocked_request_drops_pending_for_same_task(clock) -> None:
    guard = EarlyCompletionGuard(clock=clock, policy=EarlyMarkPolicy(allow_early_mark=False))
    assert guard.request(_task(Category.WEEKLY, "2025-01-02", task_id="a")).verdict is Verdict.CONFIRM

    # The schedule moved out of the window before the user confirmed.
    assert guard.request(_task(Category.WEEKLY, "2025-01-20", task_id="a")).verdict is Verdict.BLOCKED
    assert guard.phase is GuardPhase.IDLE

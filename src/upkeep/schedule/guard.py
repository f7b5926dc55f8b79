# src/upkeep/schedule/guard.py

from __future__ import annotations

"""
Early-completion guard.

Two independent policies decide what happens when a user marks a task complete:

- EarlyMarkPolicy (hard gate): when early marking is disallowed, a task farther than
  its category threshold from being due cannot be completed at all.
- EarlyCompletionGuard (interactive): a task that is not yet due needs an explicit
  confirm before its schedule is advanced; due or overdue tasks go straight through.

The guard only decides and tracks state. Writing the completion is the repository's job.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, StrEnum

from ..core.errors import InvalidTransitionError
from ..core.ports import Clock
from .advancer import compute_next_from
from .dates import days_until
from .models import Category, MaintenanceTask

logger = logging.getLogger(__name__)

# Days before the due date from which "mark complete" is enabled (strict mode only).
THRESHOLDS: dict[Category, int] = {
    Category.WEEKLY: 2,
    Category.MONTHLY: 7,
    Category.HALF_YEAR: 30,
    Category.YEARLY: 30,
}


class GuardPhase(StrEnum):
    IDLE = "idle"
    CONFIRMING = "confirming_early_completion"


class Verdict(str, Enum):
    APPLY = "apply"
    CONFIRM = "confirm"
    BLOCKED = "blocked"


@dataclass(slots=True, frozen=True)
class PendingCompletion:
    task_id: str
    days_left: int
    message: str


@dataclass(slots=True, frozen=True)
class GuardDecision:
    verdict: Verdict
    task_id: str
    days_left: int | float
    message: str = ""


def early_completion_message(days_left: int) -> str:
    return (
        f"Task is not yet due. Next service is in {days_left} day(s). "
        "Are you sure you want to mark as COMPLETED?"
    )


def blocked_message(days_left: int | float, threshold: int) -> str:
    if math.isinf(days_left):
        return "Task has no next service date; early marking is disabled."
    return (
        f"Task is due in {int(days_left)} day(s); it can be marked complete "
        f"within {threshold} day(s) of the due date."
    )


@dataclass(slots=True, frozen=True)
class EarlyMarkPolicy:
    """
    Hard gate on early completion.

    allow_early_mark=True disables the gate entirely.
    """

    allow_early_mark: bool = True
    thresholds: Mapping[Category, int] = field(default_factory=lambda: dict(THRESHOLDS))

    def threshold_for(self, category: Category | str | None) -> int:
        cat = Category.from_raw(category)
        default = THRESHOLDS.get(cat, THRESHOLDS[Category.WEEKLY])
        return int(self.thresholds.get(cat, default))

    def is_blocked(self, task: MaintenanceTask, *, clock: Clock) -> bool:
        if self.allow_early_mark:
            return False
        # No next date counts as infinitely far away.
        return days_until(task.next_service_date, clock=clock) > self.threshold_for(task.category)


class EarlyCompletionGuard:
    """
    State machine: Idle <-> ConfirmingEarlyCompletion(task_id, message).

    request(task) on "mark complete":
      - gate refuses          -> BLOCKED, no transition
      - not yet due (> 0)     -> CONFIRM, enter ConfirmingEarlyCompletion
      - due or overdue (<= 0) -> APPLY, stay Idle
    An APPLY or BLOCKED decision for the task that is waiting drops its pending completion.
    resolve()/cancel() return to Idle.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        confirm_early: bool = True,
        policy: EarlyMarkPolicy | None = None,
    ) -> None:
        self._clock = clock
        self.confirm_early = confirm_early
        self.policy = policy or EarlyMarkPolicy()
        self._pending: PendingCompletion | None = None

    @property
    def phase(self) -> GuardPhase:
        return GuardPhase.IDLE if self._pending is None else GuardPhase.CONFIRMING

    @property
    def pending(self) -> PendingCompletion | None:
        return self._pending

    def effective_next_date(self, task: MaintenanceTask) -> str:
        if task.next_service_date:
            return task.next_service_date
        return compute_next_from(task.last_service_date, task.category, clock=self._clock)

    def request(self, task: MaintenanceTask) -> GuardDecision:
        if self.policy.is_blocked(task, clock=self._clock):
            days_left = days_until(task.next_service_date, clock=self._clock)
            threshold = self.policy.threshold_for(task.category)
            logger.info("Completion blocked task_id=%s days_left=%s threshold=%s", task.id, days_left, threshold)
            self._drop_pending(task.id)
            return GuardDecision(
                verdict=Verdict.BLOCKED,
                task_id=task.id,
                days_left=days_left,
                message=blocked_message(days_left, threshold),
            )

        days_left = days_until(self.effective_next_date(task), clock=self._clock)

        # Unreadable stored date: nothing to be early against.
        if math.isinf(days_left):
            self._drop_pending(task.id)
            return GuardDecision(verdict=Verdict.APPLY, task_id=task.id, days_left=days_left)

        if days_left > 0 and self.confirm_early:
            message = early_completion_message(int(days_left))
            if self._pending is not None and self._pending.task_id != task.id:
                logger.debug("Replacing pending completion task_id=%s", self._pending.task_id)
            self._pending = PendingCompletion(task_id=task.id, days_left=int(days_left), message=message)
            logger.debug("Early completion needs confirmation task_id=%s days_left=%s", task.id, days_left)
            return GuardDecision(verdict=Verdict.CONFIRM, task_id=task.id, days_left=days_left, message=message)

        self._drop_pending(task.id)
        return GuardDecision(verdict=Verdict.APPLY, task_id=task.id, days_left=days_left)

    def _drop_pending(self, task_id: str) -> None:
        # A decision other than CONFIRM for the pending task supersedes it.
        if self._pending is not None and self._pending.task_id == task_id:
            logger.debug("Dropping pending completion task_id=%s", task_id)
            self._pending = None

    def require_pending(self) -> PendingCompletion:
        if self._pending is None:
            raise InvalidTransitionError("No early completion is waiting for confirmation.")
        return self._pending

    def resolve(self) -> PendingCompletion:
        """Leave ConfirmingEarlyCompletion after the pending completion was handled."""
        pending = self.require_pending()
        self._pending = None
        return pending

    def cancel(self) -> PendingCompletion:
        pending = self.resolve()
        logger.debug("Early completion cancelled task_id=%s", pending.task_id)
        return pending

# src/upkeep/schedule/status.py

from __future__ import annotations

import math

from ..core.ports import Clock
from .dates import days_until
from .models import MaintenanceTask, TaskStatus

# Fixed look-ahead window for "upcoming", independent of category.
UPCOMING_WINDOW_DAYS = 3


def classify_days_left(days_left: int | float) -> TaskStatus:
    if math.isinf(days_left) or math.isnan(days_left):
        return TaskStatus.NODATE
    if days_left < 0:
        return TaskStatus.OVERDUE
    if days_left == 0:
        return TaskStatus.ONGOING
    if days_left <= UPCOMING_WINDOW_DAYS:
        return TaskStatus.UPCOMING
    return TaskStatus.PENDING


def compute_status(task: MaintenanceTask, *, clock: Clock) -> TaskStatus:
    """
    Due status as of clock.today().

    Only next_service_date matters; category and priority do not. A missing or
    unparseable date yields NODATE.
    """
    return classify_days_left(days_until(task.next_service_date, clock=clock))


def status_label(status: TaskStatus | str | None) -> str:
    try:
        return TaskStatus(status).label
    except ValueError:
        return TaskStatus.NODATE.label

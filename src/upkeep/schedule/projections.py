# src/upkeep/schedule/projections.py

"""
Read-side projections over a task list: search/filter, grouping, counters and
calendar events. Status is always computed here at read time.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from ..core.ports import Clock
from .dates import days_until
from .machines import MachineDirectory
from .models import Category, MaintenanceTask, TaskStatus
from .status import compute_status

DEFAULT_EVENT_TITLE = "Maintenance Task"


@dataclass(slots=True, frozen=True)
class CalendarEvent:
    id: str
    title: str
    start: str
    task: MaintenanceTask
    all_day: bool = True


def matches_query(task: MaintenanceTask, query: str) -> bool:
    q = (query or "").strip().lower()
    if not q:
        return True
    hay = f"{task.task_name} {task.description} {task.machine} {task.location}".lower()
    return q in hay


def filter_tasks(
    tasks: Iterable[MaintenanceTask],
    *,
    clock: Clock,
    query: str = "",
    status: TaskStatus | str | None = None,
    frequency: Category | str | None = None,
) -> list[MaintenanceTask]:
    """
    Text search + optional status and frequency filters.

    frequency="all" (or None) keeps every category.
    """
    want_status = TaskStatus(status) if status else None
    want_category = None if frequency in (None, "", "all") else Category(frequency)

    out: list[MaintenanceTask] = []
    for task in tasks:
        if not matches_query(task, query):
            continue
        if want_status is not None and compute_status(task, clock=clock) is not want_status:
            continue
        if want_category is not None and task.category is not want_category:
            continue
        out.append(task)
    return out


def group_by_category(tasks: Iterable[MaintenanceTask]) -> dict[Category, list[MaintenanceTask]]:
    grouped: dict[Category, list[MaintenanceTask]] = {c: [] for c in Category}
    for task in tasks:
        grouped[task.category].append(task)
    return grouped


def category_counts(tasks: Iterable[MaintenanceTask]) -> dict[Category, int]:
    return {c: len(items) for c, items in group_by_category(tasks).items()}


def status_counts(tasks: Iterable[MaintenanceTask], *, clock: Clock) -> dict[str, int]:
    counts: dict[str, int] = {"total": 0}
    counts.update({s.value: 0 for s in TaskStatus})
    for task in tasks:
        counts["total"] += 1
        counts[compute_status(task, clock=clock).value] += 1
    return counts


def calendar_events(
    tasks: Iterable[MaintenanceTask],
    *,
    machine: str | None = None,
    category: Category | str | None = None,
) -> list[CalendarEvent]:
    want_category = Category(category) if category else None
    events: list[CalendarEvent] = []
    for task in tasks:
        if not task.next_service_date:
            continue
        if machine and task.machine != machine:
            continue
        if want_category is not None and task.category is not want_category:
            continue
        events.append(
            CalendarEvent(
                id=task.id,
                title=task.task_name or DEFAULT_EVENT_TITLE,
                start=task.next_service_date,
                task=task,
            )
        )
    return events


def days_left_label(task: MaintenanceTask, *, clock: Clock) -> str:
    diff = days_until(task.next_service_date, clock=clock)
    if math.isinf(diff):
        return "—"
    if diff < 0:
        return "Overdue"
    return f"{diff} day(s) left"


def machine_label(task: MaintenanceTask, machines: MachineDirectory | None) -> str:
    if machines is None:
        return task.machine or "—"
    return machines.resolve_name(task.machine)

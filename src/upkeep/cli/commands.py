# src/upkeep/cli/commands.py

from __future__ import annotations

import asyncio
import logging
import shlex
from collections.abc import Callable
from typing import Any

from ..core.errors import UpkeepError
from ..core.state import AppState
from ..schedule.models import MaintenanceTask
from ..schedule.projections import (
    calendar_events,
    category_counts,
    days_left_label,
    filter_tasks,
    group_by_category,
    machine_label,
    status_counts,
)
from ..schedule.repository import CompletionOutcome, CompletionResult
from ..schedule.status import compute_status

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

# Short names accepted in key=value arguments.
FIELD_ALIASES = {
    "name": "task_name",
    "task": "task_name",
    "freq": "category",
    "frequency": "category",
    "type": "activity_type",
    "hours": "estimated_man_hours",
    "downtime": "downtime_required",
    "checklist": "maintenance_checklist",
    "risk": "risk_if_not_done",
    "last": "last_service_date",
    "next": "next_service_date",
}


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except UpkeepError as e:
            logger.debug("Command /%s failed: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def parse_assignments(args: list[str]) -> dict[str, Any]:
    """["name=Oil pump", "freq=Monthly"] -> {"task_name": "Oil pump", "category": "Monthly"}."""
    fields: dict[str, Any] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            raise ValueError(f"Expected field=value, got {arg!r}")
        key = key.strip().lower().replace("-", "_")
        fields[FIELD_ALIASES.get(key, key)] = value
    return fields


def check_filters(filters: dict[str, Any], allowed: tuple[str, ...]) -> None:
    unknown = sorted(set(filters) - set(allowed))
    if unknown:
        raise ValueError(f"unknown filter(s) {', '.join(unknown)}; use {', '.join(allowed)}")


def format_task_line(state: AppState, task: MaintenanceTask) -> str:
    status = compute_status(task, clock=state.clock)
    return (
        f"{task.id}  [{status.label}] {task.task_name}"
        f" | next: {task.next_service_date or '—'} ({days_left_label(task, clock=state.clock)})"
        f" | machine: {machine_label(task, state.machines)}"
        f" | {task.priority.value}"
    )


def format_task_detail(state: AppState, task: MaintenanceTask) -> str:
    status = compute_status(task, clock=state.clock)
    lines = [
        f"{task.task_name} ({task.id})",
        f"  Status: {status.label} - {days_left_label(task, clock=state.clock)}",
        f"  Frequency: {task.category.value} | Activity: {task.activity_type.value} | Priority: {task.priority.value}",
        f"  Machine: {machine_label(task, state.machines)} | Location: {task.location or '—'}",
        f"  Downtime required: {task.downtime_required.value} | Est. hours: {task.estimated_man_hours or '—'}",
        f"  Last service: {task.last_service_date or '—'} | Next service: {task.next_service_date or '—'}",
        f"  Created: {task.created_at or '—'}",
    ]
    if task.maintenance_checklist:
        lines.append(f"  Checklist: {task.maintenance_checklist}")
    if task.description:
        lines.append(f"  Instructions: {task.description}")
    if task.risk_if_not_done:
        lines.append(f"  Risk if not done: {task.risk_if_not_done}")
    return "\n".join(lines)


def format_completion(result: CompletionResult) -> str:
    if result.outcome is CompletionOutcome.BLOCKED:
        return f"Cannot mark complete yet. {result.message}"
    if result.outcome is CompletionOutcome.NEEDS_CONFIRMATION:
        return f"{result.message}\nUse /confirm to mark anyway or /cancel."
    update = result.update
    if update is None:
        return "Completed."
    return f"Completed. Last service: {update.last_service_date}, next service: {update.next_service_date}."


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings: Any = state.settings
    guard = state.tasks.guard
    thresholds = ", ".join(f"{c.value}={n}" for c, n in guard.policy.thresholds.items())
    return (
        "Status:\n"
        f"  Today: {state.clock.today().isoformat()}\n"
        f"  Store: {getattr(settings, 'records_db_path', '?')} ({state.tasks.collection})\n"
        f"  Confirm early completion: {'ON' if guard.confirm_early else 'OFF'}\n"
        f"  Early mark allowed: {'YES' if guard.policy.allow_early_mark else f'NO (thresholds: {thresholds})'}\n"
        f"  Guard: {guard.phase.value}"
    )


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list                     -> all tasks grouped by frequency
    /list <text>              -> text search
    /list status=overdue      -> status filter (overdue|ongoing|upcoming|pending|nodate)
    /list freq=Monthly        -> frequency filter
    """
    query_parts = [a for a in args if "=" not in a]
    try:
        filters = parse_assignments([a for a in args if "=" in a])
        check_filters(filters, ("status", "category"))
        tasks = filter_tasks(
            state.tasks.snapshot(),
            clock=state.clock,
            query=" ".join(query_parts),
            status=filters.get("status"),
            frequency=filters.get("category"),
        )
    except ValueError as e:
        return f"Bad filter: {e}"

    if not tasks:
        return "No tasks match."

    lines: list[str] = []
    for category, items in group_by_category(tasks).items():
        if not items:
            continue
        lines.append(f"== {category.value} Maintenance ==")
        lines.extend(format_task_line(state, t) for t in items)
    return "\n".join(lines)


def cmd_show(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /show <id>"
    task = state.tasks.get(args[0])
    if task is None:
        return f"Task not found: {args[0]}"
    return format_task_detail(state, task)


def cmd_add(state: AppState, args: list[str]) -> str:
    try:
        fields = parse_assignments(args)
    except ValueError as e:
        return f"{e}\nUsage: /add name=\"...\" freq=Monthly [field=value ...]"
    key = asyncio.run(state.tasks.create(fields))
    task = state.tasks.get(key)
    return f"Task added: {format_task_line(state, task) if task else key}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /edit <id> field=value [field=value ...]"
    try:
        fields = parse_assignments(args[1:])
    except ValueError as e:
        return str(e)
    asyncio.run(state.tasks.update(args[0], fields))
    return f"Task updated: {args[0]}"


def cmd_delete(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /delete <id>"
    asyncio.run(state.tasks.delete(args[0]))
    return f"Task deleted: {args[0]}"


def cmd_done(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /done <id>"
    result = asyncio.run(state.tasks.complete(args[0]))
    return format_completion(result)


def cmd_confirm(state: AppState, args: list[str]) -> str:
    result = asyncio.run(state.tasks.confirm_completion())
    if result is None:
        return "The task no longer exists; nothing was changed."
    return format_completion(result)


def cmd_cancel(state: AppState, args: list[str]) -> str:
    state.tasks.cancel_completion()
    return "Cancelled. Nothing was changed."


def cmd_move(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /move <id> <YYYY-MM-DD>"
    asyncio.run(state.tasks.reschedule(args[0], args[1]))
    return f"Task {args[0]} rescheduled to {args[1]}."


def cmd_stats(state: AppState, args: list[str]) -> str:
    tasks = state.tasks.snapshot()
    counts = status_counts(tasks, clock=state.clock)
    by_category = category_counts(tasks)
    return (
        "Maintenance overview:\n"
        f"  Total scheduled: {counts['total']}\n"
        f"  Overdue: {counts['overdue']}\n"
        f"  Due today: {counts['ongoing']}\n"
        f"  Upcoming (3 days): {counts['upcoming']}\n"
        f"  Pending: {counts['pending']}\n"
        f"  No date: {counts['nodate']}\n"
        "  By frequency: " + ", ".join(f"{c.value}={n}" for c, n in by_category.items())
    )


def cmd_calendar(state: AppState, args: list[str]) -> str:
    """
    /calendar [machine=<id>] [freq=<category>]
    """
    try:
        filters = parse_assignments(args)
        check_filters(filters, ("machine", "category"))
        events = calendar_events(
            state.tasks.snapshot(),
            machine=filters.get("machine"),
            category=filters.get("category"),
        )
    except ValueError as e:
        return f"Bad filter: {e}"
    if not events:
        return "No scheduled tasks."
    events.sort(key=lambda e: e.start)
    return "\n".join(f"{e.start}  {e.title} ({e.id})" for e in events)


def cmd_machines(state: AppState, args: list[str]) -> str:
    machines = list(state.machines)
    if not machines:
        return "No machines registered."
    return "\n".join(f"{m.id}  {m.display_name}" + (f" ({m.code})" if m.code else "") for m in machines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show today, store and completion policies.")
registry.register("list", cmd_list, help_text="List tasks: /list [text] [status=...] [freq=...].", aliases=["ls"])
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register("add", cmd_add, help_text="Add a task: /add name=\"...\" freq=Monthly [field=value ...].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> field=value ...")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("done", cmd_done, help_text="Mark a task complete today: /done <id>.", aliases=["complete"])
registry.register("confirm", cmd_confirm, help_text="Confirm a pending early completion.")
registry.register("cancel", cmd_cancel, help_text="Cancel a pending early completion.")
registry.register("move", cmd_move, help_text="Move the next service date: /move <id> <YYYY-MM-DD>.")
registry.register("stats", cmd_stats, help_text="Counts by due status and frequency.")
registry.register("calendar", cmd_calendar, help_text="Upcoming dates: /calendar [machine=...] [freq=...].")
registry.register("machines", cmd_machines, help_text="List known machines.")

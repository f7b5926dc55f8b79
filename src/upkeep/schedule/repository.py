# src/upkeep/schedule/repository.py

from __future__ import annotations

"""
Task repository.

Translates record-store snapshots into MaintenanceTask objects and turns
create/update/delete/complete into store writes.

- reads are live: subscribe()/watch() re-emit the full task list on every change
- writes are async and either succeed or raise; nothing is cached locally, the
  next subscription notification is the source of truth
- store failures are logged here and re-raised as PersistenceError
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..core.errors import PersistenceError, TaskNotFoundError, ValidationError
from ..core.ports import Clock, RecordStore, Snapshot, Unsubscribe
from .advancer import advance_on_completion, compute_next_from
from .dates import parse_iso_date, today_iso
from .guard import EarlyCompletionGuard, Verdict
from .models import CHOICE_FIELDS, DATE_FIELDS, RECORD_KEYS, CompletionUpdate, MaintenanceTask

logger = logging.getLogger(__name__)

TASKS_COLLECTION = "maintenanceSchedule"

TaskListener = Callable[[list[MaintenanceTask]], None]


class CompletionOutcome(str, Enum):
    COMPLETED = "completed"
    NEEDS_CONFIRMATION = "needs_confirmation"
    BLOCKED = "blocked"


@dataclass(slots=True, frozen=True)
class CompletionResult:
    outcome: CompletionOutcome
    task_id: str
    days_left: int | float
    message: str = ""
    update: CompletionUpdate | None = None


def tasks_from_snapshot(snapshot: Snapshot) -> list[MaintenanceTask]:
    out: list[MaintenanceTask] = []
    for key, record in snapshot.items():
        if not isinstance(record, Mapping):
            logger.warning("Skipping malformed task record key=%s", key)
            continue
        out.append(MaintenanceTask.from_record(key, record))
    return out


def fields_to_record(fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate snake_case task fields and convert them to a store record.

    Choice fields must be one of their labels; date fields must be calendar dates
    (empty means "not set"); everything else is stored as text.
    """
    unknown = sorted(set(fields) - set(RECORD_KEYS))
    if unknown:
        raise ValidationError(f"Unknown task field(s): {', '.join(unknown)}")

    record: dict[str, Any] = {}
    for name, raw in fields.items():
        key = RECORD_KEYS[name]

        if name in CHOICE_FIELDS:
            choice = CHOICE_FIELDS[name].parse(raw)
            if choice is None:
                allowed = ", ".join(c.value for c in CHOICE_FIELDS[name])
                raise ValidationError(f"{name} must be one of: {allowed} (got {raw!r})")
            record[key] = choice.value
            continue

        if name in DATE_FIELDS:
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                record[key] = None
                continue
            day = parse_iso_date(raw)
            if day is None:
                raise ValidationError(f"{name} must be a YYYY-MM-DD date (got {raw!r})")
            record[key] = day.isoformat()
            continue

        record[key] = "" if raw is None else str(raw)

    if "taskName" in record and not record["taskName"].strip():
        raise ValidationError("task_name is required")
    if "taskName" in record:
        record["taskName"] = record["taskName"].strip()

    return record


class TaskSubscription:
    """Handle for a live task-list subscription. close() is safe to call twice."""

    def __init__(self, unsubscribe: Unsubscribe) -> None:
        self._unsubscribe = unsubscribe
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._unsubscribe()

    def __enter__(self) -> TaskSubscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class TaskRepository:
    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Clock,
        guard: EarlyCompletionGuard | None = None,
        collection: str = TASKS_COLLECTION,
    ) -> None:
        self._store = store
        self._clock = clock
        self.guard = guard or EarlyCompletionGuard(clock=clock)
        self.collection = collection.strip("/")

    def _path(self, task_id: str) -> str:
        if not task_id or "/" in str(task_id):
            raise ValidationError(f"Invalid task id: {task_id!r}")
        return f"{self.collection}/{task_id}"

    # ---- reads ----

    def subscribe(self, on_change: TaskListener) -> TaskSubscription:
        """
        Live task list: on_change(tasks) now and after every change.

        The caller must close() the returned subscription when done.
        """

        def _on_snapshot(snapshot: Snapshot) -> None:
            on_change(tasks_from_snapshot(snapshot))

        try:
            unsubscribe = self._store.subscribe(self.collection, _on_snapshot)
        except Exception as exc:
            logger.exception("subscribe failed collection=%s", self.collection)
            raise PersistenceError("subscribe", self.collection) from exc
        return TaskSubscription(unsubscribe)

    async def watch(self) -> AsyncIterator[list[MaintenanceTask]]:
        """
        Async iterator over full task lists (current snapshot first).

        Stopping the iteration (break / aclose) tears the subscription down.
        Iterating again starts a fresh subscription.
        """
        queue: asyncio.Queue[list[MaintenanceTask]] = asyncio.Queue()
        sub = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            sub.close()

    def snapshot(self) -> list[MaintenanceTask]:
        captured: list[MaintenanceTask] = []

        def _capture(tasks: list[MaintenanceTask]) -> None:
            captured[:] = tasks

        with self.subscribe(_capture):
            pass
        return captured

    def get(self, task_id: str) -> MaintenanceTask | None:
        for task in self.snapshot():
            if task.id == task_id:
                return task
        return None

    def _require(self, task_id: str) -> MaintenanceTask:
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    # ---- writes ----

    async def _write(self, operation: str, path: str, coro_factory: Callable[[], Any]) -> Any:
        try:
            return await coro_factory()
        except Exception as exc:
            logger.exception("%s failed path=%s", operation, path)
            raise PersistenceError(operation, path) from exc

    async def create(self, fields: Mapping[str, Any]) -> str:
        """
        Persist a new task and return its store key.

        task_name and category are required. created_at defaults to today and
        next_service_date to one interval after created_at.
        """
        if not str(fields.get("task_name") or "").strip():
            raise ValidationError("task_name is required")
        if not str(fields.get("category") or "").strip():
            raise ValidationError("category is required")

        record = fields_to_record(fields)

        created_at = record.get("createdAt") or today_iso(clock=self._clock)
        record["createdAt"] = created_at
        if not record.get("nextServiceDate"):
            record["nextServiceDate"] = compute_next_from(created_at, record["category"], clock=self._clock)

        # Optional dates that were left empty are simply not stored.
        record = {k: v for k, v in record.items() if v is not None}
        task = MaintenanceTask.from_record("", record)
        payload = task.to_record()

        key = await self._write("create", self.collection, lambda: self._store.insert(self.collection, payload))
        logger.info(
            "Task created id=%s name=%s category=%s next=%s",
            key,
            task.task_name,
            task.category.value,
            task.next_service_date,
        )
        return key

    async def update(self, task_id: str, fields: Mapping[str, Any]) -> None:
        """
        Merge the given fields into an existing task.

        The schedule is not recomputed here; next_service_date changes only if
        supplied. created_at is immutable and ignored.
        """
        path = self._path(task_id)
        changes = dict(fields)
        if "created_at" in changes:
            changes.pop("created_at")
            logger.debug("Ignoring created_at on update task_id=%s", task_id)

        if "task_name" in changes and not str(changes["task_name"] or "").strip():
            raise ValidationError("task_name is required")
        if "category" in changes and not str(changes["category"] or "").strip():
            raise ValidationError("category is required")

        record = fields_to_record(changes)
        if not record:
            return

        self._require(task_id)
        await self._write("update", path, lambda: self._store.merge(path, record))
        logger.info("Task updated id=%s fields=%s", task_id, sorted(record))

    async def reschedule(self, task_id: str, next_service_date: str) -> None:
        """Move the next due date (calendar drag-and-drop). last_service_date is untouched."""
        if parse_iso_date(next_service_date) is None:
            raise ValidationError(f"next_service_date must be a YYYY-MM-DD date (got {next_service_date!r})")
        await self.update(task_id, {"next_service_date": next_service_date})

    async def delete(self, task_id: str) -> None:
        """Remove a task. Deleting an unknown id is not an error."""
        path = self._path(task_id)
        await self._write("delete", path, lambda: self._store.delete(path))
        logger.info("Task deleted id=%s", task_id)

    async def apply_completion(self, task: MaintenanceTask) -> CompletionUpdate:
        update = advance_on_completion(task, clock=self._clock)
        path = self._path(task.id)
        await self._write("complete", path, lambda: self._store.merge(path, update.to_record()))
        logger.info(
            "Task completed id=%s last=%s next=%s",
            task.id,
            update.last_service_date,
            update.next_service_date,
        )
        return update

    async def complete(self, task_id: str) -> CompletionResult:
        """
        Mark a task complete today, subject to the early-completion guard.

        Due or overdue tasks are advanced immediately. A task that is not yet due
        leaves the guard waiting for confirm_completion()/cancel_completion().
        """
        task = self._require(task_id)
        decision = self.guard.request(task)

        if decision.verdict is Verdict.BLOCKED:
            return CompletionResult(
                outcome=CompletionOutcome.BLOCKED,
                task_id=task_id,
                days_left=decision.days_left,
                message=decision.message,
            )

        if decision.verdict is Verdict.CONFIRM:
            return CompletionResult(
                outcome=CompletionOutcome.NEEDS_CONFIRMATION,
                task_id=task_id,
                days_left=decision.days_left,
                message=decision.message,
            )

        update = await self.apply_completion(task)
        return CompletionResult(
            outcome=CompletionOutcome.COMPLETED,
            task_id=task_id,
            days_left=decision.days_left,
            update=update,
        )

    async def confirm_completion(self) -> CompletionResult | None:
        """
        Apply the completion waiting in the guard.

        The guard goes back to Idle only once the write succeeded. Returns None if
        the task disappeared in the meantime (nothing is written).
        """
        pending = self.guard.require_pending()
        task = self.get(pending.task_id)
        if task is None:
            self.guard.resolve()
            logger.info("Pending completion dropped, task is gone id=%s", pending.task_id)
            return None

        update = await self.apply_completion(task)
        self.guard.resolve()
        return CompletionResult(
            outcome=CompletionOutcome.COMPLETED,
            task_id=task.id,
            days_left=pending.days_left,
            update=update,
        )

    def cancel_completion(self) -> None:
        self.guard.cancel()

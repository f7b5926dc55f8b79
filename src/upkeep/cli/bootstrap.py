# src/upkeep/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the record store, clock, policies and repositories into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.ports import Clock
from ..core.state import AppState
from ..schedule.guard import EarlyCompletionGuard, EarlyMarkPolicy
from ..schedule.machines import MachineDirectory
from ..schedule.repository import TaskRepository
from ..storage.record_store import SqliteRecordStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.records_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_guard(settings, clock: Clock) -> EarlyCompletionGuard:
    policy = EarlyMarkPolicy(
        allow_early_mark=settings.allow_early_mark,
        thresholds=dict(settings.early_mark_thresholds),
    )
    return EarlyCompletionGuard(
        clock=clock,
        confirm_early=settings.confirm_early_completion,
        policy=policy,
    )


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and clock injectable makes the app easier to test and avoids hidden global reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()
    if clock is None:
        clock = SystemClock()

    _ensure_local_dirs(settings)

    store = SqliteRecordStore(settings.records_db_path)
    tasks = TaskRepository(
        store,
        clock=clock,
        guard=build_guard(settings, clock),
        collection=settings.tasks_collection,
    )
    machines = MachineDirectory(store, collection=settings.machines_collection)
    machines.start()

    logger.info(
        "State ready collection=%s confirm_early=%s allow_early_mark=%s",
        tasks.collection,
        settings.confirm_early_completion,
        settings.allow_early_mark,
    )
    return AppState(settings=settings, clock=clock, store=store, tasks=tasks, machines=machines)


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.machines.close()
    except Exception:
        logger.exception("Machine directory close failed.")

    close = getattr(state.store, "close", None)
    if close is not None:
        try:
            close()
        except Exception:
            logger.debug("Record store close failed.", exc_info=True)

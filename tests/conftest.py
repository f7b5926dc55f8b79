# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from upkeep.cli.bootstrap import create_initial_state, shutdown_state
from upkeep.core.clock import FixedClock
from upkeep.schedule.guard import THRESHOLDS
from upkeep.schedule.repository import TaskRepository
from upkeep.storage.record_store import SqliteRecordStore

from .fakes import FakeRecordStore


@pytest.fixture()
def clock() -> FixedClock:
    """Deterministic "today" shared by every component under test."""
    return FixedClock("2025-01-01")


@pytest.fixture()
def store(tmp_path: Path) -> SqliteRecordStore:
    # Real SQLite store: its correctness is part of what we want to test.
    return SqliteRecordStore(tmp_path / "records.sqlite3")


@pytest.fixture()
def fake_store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture()
def repo(store: SqliteRecordStore, clock: FixedClock) -> TaskRepository:
    return TaskRepository(store, clock=clock)


@pytest.fixture()
def fake_repo(fake_store: FakeRecordStore, clock: FixedClock) -> TaskRepository:
    return TaskRepository(fake_store, clock=clock)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="upkeep-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path / "data",
        records_db_path=tmp_path / "data" / "records.sqlite3",
        tasks_collection="maintenanceSchedule",
        machines_collection="machines",
        confirm_early_completion=True,
        allow_early_mark=True,
        early_mark_thresholds=dict(THRESHOLDS),
    )


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FixedClock):
    app_state = create_initial_state(settings=settings, clock=clock)
    yield app_state
    shutdown_state(app_state)

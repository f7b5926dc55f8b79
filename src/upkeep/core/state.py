# src/upkeep/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..schedule.machines import MachineDirectory
from ..schedule.repository import TaskRepository
from .ports import Clock, RecordStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    clock: Clock
    store: RecordStore
    tasks: TaskRepository
    machines: MachineDirectory

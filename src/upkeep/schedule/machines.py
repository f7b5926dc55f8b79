# src/upkeep/schedule/machines.py

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping

from ..core.errors import PersistenceError
from ..core.ports import RecordStore, Snapshot, Unsubscribe
from .models import Machine

logger = logging.getLogger(__name__)

MACHINES_COLLECTION = "machines"


class MachineDirectory:
    """
    Read-only, live view of the machines collection.

    Tasks reference machines by id (free text is allowed too); this directory
    resolves such references to display names. It never writes to the store.
    """

    def __init__(self, store: RecordStore, *, collection: str = MACHINES_COLLECTION) -> None:
        self._store = store
        self.collection = collection.strip("/")
        self._machines: dict[str, Machine] = {}
        self._unsubscribe: Unsubscribe | None = None

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        try:
            self._unsubscribe = self._store.subscribe(self.collection, self._on_snapshot)
        except Exception as exc:
            logger.exception("subscribe failed collection=%s", self.collection)
            raise PersistenceError("subscribe", self.collection) from exc

    def close(self) -> None:
        if self._unsubscribe is None:
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        unsubscribe()

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        machines: dict[str, Machine] = {}
        for key, record in snapshot.items():
            if isinstance(record, Mapping):
                machines[key] = Machine.from_record(key, record)
        self._machines = machines
        logger.debug("Machine directory refreshed count=%d", len(machines))

    def get(self, machine_id: str) -> Machine | None:
        return self._machines.get(machine_id)

    def resolve_name(self, ref: str | None) -> str:
        """Display name for a task's machine reference; the raw text if unknown; "—" if empty."""
        if not ref:
            return "—"
        machine = self._machines.get(ref)
        return machine.display_name if machine else ref

    def __contains__(self, machine_id: object) -> bool:
        return machine_id in self._machines

    def __len__(self) -> int:
        return len(self._machines)

    def __iter__(self) -> Iterator[Machine]:
        return iter(list(self._machines.values()))

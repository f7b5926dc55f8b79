# src/upkeep/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the schedule engine.

The engine depends on Protocols instead of concrete implementations.
This keeps the record store and the notion of "today" swappable and makes testing easier.
"""

from collections.abc import Callable, Mapping
from datetime import date
from typing import Any, Awaitable, Protocol

Record = dict[str, Any]
Snapshot = Mapping[str, Record]
# Store snapshot: {generated_key: record} for one collection path.

ChangeListener = Callable[[Snapshot], None]
Unsubscribe = Callable[[], None]


class Clock(Protocol):
    """Source of the current local calendar date."""

    def today(self) -> date: ...


class RecordStore(Protocol):
    """
    Generic hierarchical record store (collection/key -> record).

    - subscribe() calls on_change immediately with the current snapshot, then after every
      change under collection_path. It returns an unsubscribe callable.
    - insert() appends a record under a key chosen by the store.
    - merge() shallow-merges fields into the record at "collection/key".
    - delete() removes the record at "collection/key".

    No schema is enforced by the store; validation belongs to the caller.
    """

    def subscribe(self, collection_path: str, on_change: ChangeListener) -> Unsubscribe: ...

    def insert(self, collection_path: str, record: Record) -> Awaitable[str]: ...

    def merge(self, record_path: str, partial: Record) -> Awaitable[None]: ...

    def delete(self, record_path: str) -> Awaitable[None]: ...

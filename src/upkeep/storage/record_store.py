# src/upkeep/storage/record_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
import time
import uuid
from collections import defaultdict
from pathlib import Path
from typing import Any

from ..core.ports import ChangeListener, Record, Snapshot, Unsubscribe

logger = logging.getLogger(__name__)


def split_record_path(record_path: str) -> tuple[str, str]:
    """Split "machines/abc" into ("machines", "abc"). The key is the last path segment."""
    path = record_path.strip("/")
    collection, sep, key = path.rpartition("/")
    if not sep or not collection or not key:
        raise ValueError(f"Record path must look like 'collection/key': {record_path!r}")
    return collection, key


class SqliteRecordStore:
    """
    SQLite record store with live subscriptions.

    Records are JSON objects addressed by (collection, key). The schema is
    migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - writes run in a worker thread; listeners are called on the caller's thread
      after the write has committed
    """

    def __init__(self, db_path: str | Path = "records.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._listeners: dict[str, list[ChangeListener]] = defaultdict(list)
        self._ensure_schema()
        try:
            total = self.count_records()
        except sqlite3.Error:
            total = -1
        logger.info("RecordStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Drop all listeners (no persistent connections to close)."""
        self._listeners.clear()

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    collection TEXT NOT NULL,
                    key TEXT NOT NULL,
                    data TEXT NOT NULL DEFAULT '{}',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (collection, key)
                )
                """
            )

            cur.execute("PRAGMA table_info(records)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE records ADD COLUMN {name} {decl}")
                logger.info("RecordStore migration: added column %s", name)

            add_col("data", "TEXT NOT NULL DEFAULT '{}'")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_records_order ON records(collection, created_at)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _encode(record: Record) -> str:
        return json.dumps(record, ensure_ascii=False)

    @staticmethod
    def _decode(raw: str | None) -> Record:
        if not raw:
            return {}
        try:
            val = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Corrupt record payload ignored")
            return {}
        return val if isinstance(val, dict) else {}

    @staticmethod
    def _new_key() -> str:
        # Time prefix keeps keys roughly in insertion order, like push ids.
        return f"{time.time_ns():x}{uuid.uuid4().hex[:8]}"

    # ---- sync primitives (run in a worker thread by the async API) ----

    def count_records(self, collection: str | None = None) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if collection is None:
                cur.execute("SELECT COUNT(*) FROM records")
            else:
                cur.execute("SELECT COUNT(*) FROM records WHERE collection = ?", (collection,))
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def read_collection(self, collection: str) -> dict[str, Record]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT key, data
                FROM records
                WHERE collection = ?
                ORDER BY created_at ASC, key ASC
                """,
                (collection,),
            )
            return {str(row["key"]): self._decode(row["data"]) for row in cur.fetchall()}
        finally:
            conn.close()

    def _insert_row(self, collection: str, record: Record) -> str:
        key = self._new_key()
        now = time.time()
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO records(collection, key, data, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (collection, key, self._encode(record), now, now),
            )
            conn.commit()
        finally:
            conn.close()
        return key

    def _merge_row(self, collection: str, key: str, partial: Record) -> None:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT data FROM records WHERE collection = ? AND key = ?", (collection, key))
            row = cur.fetchone()
            if row is None:
                # Same as the hosted stores: merging into a missing key creates it.
                cur.execute(
                    "INSERT INTO records(collection, key, data, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                    (collection, key, self._encode(dict(partial)), now, now),
                )
            else:
                merged = self._decode(row["data"])
                merged.update(partial)
                cur.execute(
                    "UPDATE records SET data = ?, updated_at = ? WHERE collection = ? AND key = ?",
                    (self._encode(merged), now, collection, key),
                )
            conn.commit()
        finally:
            conn.close()

    def _delete_row(self, collection: str, key: str) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM records WHERE collection = ? AND key = ?", (collection, key))
            conn.commit()
            return cur.rowcount
        finally:
            conn.close()

    # ---- subscriptions ----

    def _notify(self, collection: str) -> None:
        listeners = list(self._listeners.get(collection, ()))
        if not listeners:
            return
        try:
            snapshot = self.read_collection(collection)
        except Exception:
            # The write already committed; only the notification is lost.
            logger.exception("Snapshot read for listeners failed collection=%s", collection)
            return
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Change listener failed collection=%s", collection)

    def subscribe(self, collection_path: str, on_change: ChangeListener) -> Unsubscribe:
        collection = collection_path.strip("/")
        snapshot: Snapshot = self.read_collection(collection)
        self._listeners[collection].append(on_change)
        logger.debug("Subscribed collection=%s listeners=%d", collection, len(self._listeners[collection]))

        try:
            on_change(snapshot)
        except Exception:
            logger.exception("Change listener failed collection=%s", collection)

        done = False

        def unsubscribe() -> None:
            nonlocal done
            if done:
                return
            done = True
            with contextlib.suppress(ValueError):
                self._listeners[collection].remove(on_change)
            logger.debug("Unsubscribed collection=%s", collection)

        return unsubscribe

    # ---- public async API ----

    async def insert(self, collection_path: str, record: Record) -> str:
        collection = collection_path.strip("/")
        key = await asyncio.to_thread(self._insert_row, collection, dict(record))
        logger.debug("Record inserted %s/%s", collection, key)
        self._notify(collection)
        return key

    async def merge(self, record_path: str, partial: Record) -> None:
        collection, key = split_record_path(record_path)
        await asyncio.to_thread(self._merge_row, collection, key, dict(partial))
        logger.debug("Record merged %s/%s fields=%s", collection, key, sorted(partial))
        self._notify(collection)

    async def delete(self, record_path: str) -> None:
        collection, key = split_record_path(record_path)
        removed = await asyncio.to_thread(self._delete_row, collection, key)
        logger.debug("Record delete %s/%s removed=%s", collection, key, removed)
        self._notify(collection)

    # ---- seeding / inspection ----

    def get_record(self, record_path: str) -> Record | None:
        collection, key = split_record_path(record_path)
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT data FROM records WHERE collection = ? AND key = ?", (collection, key))
            row = cur.fetchone()
            return self._decode(row["data"]) if row else None
        finally:
            conn.close()

    def put_record(self, record_path: str, record: dict[str, Any]) -> None:
        """Synchronous upsert for seeding reference data (machines, fixtures)."""
        collection, key = split_record_path(record_path)
        self._merge_row(collection, key, record)
        self._notify(collection)

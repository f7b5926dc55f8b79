# tests/test_record_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from upkeep.storage.record_store import SqliteRecordStore, split_record_path


def test_split_record_path() -> None:
    assert split_record_path("machines/abc") == ("machines", "abc")
    assert split_record_path("/a/b/c/") == ("a/b", "c")
    with pytest.raises(ValueError):
        split_record_path("machines")


@pytest.mark.asyncio
async def test_insert_merge_delete_roundtrip(store: SqliteRecordStore) -> None:
    key = await store.insert("maintenanceSchedule", {"taskName": "Oil", "category": "Weekly"})
    assert key
    assert store.get_record(f"maintenanceSchedule/{key}") == {"taskName": "Oil", "category": "Weekly"}

    await store.merge(f"maintenanceSchedule/{key}", {"category": "Monthly", "priority": "High"})
    assert store.get_record(f"maintenanceSchedule/{key}") == {
        "taskName": "Oil",
        "category": "Monthly",
        "priority": "High",
    }

    await store.delete(f"maintenanceSchedule/{key}")
    assert store.get_record(f"maintenanceSchedule/{key}") is None
    # Deleting again is a no-op.
    await store.delete(f"maintenanceSchedule/{key}")
    assert store.count_records("maintenanceSchedule") == 0


@pytest.mark.asyncio
async def test_merge_into_missing_key_creates_it(store: SqliteRecordStore) -> None:
    await store.merge("machines/m1", {"name": "Press 1"})
    assert store.get_record("machines/m1") == {"name": "Press 1"}


@pytest.mark.asyncio
async def test_subscribe_gets_snapshot_then_every_change(store: SqliteRecordStore) -> None:
    seen: list[dict] = []
    unsubscribe = store.subscribe("maintenanceSchedule", seen.append)
    assert seen == [{}]

    k1 = await store.insert("maintenanceSchedule", {"taskName": "A"})
    k2 = await store.insert("maintenanceSchedule", {"taskName": "B"})
    assert list(seen[-1]) == [k1, k2]

    # Other collections do not notify this listener.
    await store.insert("machines", {"name": "Lathe"})
    assert len(seen) == 3

    unsubscribe()
    unsubscribe()
    await store.delete(f"maintenanceSchedule/{k1}")
    assert len(seen) == 3


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_writes(store: SqliteRecordStore) -> None:
    calls: list[int] = []

    def bad_listener(snapshot) -> None:
        calls.append(len(snapshot))
        raise RuntimeError("boom")

    store.subscribe("maintenanceSchedule", bad_listener)
    good: list[dict] = []
    store.subscribe("maintenanceSchedule", good.append)

    await store.insert("maintenanceSchedule", {"taskName": "A"})
    assert calls == [0, 1]
    assert len(good[-1]) == 1


def test_put_record_seeds_and_notifies(store: SqliteRecordStore) -> None:
    seen: list[dict] = []
    store.subscribe("machines", seen.append)
    store.put_record("machines/m1", {"name": "Press", "code": "P-1"})
    store.put_record("machines/m1", {"location": "Hall B"})
    assert seen[-1] == {"m1": {"name": "Press", "code": "P-1", "location": "Hall B"}}


def test_data_survives_reopen(tmp_path: Path) -> None:
    db = tmp_path / "records.sqlite3"
    SqliteRecordStore(db).put_record("machines/m1", {"name": "Press"})
    assert SqliteRecordStore(db).read_collection("machines") == {"m1": {"name": "Press"}}


def test_migrates_old_table(tmp_path: Path) -> None:
    db = tmp_path / "records.sqlite3"
    conn = sqlite3.connect(str(db))
    conn.execute("CREATE TABLE records (collection TEXT NOT NULL, key TEXT NOT NULL, PRIMARY KEY (collection, key))")
    conn.execute("INSERT INTO records(collection, key) VALUES ('machines', 'old')")
    conn.commit()
    conn.close()

    store = SqliteRecordStore(db)

    conn = sqlite3.connect(str(db))
    cols = {row[1] for row in conn.execute("PRAGMA table_info(records)")}
    conn.close()
    assert {"data", "created_at", "updated_at"} <= cols
    assert store.read_collection("machines") == {"old": {}}


def test_corrupt_payload_reads_as_empty(tmp_path: Path) -> None:
    db = tmp_path / "records.sqlite3"
    store = SqliteRecordStore(db)
    conn = sqlite3.connect(str(db))
    conn.execute(
        "INSERT INTO records(collection, key, data, created_at, updated_at) VALUES ('machines', 'x', '{oops', 0, 0)"
    )
    conn.commit()
    conn.close()
    assert store.get_record("machines/x") == {}


@pytest.mark.asyncio
async def test_failed_notification_does_not_fail_the_write(store: SqliteRecordStore, monkeypatch) -> None:
    seen: list[dict] = []
    store.subscribe("maintenanceSchedule", seen.append)

    def broken_read(collection: str):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(store, "read_collection", broken_read)
    key = await store.insert("maintenanceSchedule", {"taskName": "A"})
    await store.merge(f"maintenanceSchedule/{key}", {"priority": "High"})

    assert seen == [{}]
    assert store.count_records("maintenanceSchedule") == 1
    assert store.get_record(f"maintenanceSchedule/{key}") == {"taskName": "A", "priority": "High"}

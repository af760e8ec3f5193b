# tests/test_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from dev_task_hub.hub.store import DEFAULT_SETTINGS, SqliteRecordStore


@pytest.mark.asyncio
async def test_store_roundtrip_and_order(tmp_path: Path) -> None:
    store = SqliteRecordStore(tmp_path / "hub.sqlite3")
    await store.init()

    await store.put("tasks", {"id": "b", "title": "second", "createdAt": 20})
    await store.put("tasks", {"id": "a", "title": "first", "createdAt": 10})
    await store.put("tasks", {"id": "b", "title": "second (edited)", "createdAt": 20})

    rows = await store.get_all("tasks")
    assert [r["id"] for r in rows] == ["a", "b"]
    assert rows[1]["title"] == "second (edited)"
    assert await store.count("tasks") == 2

    await store.delete("tasks", "a")
    await store.delete("tasks", "missing")
    assert [r["id"] for r in await store.get_all("tasks")] == ["b"]

    await store.clear("tasks")
    assert await store.get_all("tasks") == []


@pytest.mark.asyncio
async def test_store_seeds_settings_once(tmp_path: Path) -> None:
    db = tmp_path / "nested" / "hub.sqlite3"
    store = SqliteRecordStore(db, default_settings={"oneActiveTask": False, "autoStopOnComplete": True})
    await store.init()
    assert await store.get_settings() == {"oneActiveTask": False, "autoStopOnComplete": True}

    await store.put_settings({"oneActiveTask": True, "autoStopOnComplete": False})

    # Re-opening must not overwrite what the user chose.
    reopened = SqliteRecordStore(db)
    await reopened.init()
    assert await reopened.get_settings() == {"oneActiveTask": True, "autoStopOnComplete": False}


@pytest.mark.asyncio
async def test_store_replace_all(tmp_path: Path) -> None:
    store = SqliteRecordStore(tmp_path / "hub.sqlite3")
    await store.init()
    await store.put("notes", {"id": "old", "title": "old"})

    await store.replace_all(
        tasks=[{"id": "t1", "createdAt": 1}],
        notes=[],
        ideas=[{"id": "i1", "status": "seed"}],
        settings={"oneActiveTask": False, "autoStopOnComplete": False},
    )

    assert [r["id"] for r in await store.get_all("tasks")] == ["t1"]
    assert await store.get_all("notes") == []
    assert [r["id"] for r in await store.get_all("ideas")] == ["i1"]
    assert await store.get_settings() == {"oneActiveTask": False, "autoStopOnComplete": False}


@pytest.mark.asyncio
async def test_store_replace_all_rolls_back_on_bad_record(tmp_path: Path) -> None:
    store = SqliteRecordStore(tmp_path / "hub.sqlite3")
    await store.init()
    await store.put("tasks", {"id": "keep"})

    with pytest.raises(ValueError):
        await store.replace_all(
            tasks=[{"id": "new"}, {"title": "no id"}],
            notes=[],
            ideas=[],
            settings=dict(DEFAULT_SETTINGS),
        )

    assert [r["id"] for r in await store.get_all("tasks")] == ["keep"]


@pytest.mark.asyncio
async def test_store_rejects_unknown_collection(tmp_path: Path) -> None:
    store = SqliteRecordStore(tmp_path / "hub.sqlite3")
    await store.init()
    with pytest.raises(ValueError):
        await store.get_all("users")


@pytest.mark.asyncio
async def test_store_migrates_old_table_and_tolerates_bad_rows(tmp_path: Path) -> None:
    db = tmp_path / "hub.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute("CREATE TABLE tasks (id TEXT PRIMARY KEY, data TEXT NOT NULL DEFAULT '{}')")
    conn.execute("INSERT INTO tasks(id, data) VALUES ('broken', 'not json')")
    conn.commit()
    conn.close()

    store = SqliteRecordStore(db)
    await store.init()

    conn = sqlite3.connect(db)
    cols = {row[1] for row in conn.execute("PRAGMA table_info(tasks)")}
    conn.close()
    assert {"status", "created_at", "updated_at"} <= cols

    assert await store.get_all("tasks") == [{"id": "broken"}]

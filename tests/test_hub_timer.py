# tests/test_hub_timer.py

from __future__ import annotations

import pytest

from dev_task_hub.hub.errors import StorageInitError
from dev_task_hub.hub.models import TaskStatus
from dev_task_hub.hub.service import TaskHub

from .fakes import Announcements, BrokenRecordStore, FakeClock, MemoryRecordStore


def _assert_active_invariant(hub: TaskHub) -> None:
    for t in hub.snapshot.tasks:
        assert (t.status is TaskStatus.ACTIVE) == (t.active_since is not None)


@pytest.mark.asyncio
async def test_init_failure_raises_storage_init_error() -> None:
    hub = TaskHub(BrokenRecordStore())
    with pytest.raises(StorageInitError):
        await hub.init()
    assert hub.ready is False


@pytest.mark.asyncio
async def test_start_stop_start_stop_totals(hub: TaskHub, clock: FakeClock, announcements: Announcements) -> None:
    task = await hub.save_task({"title": "Write docs"})

    assert await hub.start_task(task.id)
    clock.advance(5000)
    assert await hub.stop_task(task.id)
    assert hub.snapshot.find_task(task.id).elapsed_ms == 5000

    assert await hub.start_task(task.id)
    clock.advance(1000)
    assert hub.current_elapsed(task.id) == 6000
    clock.advance(1000)
    assert await hub.stop_task(task.id)

    stored = hub.snapshot.find_task(task.id)
    assert stored.elapsed_ms == 7000
    assert stored.status is TaskStatus.PAUSED
    assert [s.duration_ms() for s in stored.sessions] == [5000, 2000]
    assert announcements.messages.count("Task started") == 2
    assert announcements.messages.count("Task stopped") == 2
    _assert_active_invariant(hub)


@pytest.mark.asyncio
async def test_start_is_noop_for_active_and_done(hub: TaskHub, announcements: Announcements) -> None:
    task = await hub.save_task({"title": "x"})
    assert await hub.start_task(task.id)
    assert not await hub.start_task(task.id)
    assert await hub.complete_task(task.id)
    assert not await hub.start_task(task.id)
    assert not await hub.stop_task(task.id)
    assert not await hub.start_task("missing")
    assert announcements.messages.count("Task started") == 1


@pytest.mark.asyncio
async def test_wip_limit_pauses_other_active_task(hub: TaskHub, clock: FakeClock, announcements: Announcements) -> None:
    a = await hub.save_task({"title": "A"})
    b = await hub.save_task({"title": "B"})

    await hub.start_task(a.id)
    clock.advance(3000)
    announcements.messages.clear()
    await hub.start_task(b.id)

    ta = hub.snapshot.find_task(a.id)
    tb = hub.snapshot.find_task(b.id)
    assert ta.status is TaskStatus.PAUSED
    assert ta.elapsed_ms == 3000
    assert tb.status is TaskStatus.ACTIVE
    assert len(hub.snapshot.active_tasks()) == 1
    # The implicit stop is silent.
    assert announcements.messages == ["Task started"]
    _assert_active_invariant(hub)


@pytest.mark.asyncio
async def test_wip_off_allows_many_active(hub: TaskHub, announcements: Announcements) -> None:
    await hub.set_setting("one_active_task", False)
    assert announcements.messages[-1] == "WIP limit disabled"

    a = await hub.save_task({"title": "A"})
    b = await hub.save_task({"title": "B"})
    await hub.start_task(a.id)
    await hub.start_task(b.id)
    assert len(hub.snapshot.active_tasks()) == 2

    # Turning the limit back on leaves running timers alone until the next start.
    await hub.set_setting("one_active_task", True)
    assert len(hub.snapshot.active_tasks()) == 2

    c = await hub.save_task({"title": "C"})
    await hub.start_task(c.id)
    assert [t.id for t in hub.snapshot.active_tasks()] == [c.id]


@pytest.mark.asyncio
async def test_complete_with_auto_stop_counts_final_session(hub: TaskHub, clock: FakeClock) -> None:
    task = await hub.save_task({"title": "x"})
    await hub.start_task(task.id)
    clock.advance(4000)
    assert await hub.complete_task(task.id)

    done = hub.snapshot.find_task(task.id)
    assert done.status is TaskStatus.DONE
    assert done.elapsed_ms == 4000
    assert done.completed_at == clock.now
    assert done.active_since is None
    assert done.sessions[-1].end == clock.now


@pytest.mark.asyncio
async def test_complete_without_auto_stop_leaves_session_open(
    hub: TaskHub, clock: FakeClock, announcements: Announcements
) -> None:
    await hub.set_setting("auto_stop_on_complete", False)
    assert announcements.messages[-1] == "Auto-stop on complete: Off"

    task = await hub.save_task({"title": "x"})
    await hub.start_task(task.id)
    clock.advance(4000)
    await hub.complete_task(task.id)

    done = hub.snapshot.find_task(task.id)
    assert done.status is TaskStatus.DONE
    assert done.elapsed_ms == 0
    assert done.sessions[-1].is_open
    _assert_active_invariant(hub)


@pytest.mark.asyncio
async def test_delete_active_task_stops_it_and_sweeps_notes(
    hub: TaskHub, memory_store: MemoryRecordStore, announcements: Announcements
) -> None:
    task = await hub.save_task({"title": "x"})
    note = await hub.save_note({"title": "n", "linkedTaskIds": [task.id]})
    await hub.start_task(task.id)
    announcements.messages.clear()

    assert await hub.delete_task(task.id)

    assert hub.snapshot.find_task(task.id) is None
    assert task.id not in memory_store.collections["tasks"]
    assert hub.snapshot.find_note(note.id).linked_task_ids == ()
    assert announcements.messages == ["Task deleted"]


@pytest.mark.asyncio
async def test_save_task_merges_fields_and_ignores_timer_state(hub: TaskHub, clock: FakeClock) -> None:
    task = await hub.save_task({"title": "Fix login", "tags": "auth, web", "estimate": "1.5h"})
    assert task.tags == ("auth", "web")
    assert task.estimate_ms == 5_400_000

    await hub.start_task(task.id)
    clock.advance(10)
    updated = await hub.save_task(
        {"description": "OAuth flow", "status": "done", "elapsedMs": 999_999}, task.id
    )

    assert updated.title == "Fix login"
    assert updated.description == "OAuth flow"
    assert updated.status is TaskStatus.ACTIVE
    assert updated.elapsed_ms == 0
    assert updated.created_at == task.created_at


@pytest.mark.asyncio
async def test_hub_reloads_state_from_store(memory_store: MemoryRecordStore, clock: FakeClock) -> None:
    first = TaskHub(memory_store, clock=clock)
    await first.init()
    task = await first.save_task({"title": "persisted"})
    await first.start_task(task.id)
    clock.advance(2000)

    second = TaskHub(memory_store, clock=clock)
    await second.init()
    # A running timer survives a restart.
    assert second.current_elapsed(task.id) == 2000
    assert second.active_elapsed() == {task.id: 2000}

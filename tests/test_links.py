# tests/test_links.py

from __future__ import annotations

import pytest

from dev_task_hub.hub.links import backlink_updates, rebuild_backlinks
from dev_task_hub.hub.models import Note, Task, TaskStatus
from dev_task_hub.hub.service import TaskHub

from .fakes import Announcements, MemoryRecordStore

T0 = 1_700_000_000_000


def _links_symmetric(hub: TaskHub) -> bool:
    for note in hub.snapshot.notes:
        for task_id in note.linked_task_ids:
            task = hub.snapshot.find_task(task_id)
            if task is not None and note.id not in task.note_ids:
                return False
    for task in hub.snapshot.tasks:
        for note_id in task.note_ids:
            note = hub.snapshot.find_note(note_id)
            if note is None or task.id not in note.linked_task_ids:
                return False
    return True


def test_backlink_updates_adds_and_removes() -> None:
    tasks = [
        Task(id="a", title="a", status=TaskStatus.TODO, created_at=T0),
        Task(id="b", title="b", status=TaskStatus.TODO, created_at=T0, note_ids=("n1",)),
        Task(id="c", title="c", status=TaskStatus.TODO, created_at=T0, note_ids=("n1",)),
    ]
    note = Note(id="n1", title="n", created_at=T0, updated_at=T0, linked_task_ids=("a", "c"))

    changed = {t.id: t for t in backlink_updates(note, tasks)}

    assert set(changed) == {"a", "b"}
    assert changed["a"].note_ids == ("n1",)
    assert changed["b"].note_ids == ()


def test_rebuild_backlinks_only_returns_changed_tasks() -> None:
    tasks = [
        Task(id="a", title="a", status=TaskStatus.TODO, created_at=T0, note_ids=("n1", "gone")),
        Task(id="b", title="b", status=TaskStatus.TODO, created_at=T0, note_ids=("n2",)),
    ]
    notes = [
        Note(id="n1", title="1", created_at=T0, updated_at=T0, linked_task_ids=("a",)),
        Note(id="n2", title="2", created_at=T0, updated_at=T0, linked_task_ids=("a", "b")),
    ]

    changed = rebuild_backlinks(tasks, notes)

    assert [t.id for t in changed] == ["a"]
    assert changed[0].note_ids == ("n1", "n2")


@pytest.mark.asyncio
async def test_note_save_and_delete_keep_links_symmetric(hub: TaskHub, announcements: Announcements) -> None:
    a = await hub.save_task({"title": "A"})
    b = await hub.save_task({"title": "B"})

    note = await hub.save_note({"title": "Design", "linkedTaskIds": f"{a.id}, {b.id}"})
    assert announcements.messages[-1] == "Note added"
    assert hub.snapshot.find_task(a.id).note_ids == (note.id,)
    assert _links_symmetric(hub)

    await hub.save_note({"linkedTaskIds": [b.id]}, note.id)
    assert announcements.messages[-1] == "Note updated"
    assert hub.snapshot.find_task(a.id).note_ids == ()
    assert hub.snapshot.find_note(note.id).title == "Design"
    assert _links_symmetric(hub)

    assert await hub.delete_note(note.id)
    assert hub.snapshot.find_task(b.id).note_ids == ()
    assert announcements.messages[-1] == "Note deleted"


@pytest.mark.asyncio
async def test_repair_links_fixes_one_sided_reference(hub: TaskHub, memory_store: MemoryRecordStore) -> None:
    task = await hub.save_task({"title": "A"})
    note = await hub.save_note({"title": "n", "linkedTaskIds": [task.id]})

    # Simulate a crash between the note write and the task write.
    record = memory_store.collections["tasks"][task.id]
    record["noteIds"] = ["ghost"]
    await hub.refresh()
    assert not _links_symmetric(hub)

    assert await hub.repair_links() == 1
    assert hub.snapshot.find_task(task.id).note_ids == (note.id,)
    assert _links_symmetric(hub)


@pytest.mark.asyncio
async def test_idea_crud(hub: TaskHub, clock, announcements: Announcements) -> None:
    idea = await hub.save_idea({"title": "Offline sync", "status": "researching", "nextStep": "spike"})
    assert idea.status == "researching"
    assert announcements.messages[-1] == "Idea added"

    clock.advance(1000)
    updated = await hub.save_idea({"status": "building"}, idea.id)
    assert updated.title == "Offline sync"
    assert updated.updated_at == clock.now
    assert updated.created_at == idea.created_at

    assert await hub.delete_idea(idea.id)
    assert hub.snapshot.ideas == ()
    assert not await hub.delete_idea(idea.id)


@pytest.mark.asyncio
async def test_reset_all_keeps_settings(hub: TaskHub, announcements: Announcements) -> None:
    await hub.set_setting("auto_stop_on_complete", False)
    await hub.save_task({"title": "t"})
    await hub.save_note({"title": "n"})
    await hub.save_idea({"title": "i"})

    await hub.reset_all()

    assert hub.snapshot.tasks == hub.snapshot.notes == hub.snapshot.ideas == ()
    assert hub.snapshot.settings.auto_stop_on_complete is False
    assert announcements.messages[-1] == "All data reset"


@pytest.mark.asyncio
async def test_unknown_setting_is_rejected(hub: TaskHub) -> None:
    with pytest.raises(ValueError):
        await hub.set_setting("dark_mode", True)

# src/dev_task_hub/hub/links.py

"""
Task <-> note cross references.

Steady state: t.id in n.linked_task_ids  <=>  n.id in t.note_ids.

Notes own the forward reference (linked_task_ids); tasks carry the back
reference (note_ids). Both sides are written independently by the service, so
a crash between the writes can leave them asymmetric. rebuild_backlinks()
recomputes every back reference from the forward ones.

Every helper returns only the records that changed, ready to be persisted.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from .models import Note, Task
from .normalize import NOTE_IDS_LIMIT


def backlink_updates(note: Note, tasks: Iterable[Task]) -> list[Task]:
    """
    Tasks to rewrite after `note` was saved:
    - linked tasks gain note.id (deduplicated),
    - tasks no longer linked lose it.
    """
    linked = set(note.linked_task_ids)
    out: list[Task] = []
    for task in tasks:
        has = note.id in task.note_ids
        if task.id in linked and not has:
            out.append(replace(task, note_ids=(*task.note_ids, note.id)[:NOTE_IDS_LIMIT]))
        elif task.id not in linked and has:
            out.append(replace(task, note_ids=tuple(i for i in task.note_ids if i != note.id)))
    return out


def notes_without_task(task_id: str, notes: Iterable[Note], now: int) -> list[Note]:
    """Notes that referenced a deleted task, with the reference removed."""
    return [
        replace(
            n,
            linked_task_ids=tuple(i for i in n.linked_task_ids if i != task_id),
            updated_at=now,
        )
        for n in notes
        if task_id in n.linked_task_ids
    ]


def tasks_without_note(note_id: str, tasks: Iterable[Task]) -> list[Task]:
    """Tasks that referenced a deleted note, with the reference removed."""
    return [
        replace(t, note_ids=tuple(i for i in t.note_ids if i != note_id))
        for t in tasks
        if note_id in t.note_ids
    ]


def rebuild_backlinks(tasks: Iterable[Task], notes: Iterable[Note]) -> list[Task]:
    """
    Repair pass: recompute each task's note_ids from the notes' linked_task_ids.

    Existing order is kept for references that survive; new ones are appended in
    note order. Only tasks whose note_ids actually change are returned.
    """
    notes = list(notes)
    wanted: dict[str, list[str]] = {}
    for note in notes:
        for task_id in note.linked_task_ids:
            ids = wanted.setdefault(task_id, [])
            if note.id not in ids:
                ids.append(note.id)

    out: list[Task] = []
    for task in tasks:
        want = wanted.get(task.id, [])
        kept = [i for i in task.note_ids if i in want]
        added = [i for i in want if i not in kept]
        new_ids = tuple(kept + added)[:NOTE_IDS_LIMIT]
        if new_ids != task.note_ids:
            out.append(replace(task, note_ids=new_ids))
    return out

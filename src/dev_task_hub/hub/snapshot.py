# src/dev_task_hub/hub/snapshot.py

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.ports import RecordStore
from .models import HubSettings, Idea, Note, Task, TaskStatus
from .normalize import normalize_idea, normalize_note, normalize_settings, normalize_task

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Snapshot:
    """
    Full in-memory copy of every persisted collection.

    Rebuilt wholesale after each mutation and never patched in place; treat it
    as a read-only view, not as the source of truth.
    """

    tasks: tuple[Task, ...] = ()
    notes: tuple[Note, ...] = ()
    ideas: tuple[Idea, ...] = ()
    settings: HubSettings = HubSettings()

    def find_task(self, task_id: str) -> Task | None:
        return next((t for t in self.tasks if t.id == task_id), None)

    def find_note(self, note_id: str) -> Note | None:
        return next((n for n in self.notes if n.id == note_id), None)

    def find_idea(self, idea_id: str) -> Idea | None:
        return next((i for i in self.ideas if i.id == idea_id), None)

    def active_tasks(self) -> list[Task]:
        return [t for t in self.tasks if t.status is TaskStatus.ACTIVE]

    def has_active(self) -> bool:
        return any(t.status is TaskStatus.ACTIVE for t in self.tasks)


async def load_snapshot(store: RecordStore, *, now: int) -> Snapshot:
    """Read all collections and run every record through the normalizer."""
    tasks = tuple(normalize_task(r, now=now) for r in await store.get_all("tasks"))
    notes = tuple(normalize_note(r, now=now) for r in await store.get_all("notes"))
    ideas = tuple(normalize_idea(r, now=now) for r in await store.get_all("ideas"))
    settings = normalize_settings(await store.get_settings())

    logger.debug(
        "Snapshot loaded tasks=%d notes=%d ideas=%d active=%d",
        len(tasks),
        len(notes),
        len(ideas),
        sum(1 for t in tasks if t.status is TaskStatus.ACTIVE),
    )
    return Snapshot(tasks=tasks, notes=notes, ideas=ideas, settings=settings)

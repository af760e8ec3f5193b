# src/dev_task_hub/hub/service.py

"""
TaskHub: the operations users trigger, on top of a RecordStore.

Every mutation follows the same shape:
- read what it needs from the current snapshot,
- write one or more records through the store,
- reload the whole snapshot (read-after-write),
- announce the outcome unless called with silent=True.

There are no locks and no multi-record transactions (except import). Nested
operations (the WIP stop before a start, the auto-stop before a complete) refresh
the snapshot themselves, so callers re-read their target afterwards instead of
reusing an object fetched before the await.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from ..core.ports import Announcer, Clock, RecordStore
from . import links, timer, wip
from .errors import ImportDocumentError, StorageInitError
from .models import SETTING_KEYS, HubSettings, Idea, Note, Task, TaskStatus
from .normalize import new_id, normalize_idea, normalize_note, normalize_task, parse_estimate
from .snapshot import Snapshot, load_snapshot
from .transfer import build_export, dump_export, parse_import

logger = logging.getLogger(__name__)

# Owned by the timer; never taken from user input.
TIMER_FIELDS = frozenset(
    {"id", "status", "activeSince", "elapsedMs", "sessions", "createdAt", "completedAt", "noteIds"}
)
NOTE_PROTECTED_FIELDS = frozenset({"id", "createdAt", "updatedAt"})
IDEA_PROTECTED_FIELDS = NOTE_PROTECTED_FIELDS

SETTING_LABELS = {
    "one_active_task": "WIP limit",
    "auto_stop_on_complete": "Auto-stop on complete",
}


class TaskHub:
    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Clock = timer.now_ms,
        announce: Announcer | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._announce = announce
        self.snapshot = Snapshot()
        self.ready = False

    # ---- lifecycle ----

    async def init(self) -> None:
        """
        Open the store and load the first snapshot.

        Any failure here is fatal: the hub refuses to run on a half-working store.
        """
        try:
            await self._store.init()
            await self.refresh()
        except Exception as e:
            raise StorageInitError(f"could not initialize storage: {e}") from e
        self.ready = True
        logger.info(
            "TaskHub ready tasks=%d notes=%d ideas=%d",
            len(self.snapshot.tasks),
            len(self.snapshot.notes),
            len(self.snapshot.ideas),
        )

    async def refresh(self) -> Snapshot:
        self.snapshot = await load_snapshot(self._store, now=self._clock())
        return self.snapshot

    def now(self) -> int:
        return self._clock()

    def _notify(self, message: str, *, silent: bool) -> None:
        if silent:
            logger.debug("(silent) %s", message)
            return
        # The announcer prints it; keep INFO logs free of duplicates.
        logger.debug("%s", message)
        if self._announce is not None:
            self._announce(message)

    async def _put_task(self, task: Task) -> None:
        await self._store.put("tasks", task.to_record())

    # ---- timer ----

    def current_elapsed(self, task_id: str) -> int:
        return timer.current_elapsed(self.snapshot.find_task(task_id), self._clock())

    def active_elapsed(self) -> dict[str, int]:
        now = self._clock()
        return {t.id: timer.current_elapsed(t, now) for t in self.snapshot.active_tasks()}

    async def start_task(self, task_id: str, *, silent: bool = False) -> bool:
        task = self.snapshot.find_task(task_id)
        if task is None or task.status is TaskStatus.DONE:
            logger.debug("start ignored task_id=%s", task_id)
            return False

        others = wip.tasks_to_pause_for(self.snapshot.settings, self.snapshot.tasks, task_id)
        for other in others:
            await self.stop_task(other.id, silent=True)
        if others:
            task = self.snapshot.find_task(task_id)
            if task is None:
                return False

        started = timer.start(task, self._clock())
        if started is None:
            logger.debug("start no-op task_id=%s status=%s", task_id, task.status.value)
            return False

        await self._put_task(started)
        await self.refresh()
        self._notify("Task started", silent=silent)
        return True

    async def stop_task(self, task_id: str, *, silent: bool = False) -> bool:
        task = self.snapshot.find_task(task_id)
        if task is None:
            return False

        stopped = timer.stop(task, self._clock())
        if stopped is None:
            logger.debug("stop no-op task_id=%s status=%s", task_id, task.status.value)
            return False

        await self._put_task(stopped)
        await self.refresh()
        self._notify("Task stopped", silent=silent)
        return True

    async def complete_task(self, task_id: str, *, silent: bool = False) -> bool:
        task = self.snapshot.find_task(task_id)
        if task is None or task.status is TaskStatus.DONE:
            return False

        if self.snapshot.settings.auto_stop_on_complete and task.status is TaskStatus.ACTIVE:
            await self.stop_task(task_id, silent=True)
            task = self.snapshot.find_task(task_id) or task

        completed = timer.complete(task, self._clock())
        if completed is None:
            return False

        await self._put_task(completed)
        await self.refresh()
        self._notify("Task completed", silent=silent)
        return True

    async def delete_task(self, task_id: str, *, silent: bool = False) -> bool:
        task = self.snapshot.find_task(task_id)
        if task is not None and task.status is TaskStatus.ACTIVE:
            await self.stop_task(task_id, silent=True)

        await self._store.delete("tasks", task_id)
        for note in links.notes_without_task(task_id, self.snapshot.notes, self._clock()):
            await self._store.put("notes", note.to_record())

        await self.refresh()
        self._notify("Task deleted", silent=silent)
        return task is not None

    # ---- CRUD ----

    async def save_task(
        self,
        fields: Mapping[str, Any],
        task_id: str | None = None,
        *,
        silent: bool = False,
    ) -> Task:
        """
        Create or update a task from user input.

        `fields` uses record keys (title, description, tags, taskLink, ...) plus an
        optional `estimate` text ("1:30", "2h", "45"). Keys not given keep their
        current value; timer state is never taken from input.
        """
        now = self._clock()
        existing = self.snapshot.find_task(task_id) if task_id else None

        raw: dict[str, Any] = (
            existing.to_record()
            if existing
            else {"id": new_id(), "createdAt": now, "status": TaskStatus.TODO.value}
        )
        for key, value in fields.items():
            if key in TIMER_FIELDS or key == "estimate":
                continue
            raw[key] = value
        if "estimate" in fields:
            raw["estimateMs"] = parse_estimate(fields["estimate"])

        task = normalize_task(raw, now=now)
        await self._put_task(task)
        await self.refresh()
        self._notify("Task updated" if existing else "Task added", silent=silent)
        return task

    async def save_note(
        self,
        fields: Mapping[str, Any],
        note_id: str | None = None,
        *,
        silent: bool = False,
    ) -> Note:
        now = self._clock()
        existing = self.snapshot.find_note(note_id) if note_id else None

        raw: dict[str, Any] = existing.to_record() if existing else {"id": new_id(), "createdAt": now}
        raw.update({k: v for k, v in fields.items() if k not in NOTE_PROTECTED_FIELDS})
        raw["updatedAt"] = now

        note = normalize_note(raw, now=now)
        await self._store.put("notes", note.to_record())
        for task in links.backlink_updates(note, self.snapshot.tasks):
            await self._put_task(task)

        await self.refresh()
        self._notify("Note updated" if existing else "Note added", silent=silent)
        return note

    async def delete_note(self, note_id: str, *, silent: bool = False) -> bool:
        existed = self.snapshot.find_note(note_id) is not None
        await self._store.delete("notes", note_id)
        for task in links.tasks_without_note(note_id, self.snapshot.tasks):
            await self._put_task(task)

        await self.refresh()
        self._notify("Note deleted", silent=silent)
        return existed

    async def save_idea(
        self,
        fields: Mapping[str, Any],
        idea_id: str | None = None,
        *,
        silent: bool = False,
    ) -> Idea:
        now = self._clock()
        existing = self.snapshot.find_idea(idea_id) if idea_id else None

        raw: dict[str, Any] = existing.to_record() if existing else {"id": new_id(), "createdAt": now}
        raw.update({k: v for k, v in fields.items() if k not in IDEA_PROTECTED_FIELDS})
        raw["updatedAt"] = now

        idea = normalize_idea(raw, now=now)
        await self._store.put("ideas", idea.to_record())
        await self.refresh()
        self._notify("Idea updated" if existing else "Idea added", silent=silent)
        return idea

    async def delete_idea(self, idea_id: str, *, silent: bool = False) -> bool:
        existed = self.snapshot.find_idea(idea_id) is not None
        await self._store.delete("ideas", idea_id)
        await self.refresh()
        self._notify("Idea deleted", silent=silent)
        return existed

    # ---- settings / maintenance ----

    async def set_setting(self, name: str, value: bool, *, silent: bool = False) -> HubSettings:
        if name not in SETTING_KEYS:
            raise ValueError(f"unknown setting: {name!r}")

        updated = replace(self.snapshot.settings, **{name: bool(value)})
        await self._store.put_settings(updated.to_record())
        await self.refresh()

        label = SETTING_LABELS[name]
        if name == "one_active_task":
            self._notify(f"{label} {'enabled' if value else 'disabled'}", silent=silent)
        else:
            self._notify(f"{label}: {'On' if value else 'Off'}", silent=silent)
        return self.snapshot.settings

    async def reset_all(self, *, silent: bool = False) -> None:
        """Delete every task, note and idea. Settings are kept."""
        for collection in ("tasks", "notes", "ideas"):
            await self._store.clear(collection)
        await self.refresh()
        self._notify("All data reset", silent=silent)

    async def repair_links(self, *, silent: bool = False) -> int:
        """Recompute task.note_ids from the notes' links; returns how many tasks changed."""
        changed = links.rebuild_backlinks(self.snapshot.tasks, self.snapshot.notes)
        for task in changed:
            await self._put_task(task)
        await self.refresh()
        self._notify(f"Links repaired ({len(changed)} tasks updated)", silent=silent)
        return len(changed)

    # ---- export / import ----

    def export_data(self) -> dict[str, Any]:
        return build_export(self.snapshot, now=self._clock())

    def export_json(self) -> str:
        return dump_export(self.export_data())

    async def import_json(self, text: str | bytes, *, silent: bool = False) -> bool:
        """
        Replace every collection with the content of an export document.

        An unparseable document changes nothing and returns False.
        """
        try:
            bundle = parse_import(text, current=self.snapshot.settings, now=self._clock())
        except ImportDocumentError as e:
            logger.warning("Import rejected: %s", e)
            self._notify("Import failed: invalid JSON", silent=silent)
            return False

        await self._store.replace_all(
            tasks=[t.to_record() for t in bundle.tasks],
            notes=[n.to_record() for n in bundle.notes],
            ideas=[i.to_record() for i in bundle.ideas],
            settings=bundle.settings.to_record(),
        )
        await self.refresh()
        self._notify("Import complete", silent=silent)
        return True

# src/dev_task_hub/hub/transfer.py

"""
Export / import document framing.

    {
      "version": 1,
      "exportedAt": <epoch ms>,
      "settings": {"oneActiveTask": true, "autoStopOnComplete": true},
      "tasks": [...], "notes": [...], "ideas": [...]
    }

Import is all-or-nothing: parse_import() either returns a fully normalized
bundle or raises ImportDocumentError before anything is written.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..core.ports import Record
from .errors import ImportDocumentError
from .models import HubSettings, Idea, Note, Task
from .normalize import normalize_idea, normalize_note, normalize_settings, normalize_task
from .snapshot import Snapshot

EXPORT_VERSION = 1


@dataclass(frozen=True, slots=True)
class ImportBundle:
    tasks: tuple[Task, ...]
    notes: tuple[Note, ...]
    ideas: tuple[Idea, ...]
    settings: HubSettings


def build_export(snapshot: Snapshot, *, now: int) -> dict[str, Any]:
    return {
        "version": EXPORT_VERSION,
        "exportedAt": now,
        "settings": snapshot.settings.to_record(),
        "tasks": [t.to_record() for t in snapshot.tasks],
        "notes": [n.to_record() for n in snapshot.notes],
        "ideas": [i.to_record() for i in snapshot.ideas],
    }


def dump_export(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


def export_filename(now: int) -> str:
    day = datetime.fromtimestamp(now / 1000).strftime("%Y-%m-%d")
    return f"dev-task-hub-export-{day}.json"


def _records(data: dict[str, Any], key: str) -> list[Record]:
    val = data.get(key)
    return list(val) if isinstance(val, list) else []


def parse_import(text: str | bytes, *, current: HubSettings, now: int) -> ImportBundle:
    """
    Parse and normalize an import document.

    Missing or malformed sections become empty lists; a missing or malformed
    settings object keeps the current settings.
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        # JSONDecodeError, UnicodeDecodeError and oversized integer literals.
        raise ImportDocumentError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ImportDocumentError("import document must be a JSON object")

    return ImportBundle(
        tasks=tuple(normalize_task(r, now=now) for r in _records(data, "tasks")),
        notes=tuple(normalize_note(r, now=now) for r in _records(data, "notes")),
        ideas=tuple(normalize_idea(r, now=now) for r in _records(data, "ideas")),
        settings=normalize_settings(data.get("settings"), fallback=current),
    )

# src/dev_task_hub/hub/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """
    Task timer status.

    todo -> active <-> paused -> done (terminal)
    """

    TODO = "todo"
    ACTIVE = "active"
    PAUSED = "paused"
    DONE = "done"

    @classmethod
    def from_raw(cls, raw: Any) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.TODO


class IdeaStatus(StrEnum):
    SEED = "seed"
    RESEARCHING = "researching"
    BUILDING = "building"
    SHIPPED = "shipped"

    @classmethod
    def from_raw(cls, raw: Any) -> IdeaStatus:
        # Stored ideas keep whatever status string they came with; display maps unknowns to seed.
        try:
            return cls(str(raw or "").strip().lower())
        except ValueError:
            return cls.SEED


@dataclass(frozen=True, slots=True)
class Session:
    start: int
    end: int | None = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def duration_ms(self) -> int:
        if self.end is None:
            return 0
        return max(0, self.end - self.start)

    def to_record(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    status: TaskStatus
    created_at: int

    description: str = ""
    category: str = ""
    subcategory: str = ""
    tags: tuple[str, ...] = ()
    task_link: str = ""
    repo_link: str = ""
    estimate_ms: int | None = None

    completed_at: int | None = None
    active_since: int | None = None
    elapsed_ms: int = 0
    sessions: tuple[Session, ...] = ()
    note_ids: tuple[str, ...] = ()

    @property
    def is_active(self) -> bool:
        return self.status is TaskStatus.ACTIVE

    @property
    def is_done(self) -> bool:
        return self.status is TaskStatus.DONE

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "subcategory": self.subcategory,
            "tags": list(self.tags),
            "taskLink": self.task_link,
            "repoLink": self.repo_link,
            "estimateMs": self.estimate_ms,
            "createdAt": self.created_at,
            "completedAt": self.completed_at,
            "status": self.status.value,
            "activeSince": self.active_since,
            "elapsedMs": self.elapsed_ms,
            "sessions": [s.to_record() for s in self.sessions],
            "noteIds": list(self.note_ids),
        }


@dataclass(frozen=True, slots=True)
class Note:
    id: str
    title: str
    created_at: int
    updated_at: int

    body: str = ""
    category: str = ""
    subcategory: str = ""
    tags: tuple[str, ...] = ()
    linked_task_ids: tuple[str, ...] = ()

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "category": self.category,
            "subcategory": self.subcategory,
            "tags": list(self.tags),
            "linkedTaskIds": list(self.linked_task_ids),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True, slots=True)
class Idea:
    id: str
    title: str
    created_at: int
    updated_at: int

    problem: str = ""
    approach: str = ""
    next_step: str = ""
    status: str = IdeaStatus.SEED.value
    tags: tuple[str, ...] = ()
    links: tuple[str, ...] = ()

    @property
    def display_status(self) -> IdeaStatus:
        return IdeaStatus.from_raw(self.status)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "problem": self.problem,
            "approach": self.approach,
            "nextStep": self.next_step,
            "status": self.status,
            "tags": list(self.tags),
            "links": list(self.links),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


# HubSettings field name -> record key.
SETTING_KEYS = {
    "one_active_task": "oneActiveTask",
    "auto_stop_on_complete": "autoStopOnComplete",
}


@dataclass(frozen=True, slots=True)
class HubSettings:
    one_active_task: bool = True
    auto_stop_on_complete: bool = True

    def to_record(self) -> dict[str, Any]:
        return {key: bool(getattr(self, name)) for name, key in SETTING_KEYS.items()}

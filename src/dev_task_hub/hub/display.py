# src/dev_task_hub/hub/display.py

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import TypeVar

from .models import Idea, Note, Task, TaskStatus
from .timer import current_elapsed

T = TypeVar("T", Task, Note, Idea)

# Elapsed/estimate ratio where "approaching" starts.
APPROACHING_RATIO = 0.8


def fmt_hms(ms: int) -> str:
    """1:05 for 65 seconds, 1:00:05 past the hour."""
    s = max(0, int(ms)) // 1000
    hh, rem = divmod(s, 3600)
    mm, ss = divmod(rem, 60)
    if hh:
        return f"{hh}:{mm:02d}:{ss:02d}"
    return f"{mm}:{ss:02d}"


def fmt_estimate(ms: int | None) -> str:
    """Render an estimate so that parse_estimate() reads it back to the same minute."""
    if not ms:
        return ""
    s = int(ms) // 1000
    hh, rem = divmod(s, 3600)
    mm = rem // 60
    if hh > 0:
        return f"{hh}:{mm:02d}:00"
    return f"{mm}m"


def fmt_date(ts: int | None) -> str:
    if not ts:
        return "-"
    try:
        return datetime.fromtimestamp(ts / 1000).astimezone().strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return "-"


def estimate_indicator(elapsed_ms: int, estimate_ms: int | None) -> str | None:
    """under / approaching / over, or None when there is no estimate."""
    if not estimate_ms:
        return None
    ratio = elapsed_ms / estimate_ms
    if ratio < APPROACHING_RATIO:
        return "under"
    if ratio >= 1.0:
        return "over"
    return "approaching"


def is_over_estimate(elapsed_ms: int, estimate_ms: int | None) -> bool:
    if not estimate_ms:
        return False
    return elapsed_ms > estimate_ms


def _rank(task: Task) -> int:
    if task.status is TaskStatus.ACTIVE:
        return 0
    if task.status is TaskStatus.DONE:
        return 2
    return 1


def sort_tasks(tasks: Iterable[Task], mode: str = "smart", *, now: int = 0) -> list[Task]:
    """
    smart       active first, done last, newest first inside each group
    created     newest first
    oldest      oldest first
    time        most tracked time first
    """
    items = list(tasks)
    if mode == "created":
        return sorted(items, key=lambda t: -t.created_at)
    if mode == "oldest":
        return sorted(items, key=lambda t: t.created_at)
    if mode == "time":
        return sorted(items, key=lambda t: -current_elapsed(t, now))
    return sorted(items, key=lambda t: (_rank(t), -t.created_at))


def by_updated_desc(items: Iterable[T]) -> list[T]:
    return sorted(items, key=lambda x: -getattr(x, "updated_at", 0))


def _haystack(obj: Task | Note | Idea) -> str:
    parts: list[str] = [obj.title]
    if isinstance(obj, Task):
        parts += [obj.description, obj.category, obj.subcategory, obj.task_link, obj.repo_link]
    elif isinstance(obj, Note):
        parts += [obj.body, obj.category, obj.subcategory]
    else:
        parts += [obj.problem, obj.approach, obj.next_step, *obj.links]
    parts += list(obj.tags)
    return " ".join(p for p in parts if p).lower()


def matches_query(obj: Task | Note | Idea, query: str) -> bool:
    q = (query or "").strip().lower()
    if not q:
        return True
    return q in _haystack(obj)


def filter_by_query(items: Sequence[T], query: str) -> list[T]:
    return [i for i in items if matches_query(i, query)]

# src/dev_task_hub/hub/normalize.py

"""
Entity normalizer.

Total, failure-free coercion of arbitrary input (storage rows, console input,
imported documents) into well-formed Task / Note / Idea / HubSettings values.

Rules:
- missing fields take defaults,
- oversized text is truncated (never rejected),
- malformed numbers fall back to None / 0,
- list fields are rebuilt from a comma-separated string when the list form is absent.

Normalizing an already-normalized record returns an equal entity.
"""

from __future__ import annotations

import math
import re
import uuid
from collections.abc import Mapping
from typing import Any

from .models import SETTING_KEYS, HubSettings, Idea, IdeaStatus, Note, Session, Task, TaskStatus

TITLE_MAX = 140
DESCRIPTION_MAX = 6000
CATEGORY_MAX = 80
LINK_MAX = 500
BODY_MAX = 12000
NEXT_STEP_MAX = 220
IDEA_STATUS_MAX = 40
TAG_MAX = 80

TAGS_LIMIT = 30
SESSIONS_LIMIT = 500
NOTE_IDS_LIMIT = 200
LINKED_TASKS_LIMIT = 200
LINKS_LIMIT = 60

_TAGS_INPUT_MAX = 600
_IDS_INPUT_MAX = 400
_LINKS_INPUT_MAX = 600
_ESTIMATE_INPUT_MAX = 40

# Largest integer a JSON reader keeps exact; also fits a SQLite INTEGER.
MAX_MS = 2**53 - 1

_CLOCK_RE = re.compile(r"^(\d+):(\d+)(?::(\d+))?$")
_UNIT_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([hm])$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^(\d+(?:\.\d+)?)$")


def new_id() -> str:
    return str(uuid.uuid4())


def clamp_str(value: Any, max_len: int) -> str:
    """Text field coercion: strings are truncated, numbers stringified, anything else is ''."""
    if isinstance(value, str):
        return value[:max_len]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return str(value)[:max_len]
        except ValueError:
            # int too long to render as text
            return ""
    return ""


def _in_range(ms: int | float) -> int | None:
    if isinstance(ms, float) and not math.isfinite(ms):
        return None
    if abs(ms) > MAX_MS:
        return None
    return round(ms)


def _as_ms(value: Any) -> int | None:
    """Integer milliseconds, or None for non-numbers and values outside +-MAX_MS."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _in_range(value)
    return None


def _split_csv(text: str) -> list[str]:
    return [part.strip() for part in text.split(",") if part.strip()]


def _clean_list(value: Any, *, limit: int, input_max: int, item_max: int) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        items = [clamp_str(v, item_max).strip() for v in value]
    elif isinstance(value, str):
        items = _split_csv(clamp_str(value, input_max))
    else:
        items = []

    out: list[str] = []
    seen: set[str] = set()
    for item in items:
        item = item[:item_max]
        if not item or item in seen:
            continue
        seen.add(item)
        out.append(item)
        if len(out) >= limit:
            break
    return tuple(out)


def parse_tags(value: Any) -> tuple[str, ...]:
    return _clean_list(value, limit=TAGS_LIMIT, input_max=_TAGS_INPUT_MAX, item_max=TAG_MAX)


def parse_id_list(value: Any, *, limit: int) -> tuple[str, ...]:
    return _clean_list(value, limit=limit, input_max=_IDS_INPUT_MAX, item_max=LINK_MAX)


def parse_estimate(text: Any) -> int | None:
    """
    Parse a duration estimate into milliseconds.

    Accepted:
      "H:MM:SS" / "MM:SS"  ->  "1:30" is 90 seconds
      "2h", "1.5h", "45m"  ->  hours / minutes (fractional allowed)
      "30"                 ->  minutes
    Anything else yields None.
    """
    if not isinstance(text, str):
        return None
    s = text.strip()
    if not s or len(s) > _ESTIMATE_INPUT_MAX:
        return None

    m = _CLOCK_RE.match(s)
    if m:
        if m.group(3) is None:
            hh, mm, ss = 0, int(m.group(1)), int(m.group(2))
        else:
            hh, mm, ss = int(m.group(1)), int(m.group(2)), int(m.group(3))
        return _in_range((hh * 3600 + mm * 60 + ss) * 1000)

    m = _UNIT_RE.match(s)
    if m:
        val = float(m.group(1))
        factor = 3_600_000 if m.group(2).lower() == "h" else 60_000
        return _in_range(val * factor)

    m = _NUMBER_RE.match(s)
    if m:
        return _in_range(float(m.group(1)) * 60_000)

    return None


def _estimate(value: Any) -> int | None:
    if isinstance(value, str):
        return parse_estimate(value)
    ms = _as_ms(value)
    if ms is None:
        return None
    return max(0, ms)


def _sessions(value: Any) -> tuple[Session, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    out: list[Session] = []
    for item in value:
        if isinstance(item, Session):
            out.append(item)
            continue
        if not isinstance(item, Mapping):
            continue
        start = _as_ms(item.get("start"))
        if start is None:
            continue
        out.append(Session(start=start, end=_as_ms(item.get("end"))))
    # Keep the most recent sessions when over the cap.
    return tuple(out[-SESSIONS_LIMIT:])


def _record(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else {}


def _id(raw: Mapping[str, Any]) -> str:
    rid = raw.get("id")
    if isinstance(rid, (int, float)) and not isinstance(rid, bool):
        rid = clamp_str(rid, LINK_MAX)
    if isinstance(rid, str) and rid.strip():
        return rid.strip()
    return new_id()


def _timestamp(value: Any, now: int) -> int:
    ms = _as_ms(value)
    return ms if ms is not None and ms > 0 else now


def normalize_task(raw: Any, *, now: int) -> Task:
    r = _record(raw)

    status = TaskStatus.from_raw(r.get("status"))
    active_since = _as_ms(r.get("activeSince"))
    if status is TaskStatus.ACTIVE and not active_since:
        # A running timer without a start instant cannot be resumed.
        status = TaskStatus.PAUSED
    if status is not TaskStatus.ACTIVE:
        active_since = None

    elapsed = _as_ms(r.get("elapsedMs"))
    completed_at = _as_ms(r.get("completedAt"))

    return Task(
        id=_id(r),
        title=clamp_str(r.get("title"), TITLE_MAX),
        description=clamp_str(r.get("description"), DESCRIPTION_MAX),
        category=clamp_str(r.get("category"), CATEGORY_MAX),
        subcategory=clamp_str(r.get("subcategory"), CATEGORY_MAX),
        tags=parse_tags(r.get("tags")),
        task_link=clamp_str(r.get("taskLink"), LINK_MAX),
        repo_link=clamp_str(r.get("repoLink"), LINK_MAX),
        estimate_ms=_estimate(r.get("estimateMs")),
        created_at=_timestamp(r.get("createdAt"), now),
        completed_at=completed_at if completed_at else None,
        status=status,
        active_since=active_since,
        elapsed_ms=max(0, elapsed) if elapsed is not None else 0,
        sessions=_sessions(r.get("sessions")),
        note_ids=parse_id_list(r.get("noteIds"), limit=NOTE_IDS_LIMIT),
    )


def normalize_note(raw: Any, *, now: int) -> Note:
    r = _record(raw)
    return Note(
        id=_id(r),
        title=clamp_str(r.get("title"), TITLE_MAX),
        body=clamp_str(r.get("body"), BODY_MAX),
        category=clamp_str(r.get("category"), CATEGORY_MAX),
        subcategory=clamp_str(r.get("subcategory"), CATEGORY_MAX),
        tags=parse_tags(r.get("tags")),
        linked_task_ids=parse_id_list(r.get("linkedTaskIds"), limit=LINKED_TASKS_LIMIT),
        created_at=_timestamp(r.get("createdAt"), now),
        updated_at=_timestamp(r.get("updatedAt"), now),
    )


def normalize_idea(raw: Any, *, now: int) -> Idea:
    r = _record(raw)
    status = clamp_str(r.get("status"), IDEA_STATUS_MAX).strip() or IdeaStatus.SEED.value
    return Idea(
        id=_id(r),
        title=clamp_str(r.get("title"), TITLE_MAX),
        problem=clamp_str(r.get("problem"), DESCRIPTION_MAX),
        approach=clamp_str(r.get("approach"), DESCRIPTION_MAX),
        next_step=clamp_str(r.get("nextStep"), NEXT_STEP_MAX),
        status=status,
        tags=parse_tags(r.get("tags")),
        links=_clean_list(
            r.get("links"), limit=LINKS_LIMIT, input_max=_LINKS_INPUT_MAX, item_max=LINK_MAX
        ),
        created_at=_timestamp(r.get("createdAt"), now),
        updated_at=_timestamp(r.get("updatedAt"), now),
    )


def normalize_settings(raw: Any, *, fallback: HubSettings | None = None) -> HubSettings:
    """Keys missing from `raw` keep the fallback value (defaults when no fallback is given)."""
    base = fallback or HubSettings()
    if not isinstance(raw, Mapping):
        return base
    values = {
        name: bool(raw[key]) if key in raw else getattr(base, name)
        for name, key in SETTING_KEYS.items()
    }
    return HubSettings(**values)

# src/dev_task_hub/hub/timer.py

"""
Task timer state machine.

    todo -> active <-> paused -> done

Pure transitions: each function takes a task and the current instant (epoch ms)
and returns the task after the transition, or None when the transition does not
apply (stopping a paused task, starting a done task, ...). Persistence and the
WIP policy live in the service layer.

elapsed_ms only ever holds closed sessions. The live term (now - active_since)
is computed on read and written only when a stop closes the session.
"""

from __future__ import annotations

import time
from dataclasses import replace

from .models import Session, Task, TaskStatus
from .normalize import SESSIONS_LIMIT


def now_ms() -> int:
    return int(time.time() * 1000)


def current_elapsed(task: Task | None, now: int) -> int:
    """Total tracked time at `now`, including the in-progress session."""
    if task is None:
        return 0
    ms = task.elapsed_ms or 0
    if task.status is TaskStatus.ACTIVE and task.active_since:
        ms += max(0, now - task.active_since)
    return ms


def can_start(task: Task) -> bool:
    return task.status not in (TaskStatus.DONE, TaskStatus.ACTIVE)


def can_stop(task: Task) -> bool:
    return task.status is TaskStatus.ACTIVE and task.active_since is not None


def can_complete(task: Task) -> bool:
    return task.status is not TaskStatus.DONE


def start(task: Task, now: int) -> Task | None:
    if not can_start(task):
        return None
    sessions = (*task.sessions, Session(start=now, end=None))
    return replace(
        task,
        status=TaskStatus.ACTIVE,
        active_since=now,
        sessions=sessions[-SESSIONS_LIMIT:],
    )


def _close_last_session(sessions: tuple[Session, ...], end: int) -> tuple[Session, ...]:
    if not sessions or not sessions[-1].is_open:
        return sessions
    return (*sessions[:-1], replace(sessions[-1], end=end))


def stop(task: Task, now: int) -> Task | None:
    if task.status is not TaskStatus.ACTIVE or task.active_since is None:
        return None
    return replace(
        task,
        status=TaskStatus.PAUSED,
        elapsed_ms=(task.elapsed_ms or 0) + max(0, now - task.active_since),
        active_since=None,
        sessions=_close_last_session(task.sessions, now),
    )


def complete(task: Task, now: int) -> Task | None:
    """
    Mark a task done.

    Does not stop a running timer by itself: callers that want the final session
    counted (auto-stop on complete) call stop() first.
    """
    if not can_complete(task):
        return None
    return replace(task, status=TaskStatus.DONE, completed_at=now, active_since=None)

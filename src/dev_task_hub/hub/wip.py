# src/dev_task_hub/hub/wip.py

"""
Work-in-progress policy: at most one active task while settings.one_active_task is on.

The service stops every task returned by tasks_to_pause() (silently, as leaf
stops) before activating the target. Toggling the setting never touches running
timers; the invariant is enforced on the next start.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import HubSettings, Task, TaskStatus


def tasks_to_pause(tasks: Iterable[Task], target_id: str) -> list[Task]:
    return [t for t in tasks if t.status is TaskStatus.ACTIVE and t.id != target_id]


def tasks_to_pause_for(settings: HubSettings, tasks: Iterable[Task], target_id: str) -> list[Task]:
    if not settings.one_active_task:
        return []
    return tasks_to_pause(tasks, target_id)

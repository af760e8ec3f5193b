# src/dev_task_hub/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..hub.service import TaskHub
from ..hub.store import SqliteRecordStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    store: SqliteRecordStore
    hub: TaskHub

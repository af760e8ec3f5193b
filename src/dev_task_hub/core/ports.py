# src/dev_task_hub/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The hub depends on Protocols instead of concrete implementations.
This keeps storage and the user-facing surface swappable and makes testing easier.
"""

from collections.abc import Callable
from typing import Any, Protocol

Record = dict[str, Any]
# JSON-ready entity record with camelCase keys, e.g. {"id": "...", "title": "...", "elapsedMs": 0}.

Clock = Callable[[], int]
# Current instant in epoch milliseconds.

Announcer = Callable[[str], None]
# User-facing notification sink ("Task started", "Import complete", ...).


class RecordStore(Protocol):
    """
    Durable store: key-addressed collections (tasks, notes, ideas) plus the
    singleton settings record.

    Every call either fully succeeds or raises; there are no partial writes
    within one call.
    """

    async def init(self) -> None: ...

    async def get_all(self, collection: str) -> list[Record]: ...
    async def put(self, collection: str, record: Record) -> None: ...
    async def delete(self, collection: str, record_id: str) -> None: ...
    async def clear(self, collection: str) -> None: ...

    async def get_settings(self) -> Record | None: ...
    async def put_settings(self, value: Record) -> None: ...

    async def replace_all(
            self,
            *,
            tasks: list[Record],
            notes: list[Record],
            ideas: list[Record],
            settings: Record,
    ) -> None: ...

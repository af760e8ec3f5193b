# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from dev_task_hub.core.state import AppState
from dev_task_hub.hub.service import TaskHub
from dev_task_hub.hub.store import SqliteRecordStore

from .fakes import Announcements, FakeClock, MemoryRecordStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="dev-task-hub-test",
        log_level="DEBUG",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        db_path=tmp_path / "hub.sqlite3",
        export_dir=tmp_path / "exports",
        # Timer
        tick_seconds=0.1,
        # Seeds
        default_one_active_task=True,
        default_auto_stop_on_complete=True,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def announcements() -> Announcements:
    return Announcements()


@pytest.fixture()
def memory_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest_asyncio.fixture()
async def hub(memory_store: MemoryRecordStore, clock: FakeClock, announcements: Announcements) -> TaskHub:
    """TaskHub over the in-memory store with a manual clock."""
    h = TaskHub(memory_store, clock=clock, announce=announcements)
    await h.init()
    return h


@pytest_asyncio.fixture()
async def state(settings: SimpleNamespace, clock: FakeClock, announcements: Announcements) -> AppState:
    """
    AppState wired like the CLI does it.

    NOTE: We keep the real SQLite store here because its correctness is part of
    what we want to test.
    """
    store = SqliteRecordStore(settings.db_path)
    h = TaskHub(store, clock=clock, announce=announcements)
    await h.init()
    return AppState(settings=settings, store=store, hub=h)

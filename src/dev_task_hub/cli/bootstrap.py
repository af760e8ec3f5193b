# src/dev_task_hub/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the SQLite store and the TaskHub into AppState,
- reads/writes export documents on disk.
"""

from __future__ import annotations

import contextlib
import logging
import os
from pathlib import Path

from ..config import get_settings
from ..core.ports import Announcer
from ..core.state import AppState
from ..hub.service import TaskHub
from ..hub.store import SqliteRecordStore
from ..hub.transfer import export_filename

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.export_dir.mkdir(parents=True, exist_ok=True)


async def create_initial_state(*, settings=None, announce: Announcer | None = None) -> AppState:
    """
    Create AppState from the provided settings and open the hub.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().

    Raises StorageInitError when the database cannot be opened; the caller must not continue.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = SqliteRecordStore(
        settings.db_path,
        default_settings={
            "oneActiveTask": bool(getattr(settings, "default_one_active_task", True)),
            "autoStopOnComplete": bool(getattr(settings, "default_auto_stop_on_complete", True)),
        },
    )
    hub = TaskHub(store, announce=announce)
    await hub.init()

    return AppState(settings=settings, store=store, hub=hub)


def save_export(state: AppState, path: str | Path | None = None) -> Path:
    """
    Write the current snapshot as an export document.

    A directory (or None, meaning the configured export dir) gets the dated default file name.
    """
    if path is None:
        path = Path(getattr(state.settings, "export_dir", "."))
    path = Path(path).expanduser()
    if path.is_dir() or path.suffix == "":
        path = path / export_filename(state.hub.now())

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(state.hub.export_json(), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        # Best-effort: exports contain personal notes, keep the file private on disk.
        os.chmod(path, 0o600)
    logger.info("Exported snapshot to %s", path)
    return path


def read_import(path: str | Path) -> str:
    return Path(path).expanduser().read_text("utf-8")

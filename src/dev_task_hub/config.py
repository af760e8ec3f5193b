# src/dev_task_hub/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every value has a default.
- Hub settings (WIP limit, auto-stop) live in the database; the values here only
  seed a fresh database.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .hub.ticker import MIN_TICK_SECONDS

ENV_PREFIX = "DTH"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    export_dir: Path

    # ---- Timer ----
    tick_seconds: float

    # ---- Seed values for the hub settings record ----
    default_one_active_task: bool
    default_auto_stop_on_complete: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "dev-task-hub")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/dev-task-hub"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "hub.sqlite3")
        export_dir = _env_path(_k("EXPORT_DIR"), data_dir / "exports")

        tick_seconds = max(MIN_TICK_SECONDS, _env_float(_k("TICK_SECONDS"), 1.0))

        default_one_active_task = _env_bool(_k("ONE_ACTIVE_TASK"), True)
        default_auto_stop_on_complete = _env_bool(_k("AUTO_STOP_ON_COMPLETE"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            export_dir=export_dir,
            tick_seconds=tick_seconds,
            default_one_active_task=default_one_active_task,
            default_auto_stop_on_complete=default_auto_stop_on_complete,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS

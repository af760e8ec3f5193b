# src/dev_task_hub/cli/main.py

"""
CLI entrypoint.

Initializes logging, opens the hub (SQLite store + snapshot), then runs the
console REPL until /exit, EOF or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import print_ts, run_console_loop
from ..hub.errors import StorageInitError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(settings) -> int:
    try:
        state = await create_initial_state(settings=settings, announce=print_ts)
    except StorageInitError:
        logger.exception("Storage initialization failed (db=%s).", settings.db_path)
        print("Could not initialize storage.", file=sys.stderr)
        return 1

    await run_console_loop(state)
    return 0


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/dev-task-hub")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "dev-task-hub"))

    code = 0
    try:
        code = asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        logger.info("Bye.")

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()

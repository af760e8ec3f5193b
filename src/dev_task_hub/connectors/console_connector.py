# src/dev_task_hub/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except OSError:
        print(line)


def print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (db=%s).", state.store.db_path)
    print_ts("[CONSOLE] Use /help for commands, /tasks to list tasks. Use /exit to quit.\n")

    app_name = str(getattr(getattr(state, "settings", None), "app_name", "dev-task-hub"))

    while True:
        try:
            # input() blocks; keep the event loop free.
            user_input = (await asyncio.to_thread(input, f"{app_name}> ")).strip()
            _rewrite_prev_line(f"[{_ts_local()}] {app_name}> {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            print_ts(f"Not a command. To add a task: /add {user_input}")
            continue

        try:
            cmd_response = await command_registry.handle(state, user_input, emit=print_ts)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            print_ts(cmd_response)

    logger.info("Console connector finished.")

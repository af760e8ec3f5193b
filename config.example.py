# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Tasks, notes and ideas live in the SQLite database under DTH_DATA_DIR, which is gitignored.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "DTH_APP_NAME": "App display name, also used as the console prompt (default: dev-task-hub).",
    "DTH_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "DTH_DATA_DIR": "Local data directory (default: .local/dev-task-hub).",
    "DTH_DB_PATH": "SQLite database path (default: <data_dir>/hub.sqlite3).",
    "DTH_EXPORT_DIR": "Default directory for /export (default: <data_dir>/exports).",
    # Timer
    "DTH_TICK_SECONDS": "Refresh interval of /watch in seconds (default: 1.0, minimum 0.1).",
    # Seed values for a fresh database (later changes go through /wip and /autostop)
    "DTH_ONE_ACTIVE_TASK": "Allow only one active task at a time (true/false, default: true).",
    "DTH_AUTO_STOP_ON_COMPLETE": "Stop the timer when completing a task (true/false, default: true).",
}

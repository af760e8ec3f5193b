"""dev-task-hub: local task timers, notes and idea backlog."""

__version__ = "0.1.0"

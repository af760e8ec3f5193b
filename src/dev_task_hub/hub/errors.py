# src/dev_task_hub/hub/errors.py

from __future__ import annotations


class HubError(Exception):
    """Base class for dev-task-hub errors."""


class StorageInitError(HubError):
    """The durable store could not be opened or seeded; the hub must not run."""


class ImportDocumentError(HubError):
    """An import document could not be parsed. Nothing has been written."""

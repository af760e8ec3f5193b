# src/dev_task_hub/hub/ticker.py

from __future__ import annotations

"""
Elapsed-time ticker.

A small read-only loop that, every interval:
- takes the current snapshot,
- recomputes current_elapsed() for each active task,
- hands {task_id: elapsed_ms} to a callback.

It never touches storage and exits as soon as no task is active;
ensure_running() starts it again after a task is started.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable

from ..core.ports import Clock
from .snapshot import Snapshot
from .timer import current_elapsed, now_ms

logger = logging.getLogger(__name__)

TickCallback = Callable[[dict[str, int]], None]

MIN_TICK_SECONDS = 0.1


def elapsed_for_active(snapshot: Snapshot, now: int) -> dict[str, int]:
    return {t.id: current_elapsed(t, now) for t in snapshot.active_tasks()}


class ElapsedTicker:
    def __init__(
        self,
        snapshot_source: Callable[[], Snapshot],
        on_tick: TickCallback,
        *,
        interval_seconds: float = 1.0,
        clock: Clock = now_ms,
    ) -> None:
        self._source = snapshot_source
        self._on_tick = on_tick
        self._interval = max(MIN_TICK_SECONDS, float(interval_seconds))
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> bool:
        """Run one evaluation; False when there is nothing active to show."""
        elapsed = elapsed_for_active(self._source(), self._clock())
        if not elapsed:
            return False
        self.ticks += 1
        self._on_tick(elapsed)
        return True

    def ensure_running(self) -> bool:
        """Start the loop if some task is active and the loop is not already running."""
        if self.running:
            return True
        if not self._source().has_active():
            return False
        self._task = asyncio.create_task(self._run(), name="elapsed-ticker")
        return True

    async def _run(self) -> None:
        logger.debug("Ticker started interval=%.2fs", self._interval)
        while True:
            await asyncio.sleep(self._interval)
            try:
                if not self.tick():
                    break
            except Exception:
                logger.exception("Ticker callback failed")
        logger.debug("Ticker stopped (no active tasks)")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

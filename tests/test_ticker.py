# tests/test_ticker.py

from __future__ import annotations

import asyncio

import pytest

from dev_task_hub.config import Settings
from dev_task_hub.hub.service import TaskHub
from dev_task_hub.hub.ticker import MIN_TICK_SECONDS, ElapsedTicker

from .fakes import FakeClock


@pytest.mark.asyncio
async def test_ticker_does_not_start_without_active_tasks(hub: TaskHub, clock: FakeClock) -> None:
    seen: list[dict[str, int]] = []
    ticker = ElapsedTicker(lambda: hub.snapshot, seen.append, interval_seconds=MIN_TICK_SECONDS, clock=clock)

    assert ticker.tick() is False
    assert ticker.ensure_running() is False
    assert not ticker.running
    assert seen == []


@pytest.mark.asyncio
async def test_ticker_reports_live_elapsed_and_stops_itself(hub: TaskHub, clock: FakeClock) -> None:
    task = await hub.save_task({"title": "x"})
    await hub.start_task(task.id)

    seen: list[dict[str, int]] = []

    def on_tick(elapsed: dict[str, int]) -> None:
        seen.append(elapsed)
        clock.advance(1000)

    ticker = ElapsedTicker(lambda: hub.snapshot, on_tick, interval_seconds=MIN_TICK_SECONDS, clock=clock)
    assert ticker.ensure_running() is True
    assert ticker.running

    for _ in range(300):
        if len(seen) >= 3:
            break
        await asyncio.sleep(0.01)
    assert [s[task.id] for s in seen[:3]] == [0, 1000, 2000]

    # Ticking is read-only: storage still holds only closed sessions.
    assert hub.snapshot.find_task(task.id).elapsed_ms == 0

    await hub.stop_task(task.id)
    for _ in range(300):
        if not ticker.running:
            break
        await asyncio.sleep(0.01)
    assert not ticker.running
    await ticker.stop()


@pytest.mark.asyncio
async def test_ticker_survives_callback_errors(hub: TaskHub, clock: FakeClock) -> None:
    task = await hub.save_task({"title": "x"})
    await hub.start_task(task.id)
    calls = {"n": 0}

    def on_tick(elapsed: dict[str, int]) -> None:
        calls["n"] += 1
        raise RuntimeError("render failed")

    ticker = ElapsedTicker(lambda: hub.snapshot, on_tick, interval_seconds=MIN_TICK_SECONDS, clock=clock)
    ticker.ensure_running()
    for _ in range(300):
        if calls["n"] >= 2:
            break
        await asyncio.sleep(0.01)

    assert calls["n"] >= 2
    assert ticker.running
    await ticker.stop()
    assert not ticker.running


def test_tick_interval_has_one_floor(monkeypatch) -> None:
    monkeypatch.setenv("DTH_TICK_SECONDS", "0.01")
    assert Settings.from_env().tick_seconds == MIN_TICK_SECONDS

    ticker = ElapsedTicker(lambda: None, lambda _: None, interval_seconds=0.01)
    assert ticker._interval == MIN_TICK_SECONDS

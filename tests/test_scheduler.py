"""Tests for the periodic collection scheduler."""

import asyncio

import pytest

from mindful_pulse.scheduler.service import CollectionScheduler


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(controller, store, clock) -> CollectionScheduler:
    return CollectionScheduler(controller, store, interval_seconds=60, clock=clock)


@pytest.mark.asyncio
async def test_cycle_while_disabled_does_nothing(scheduler, backend):
    outcome = await scheduler.run_once()

    assert outcome == {"consistent": True, "collected": False, "synced": False}
    assert sum(backend.calls.values()) == 0
    assert scheduler.stats["total_runs"] == 1


@pytest.mark.asyncio
async def test_cycle_reconciles_collects_and_syncs(scheduler, controller, store, backend):
    backend.fail.add("start")
    store.enable_collection()
    await controller.drain()
    backend.fail.clear()

    outcome = await scheduler.run_once()

    assert outcome == {"consistent": True, "collected": True, "synced": True}
    assert controller.state.is_collecting is True
    sensor, emotion = backend.uploads[0]
    assert len(sensor) == 1 and len(emotion) == 1


@pytest.mark.asyncio
async def test_hourly_sync_cadence(scheduler, controller, clock, backend):
    await controller.toggle_collection()

    await scheduler.run_once()
    clock.now = 600
    await scheduler.run_once()
    assert backend.calls["upload"] == 1

    clock.now = 3600
    await scheduler.run_once()
    assert backend.calls["upload"] == 2
    assert scheduler.stats["collections"] == 3


@pytest.mark.asyncio
async def test_realtime_syncs_every_cycle(scheduler, controller, store, clock, backend):
    store.update_preference("syncFrequency", "realtime")
    await controller.toggle_collection()

    for _ in range(3):
        await scheduler.run_once()
    assert backend.calls["upload"] == 3


@pytest.mark.asyncio
async def test_daily_sync_waits_a_day(scheduler, controller, store, clock, backend):
    store.update_preference("syncFrequency", "daily")
    await controller.toggle_collection()

    await scheduler.run_once()
    clock.now = 3600 * 5
    await scheduler.run_once()
    assert backend.calls["upload"] == 1

    clock.now = 86400
    await scheduler.run_once()
    assert backend.calls["upload"] == 2


@pytest.mark.asyncio
async def test_failed_sync_is_retried_next_cycle(scheduler, controller, clock, backend):
    await controller.toggle_collection()
    backend.fail.add("upload")
    await scheduler.run_once()
    assert scheduler.stats["sync_failures"] == 1

    backend.fail.clear()
    clock.now = 60
    outcome = await scheduler.run_once()
    assert outcome["synced"] is True


@pytest.mark.asyncio
async def test_background_loop_runs_and_stops(controller, store):
    scheduler = CollectionScheduler(controller, store, interval_seconds=0.01)
    await scheduler.start()
    assert scheduler.is_running is True
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert scheduler.is_running is False
    assert scheduler.stats["total_runs"] >= 1

"""Scheduler service — periodic collection cycles in the background.

Architecture
~~~~~~~~~~~~
The ``CollectionScheduler`` runs as a background component within the
FastAPI lifespan.  Every ``scheduler_interval_seconds`` it:

1. Runs a reconciliation pass so activity follows intent.
2. Collects one sensor + emotion sample if collection is active.
3. Syncs buffered samples when the user's ``sync_frequency`` says a sync
   is due (``realtime``: every cycle, ``hourly`` / ``daily``: once the
   interval has elapsed since the last successful sync).

Errors inside a cycle are logged and never stop the loop.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

import structlog

from mindful_pulse.collection.controller import CollectionController
from mindful_pulse.config import get_settings
from mindful_pulse.models import SyncFrequency, utcnow
from mindful_pulse.state.settings_store import SettingsStore

logger = structlog.get_logger(__name__)

_SYNC_INTERVAL_SECONDS: dict[SyncFrequency, float] = {
    SyncFrequency.REALTIME: 0,
    SyncFrequency.HOURLY: 3600,
    SyncFrequency.DAILY: 86400,
}


class CollectionScheduler:
    """Background loop driving the collection controller.

    Integration::

        scheduler = CollectionScheduler(controller, store)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        controller: CollectionController,
        settings_store: SettingsStore,
        interval_seconds: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._controller = controller
        self._store = settings_store
        self._interval = interval_seconds or get_settings().scheduler_interval_seconds
        self._clock = clock
        self._running = False
        self._task: asyncio.Task | None = None
        self._last_sync: float | None = None

        self._stats: dict[str, Any] = {
            "last_run": None,
            "total_runs": 0,
            "collections": 0,
            "syncs": 0,
            "sync_failures": 0,
        }

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start the periodic collection loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("scheduler.started", interval_seconds=self._interval)

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("scheduler.stopped")

    @property
    def stats(self) -> dict[str, Any]:
        return dict(self._stats)

    @property
    def is_running(self) -> bool:
        return self._running

    # ── Main loop ─────────────────────────────────────────────

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except Exception:
                logger.exception("scheduler.run_error")

            await asyncio.sleep(self._interval)

    async def run_once(self) -> dict[str, Any]:
        """Run one reconcile / collect / sync cycle and report what happened."""
        self._stats["total_runs"] += 1
        self._stats["last_run"] = utcnow().isoformat()

        consistent = await self._controller.reconcile(reason="scheduler")
        status = self._controller.status()

        collected = False
        if status.is_collecting:
            collected = await self._controller.collect_data() is not None
            if collected:
                self._stats["collections"] += 1

        synced = False
        if status.is_enabled and self.sync_due():
            synced = await self._controller.sync_data()
            if synced:
                self._last_sync = self._clock()
                self._stats["syncs"] += 1
            else:
                self._stats["sync_failures"] += 1

        logger.debug(
            "scheduler.cycle_complete",
            consistent=consistent,
            collected=collected,
            synced=synced,
        )
        return {"consistent": consistent, "collected": collected, "synced": synced}

    def sync_due(self) -> bool:
        if self._last_sync is None:
            return True
        frequency = self._store.get_snapshot().preferences.sync_frequency
        return self._clock() - self._last_sync >= _SYNC_INTERVAL_SECONDS[frequency]

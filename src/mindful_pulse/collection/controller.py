"""Collection lifecycle controller — keeps activity in step with intent.

State machine
~~~~~~~~~~~~~
The controller drives the pair ``(collection_enabled, is_collecting)``
towards equality:

* **Disabled-Idle** ``(False, False)`` and **Enabled-Active** ``(True, True)``
  are stable.
* **Starting** / **Stopping** hold while a start / stop call is in flight.
  Success moves to the matching stable state.  Failure leaves
  ``is_collecting`` unchanged until the next reconciliation trigger.

Reconciliation passes are scheduled whenever the settings store reports an
intent change the controller did not make itself, and whenever the
controller changes ``is_collecting``.  After
``collection_max_reconcile_attempts`` consecutive failed passes automatic
reconciliation is suspended and reported through :meth:`status`; the next
intent change or successful direct start / stop resumes it.

No method here raises: every failure is a ``False`` / ``None`` result.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime

import structlog

from mindful_pulse.collection.service import CollectionService
from mindful_pulse.config import get_settings
from mindful_pulse.models import CollectionResult, CollectionStatus, SettingsRecord, utcnow
from mindful_pulse.state.settings_store import SettingsStore

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class RuntimeCollectionState:
    """Transient activity state; rebuilt from scratch on every process start."""

    is_collecting: bool = False
    last_collection_time: datetime | None = None


class CollectionController:
    """Single owner of :class:`RuntimeCollectionState` for one UI session.

    Integration::

        controller = CollectionController(store, service)
        controller.attach()
        await controller.toggle_collection()
        ...
        await controller.close()
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        service: CollectionService,
        *,
        max_reconcile_attempts: int | None = None,
    ) -> None:
        if max_reconcile_attempts is None:
            max_reconcile_attempts = get_settings().collection_max_reconcile_attempts
        self._store = settings_store
        self._service = service
        self._state = RuntimeCollectionState()
        self._max_attempts = max_reconcile_attempts
        self._failures = 0
        self._suspended = False
        self._lock = asyncio.Lock()
        self._own_change = False
        self._tasks: set[asyncio.Task[bool]] = set()
        self._unsubscribe = None

    # ── Wiring ────────────────────────────────────────────────

    def attach(self) -> None:
        """Subscribe to settings changes and reconcile the current intent."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._store.subscribe(self._on_settings_changed)
        self._schedule_reconcile("attach")

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.drain()

    async def drain(self) -> None:
        """Wait until no scheduled reconciliation pass is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Read-only state ───────────────────────────────────────

    @property
    def state(self) -> RuntimeCollectionState:
        return replace(self._state)

    def status(self) -> CollectionStatus:
        return CollectionStatus(
            is_enabled=self._store.collection_enabled,
            is_collecting=self._state.is_collecting,
            last_collection_time=self._state.last_collection_time,
            reconcile_failures=self._failures,
            reconcile_suspended=self._suspended,
        )

    # ── UI entry points ───────────────────────────────────────

    async def toggle_collection(self) -> CollectionStatus:
        """Flip intent, then start or stop to match it.

        Intent changes exactly once per call whatever the side effect does,
        so the toggle never sticks on a failing device.  A failed start or
        stop leaves ``is_collecting`` stale until the next reconciliation.
        """
        was_enabled = self._store.collection_enabled
        self._own_change = True
        try:
            self._store.toggle_collection_enabled()
        finally:
            self._own_change = False

        async with self._lock:
            ok = await (self._stop() if was_enabled else self._start())

        if not ok:
            logger.warning("collection.toggle_side_effect_failed", enabled=not was_enabled)
        return self.status()

    async def start_collection(self) -> bool:
        async with self._lock:
            ok = await self._start()
        if ok:
            self._resume()
        return ok

    async def stop_collection(self) -> bool:
        async with self._lock:
            ok = await self._stop()
        if ok:
            self._resume()
        return ok

    async def collect_data(self) -> CollectionResult | None:
        """Pull one sensor and one emotion sample concurrently.

        Returns ``None`` when neither channel produced a sample.
        """
        sensor, emotion = await asyncio.gather(
            self._service.collect_sensor_sample(),
            self._service.collect_emotion_sample(),
            return_exceptions=True,
        )
        if isinstance(sensor, BaseException):
            logger.error("collection.sensor_error", error=str(sensor))
            sensor = None
        if isinstance(emotion, BaseException):
            logger.error("collection.emotion_error", error=str(emotion))
            emotion = None

        if sensor is None and emotion is None:
            logger.debug("collection.cycle_empty")
            return None

        now = utcnow()
        self._state.last_collection_time = now
        return CollectionResult(sensor=sensor, emotion=emotion, timestamp=now)

    async def sync_data(self) -> bool:
        try:
            ok = await self._service.sync_to_remote()
        except Exception:
            logger.exception("collection.sync_error")
            return False
        if ok:
            logger.info("collection.sync_complete")
        return ok

    # ── Reconciliation ────────────────────────────────────────

    async def reconcile(self, *, force: bool = False, reason: str = "manual") -> bool:
        """Run one reconciliation pass now.

        ``force`` runs the pass even while automatic reconciliation is
        suspended.  Returns ``True`` if activity matches intent afterwards.
        """
        return await self._reconcile_pass(reason, force=force)

    async def _reconcile_pass(self, reason: str, *, force: bool = False) -> bool:
        async with self._lock:
            enabled = self._store.collection_enabled
            if enabled == self._state.is_collecting:
                return True
            if self._suspended and not force:
                logger.debug("collection.reconcile_skipped", reason=reason, suspended=True)
                return False

            logger.info(
                "collection.reconcile",
                reason=reason,
                enabled=enabled,
                is_collecting=self._state.is_collecting,
            )
            ok = await (self._start() if enabled else self._stop())
            if ok:
                self._failures = 0
                self._suspended = False
            else:
                self._failures += 1
                if self._max_attempts and self._failures >= self._max_attempts and not self._suspended:
                    self._suspended = True
                    logger.warning(
                        "collection.reconcile_suspended",
                        attempts=self._failures,
                        enabled=enabled,
                    )
            return self._store.collection_enabled == self._state.is_collecting

    def _on_settings_changed(self, current: SettingsRecord, previous: SettingsRecord) -> None:
        if current.collection_enabled == previous.collection_enabled:
            return
        self._resume()
        if self._own_change:
            return
        self._schedule_reconcile("settings_changed")

    def _schedule_reconcile(self, reason: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("collection.reconcile_deferred", reason=reason)
            return
        task = loop.create_task(self._reconcile_pass(reason))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _resume(self) -> None:
        self._failures = 0
        self._suspended = False

    # ── Service calls (caller holds the lock) ─────────────────

    async def _start(self) -> bool:
        try:
            ok = await self._service.start_collection()
        except Exception:
            logger.exception("collection.start_error")
            return False
        if ok:
            self._set_collecting(True)
        return ok

    async def _stop(self) -> bool:
        try:
            ok = await self._service.stop_collection()
        except Exception:
            logger.exception("collection.stop_error")
            return False
        if ok:
            self._set_collecting(False)
        return ok

    def _set_collecting(self, value: bool) -> None:
        changed = self._state.is_collecting != value
        self._state.is_collecting = value
        if value:
            self._state.last_collection_time = utcnow()
        if changed:
            logger.info("collection.activity_changed", is_collecting=value)
            self._schedule_reconcile("activity_changed")

"""Collection service — settings-gated start / stop / collect / sync.

Every operation reads the settings store's *current* intent at call time.
A disable that races with an in-flight cycle therefore makes the next call
a no-op; there is no cancellation.  Failures inside the backend are caught
here, logged, and reported as ``False`` / ``None``.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable, TypeVar

import structlog

from mindful_pulse.collection.backends import CollectionBackend, StubBackend
from mindful_pulse.config import get_settings
from mindful_pulse.models import EmotionSample, SensorSample
from mindful_pulse.state.settings_store import SettingsStore

logger = structlog.get_logger(__name__)

_SampleT = TypeVar("_SampleT", SensorSample, EmotionSample)


class CollectionService:
    """Façade over a :class:`CollectionBackend`, gated by the settings store.

    Start and stop are serialised and idempotent: a backend that is already
    running is not started again, and stopping a stopped backend succeeds
    without touching it.  Collected samples are buffered until the next
    successful :meth:`sync_to_remote`.
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        backend: CollectionBackend | None = None,
        *,
        buffer_limit: int | None = None,
    ) -> None:
        limit = buffer_limit or get_settings().collection_buffer_limit
        self._store = settings_store
        self._backend = backend or StubBackend()
        self._lifecycle_lock = asyncio.Lock()
        self._sync_lock = asyncio.Lock()
        self._running = False
        self._sensor_buffer: deque[SensorSample] = deque(maxlen=limit)
        self._emotion_buffer: deque[EmotionSample] = deque(maxlen=limit)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending_samples(self) -> dict[str, int]:
        return {"sensor": len(self._sensor_buffer), "emotion": len(self._emotion_buffer)}

    def is_collection_enabled(self) -> bool:
        return self._store.collection_enabled

    # ── Lifecycle ─────────────────────────────────────────────

    async def start_collection(self) -> bool:
        if not self.is_collection_enabled():
            logger.info("collection.start_skipped", reason="disabled")
            return False

        async with self._lifecycle_lock:
            if self._running:
                logger.debug("collection.already_running", backend=self._backend.name)
                return True
            try:
                await self._backend.start()
            except Exception:
                logger.exception("collection.start_failed", backend=self._backend.name)
                return False
            self._running = True

        logger.info("collection.started", backend=self._backend.name)
        return True

    async def stop_collection(self) -> bool:
        """Stop the backend.  Never gated: disabling must always take effect."""
        async with self._lifecycle_lock:
            if not self._running:
                logger.debug("collection.already_stopped", backend=self._backend.name)
                return True
            try:
                await self._backend.stop()
            except Exception:
                logger.exception("collection.stop_failed", backend=self._backend.name)
                return False
            self._running = False

        logger.info("collection.stopped", backend=self._backend.name)
        return True

    # ── Sampling ──────────────────────────────────────────────

    async def collect_sensor_sample(self) -> SensorSample | None:
        return await self._collect("sensor", self._backend.read_sensor, self._sensor_buffer)

    async def collect_emotion_sample(self) -> EmotionSample | None:
        return await self._collect("emotion", self._backend.read_emotion, self._emotion_buffer)

    async def _collect(
        self,
        channel: str,
        read: Callable[[], Awaitable[_SampleT]],
        buffer: deque[_SampleT],
    ) -> _SampleT | None:
        if not self.is_collection_enabled():
            logger.debug("collection.sample_skipped", channel=channel, reason="disabled")
            return None
        try:
            sample = await read()
        except Exception:
            logger.exception("collection.sample_failed", channel=channel, backend=self._backend.name)
            return None
        buffer.append(sample)
        return sample

    # ── Sync ──────────────────────────────────────────────────

    async def sync_to_remote(self) -> bool:
        if not self.is_collection_enabled():
            logger.info("collection.sync_skipped", reason="disabled")
            return False

        async with self._sync_lock:
            sensor = list(self._sensor_buffer)
            emotion = list(self._emotion_buffer)
            try:
                await self._backend.upload(sensor, emotion)
            except Exception:
                logger.exception(
                    "collection.sync_failed",
                    backend=self._backend.name,
                    sensor=len(sensor),
                    emotion=len(emotion),
                )
                return False

            # Samples collected while the upload was in flight stay buffered.
            _discard(self._sensor_buffer, {s.id for s in sensor})
            _discard(self._emotion_buffer, {e.id for e in emotion})

        logger.info("collection.synced", sensor=len(sensor), emotion=len(emotion))
        return True

    async def close(self) -> None:
        await self._backend.close()


def _discard(buffer: deque[_SampleT], ids: set[str]) -> None:
    kept = [item for item in buffer if item.id not in ids]
    buffer.clear()
    buffer.extend(kept)

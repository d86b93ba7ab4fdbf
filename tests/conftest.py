"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
from collections import Counter

import pytest

from mindful_pulse.collection.backends import CollectionBackend
from mindful_pulse.collection.controller import CollectionController
from mindful_pulse.collection.service import CollectionService
from mindful_pulse.config import get_settings
from mindful_pulse.models import ActivityLevel, EmotionSample, SensorSample
from mindful_pulse.state.settings_store import SettingsStore
from mindful_pulse.storage.base import KeyValueStorage, MemoryStorage

STORAGE_KEY = "test-settings"


class FakeBackend(CollectionBackend):
    """Records every call; operations named in ``fail`` raise."""

    name = "fake"

    def __init__(self, *, start_delay: float = 0.0) -> None:
        self.calls: Counter[str] = Counter()
        self.fail: set[str] = set()
        self.uploads: list[tuple[list[SensorSample], list[EmotionSample]]] = []
        self.start_delay = start_delay

    def _record(self, op: str) -> None:
        self.calls[op] += 1
        if op in self.fail:
            raise RuntimeError(f"{op} failed")

    async def start(self) -> None:
        self._record("start")
        if self.start_delay:
            await asyncio.sleep(self.start_delay)

    async def stop(self) -> None:
        self._record("stop")

    async def read_sensor(self) -> SensorSample:
        self._record("sensor")
        return SensorSample(heart_rate=72, steps=900, hrv=40, activity_level=ActivityLevel.LIGHT)

    async def read_emotion(self) -> EmotionSample:
        self._record("emotion")
        return EmotionSample(happiness=0.6, sadness=0.2)

    async def upload(self, sensor: list[SensorSample], emotion: list[EmotionSample]) -> None:
        self._record("upload")
        self.uploads.append((sensor, emotion))


class BrokenStorage(KeyValueStorage):
    """Storage whose every call fails."""

    def __init__(self) -> None:
        self.writes = 0

    async def get_item(self, key: str) -> str | None:
        raise OSError("disk unavailable")

    async def set_item(self, key: str, value: str) -> None:
        self.writes += 1
        raise OSError("disk full")


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Point every test at its own database and keep the scheduler off."""
    monkeypatch.setenv("MINDFUL_PULSE_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("MINDFUL_PULSE_SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("MINDFUL_PULSE_COLLECTION_MAX_RECONCILE_ATTEMPTS", "3")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> SettingsStore:
    return SettingsStore(storage, key=STORAGE_KEY)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def service(store: SettingsStore, backend: FakeBackend) -> CollectionService:
    return CollectionService(store, backend)


@pytest.fixture
async def controller(store: SettingsStore, service: CollectionService):
    """Controller attached to the store, with the initial pass already run."""
    ctrl = CollectionController(store, service)
    ctrl.attach()
    await ctrl.drain()
    yield ctrl
    await ctrl.close()

"""Abstract base class for device / cloud side-effect backends."""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from mindful_pulse.models import ActivityLevel, EmotionSample, SensorSample

logger = structlog.get_logger(__name__)


class CollectionBackend(ABC):
    """Contract that every device / cloud integration must implement.

    A backend performs the real side effects behind the collection service:
    starting and stopping the device feed, reading one sensor or emotion
    sample, and uploading buffered samples.  Methods raise on failure; the
    service converts failures into ``False`` / ``None`` results.
    """

    name: str = "base"

    @abstractmethod
    async def start(self) -> None:
        """Begin background collection on the device."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop background collection on the device."""

    @abstractmethod
    async def read_sensor(self) -> SensorSample:
        """Return the most recent physiological reading."""

    @abstractmethod
    async def read_emotion(self) -> EmotionSample:
        """Return the most recent emotion estimate."""

    @abstractmethod
    async def upload(self, sensor: list[SensorSample], emotion: list[EmotionSample]) -> None:
        """Push buffered samples to the remote store."""

    async def close(self) -> None:
        """Release any resources held by the backend."""


class StubBackend(CollectionBackend):
    """Backend with no device behind it: fixed readings, logged uploads."""

    name = "stub"

    async def start(self) -> None:
        logger.info("backend.stub.start")

    async def stop(self) -> None:
        logger.info("backend.stub.stop")

    async def read_sensor(self) -> SensorSample:
        return SensorSample(
            heart_rate=75,
            steps=1250,
            hrv=42,
            activity_level=ActivityLevel.MODERATE,
            blood_oxygen=98,
        )

    async def read_emotion(self) -> EmotionSample:
        return EmotionSample(
            happiness=0.7,
            sadness=0.1,
            anger=0.1,
            fear=0.0,
            disgust=0.0,
            surprise=0.1,
        )

    async def upload(self, sensor: list[SensorSample], emotion: list[EmotionSample]) -> None:
        logger.info("backend.stub.upload", sensor=len(sensor), emotion=len(emotion))

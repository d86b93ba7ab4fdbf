"""Shared Pydantic models used across the collection core."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware *now*, used for every timestamp the core produces."""
    return datetime.now(UTC)


# ── Enums ─────────────────────────────────────────────────────

class SyncFrequency(str, Enum):
    """How often buffered samples are pushed to the remote store."""
    REALTIME = "realtime"
    HOURLY = "hourly"
    DAILY = "daily"


class ActivityLevel(str, Enum):
    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    VIGOROUS = "vigorous"


# ── Persisted settings ────────────────────────────────────────

_WIRE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

# Only these fields reach durable storage.
_PERSISTED_FIELDS = frozenset({"collection_enabled", "last_updated", "preferences"})


class Preferences(BaseModel):
    """User preferences stored alongside the collection intent."""

    model_config = _WIRE_CONFIG

    sync_frequency: SyncFrequency = SyncFrequency.HOURLY
    notifications_enabled: bool = True
    privacy_mode: bool = False


class SettingsRecord(BaseModel):
    """The persisted, process-wide record of user intent.

    Instances are frozen: every mutation in the settings store produces a new
    record, so a snapshot handed to a reader can never change underneath it.
    The wire form uses camelCase keys (``collectionEnabled``, ``lastUpdated``,
    ``preferences``).
    """

    model_config = _WIRE_CONFIG

    collection_enabled: bool = False
    last_updated: datetime | None = None
    preferences: Preferences = Field(default_factory=Preferences)

    def to_storage(self) -> str:
        """Serialise the persisted projection to JSON."""
        return self.model_dump_json(by_alias=True, include=set(_PERSISTED_FIELDS))

    @classmethod
    def from_storage(cls, raw: str) -> SettingsRecord:
        """Parse a persisted projection.  Raises :class:`ValueError` if invalid."""
        return cls.model_validate_json(raw)


# ── Collected samples ─────────────────────────────────────────

class SensorSample(BaseModel):
    """One physiological reading pulled from the wearable backend."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    heart_rate: float
    steps: int = 0
    hrv: float | None = None
    activity_level: ActivityLevel = ActivityLevel.SEDENTARY
    blood_oxygen: float | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class EmotionSample(BaseModel):
    """Emotion intensities (0..1) from user input or analysis."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    happiness: float = Field(0.0, ge=0.0, le=1.0)
    sadness: float = Field(0.0, ge=0.0, le=1.0)
    anger: float = Field(0.0, ge=0.0, le=1.0)
    fear: float = Field(0.0, ge=0.0, le=1.0)
    disgust: float = Field(0.0, ge=0.0, le=1.0)
    surprise: float = Field(0.0, ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=utcnow)


class CollectionResult(BaseModel):
    """Combined output of one collection cycle."""
    sensor: SensorSample | None = None
    emotion: EmotionSample | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class CollectionStatus(BaseModel):
    """Read-only display state handed to UI collaborators."""
    is_enabled: bool
    is_collecting: bool
    last_collection_time: datetime | None = None
    reconcile_failures: int = 0
    reconcile_suspended: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def diverged(self) -> bool:
        return self.is_enabled != self.is_collecting

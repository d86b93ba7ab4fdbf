"""Request / response models shared across API route modules."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from mindful_pulse.models import CollectionResult, CollectionStatus


class PreferenceUpdateRequest(BaseModel):
    """Set one preference, e.g. ``{"field": "syncFrequency", "value": "daily"}``."""
    field: str
    value: Any


class OperationResponse(BaseModel):
    success: bool
    status: CollectionStatus


class CollectResponse(BaseModel):
    result: CollectionResult | None
    status: CollectionStatus

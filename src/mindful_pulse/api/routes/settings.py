"""Settings routes — read and edit the persisted intent / preferences.

Responses use the camelCase wire form of :class:`SettingsRecord`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from mindful_pulse.api.schemas import PreferenceUpdateRequest
from mindful_pulse.exceptions import InvalidPreferenceValue
from mindful_pulse.models import SettingsRecord
from mindful_pulse.state.settings_store import SettingsStore

router = APIRouter(prefix="/settings", tags=["settings"])


def _store() -> SettingsStore:
    from mindful_pulse.api.server import _settings_store

    if _settings_store is None:
        raise HTTPException(503, "Settings store not ready.")
    return _settings_store


def _dump(record: SettingsRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


@router.get("")
async def get_settings_snapshot():
    return _dump(_store().get_snapshot())


@router.post("/enable")
async def enable_collection():
    return _dump(_store().enable_collection())


@router.post("/disable")
async def disable_collection():
    return _dump(_store().disable_collection())


@router.post("/reset")
async def reset_settings():
    return _dump(_store().reset())


@router.post("/notifications/toggle")
async def toggle_notifications():
    return _dump(_store().toggle_notifications())


@router.post("/privacy/toggle")
async def toggle_privacy_mode():
    return _dump(_store().toggle_privacy_mode())


@router.patch("/preferences")
async def update_preference(req: PreferenceUpdateRequest):
    try:
        record = _store().update_preference(req.field, req.value)
    except InvalidPreferenceValue as exc:
        raise HTTPException(422, str(exc)) from exc
    return _dump(record)

"""Settings store — the persisted record of the user's collection intent.

Architecture
~~~~~~~~~~~~
* Reads and mutations are synchronous and operate on an immutable
  :class:`SettingsRecord`; each mutation swaps in a new record.
* Every mutation schedules a background write of the persisted projection.
  Callers never await it, and a failed write is logged, not raised.
* Writes are serialised and always store the *latest* record, so the last
  mutation wins even when several writes are in flight.
* Collaborators register with :meth:`SettingsStore.subscribe` to be told
  about every change, including ones they did not make.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import structlog
from pydantic.alias_generators import to_camel

from mindful_pulse.config import get_settings
from mindful_pulse.exceptions import InvalidPreferenceValue
from mindful_pulse.models import Preferences, SettingsRecord, SyncFrequency, utcnow
from mindful_pulse.storage.base import KeyValueStorage

logger = structlog.get_logger(__name__)

SettingsListener = Callable[[SettingsRecord, SettingsRecord], None]

# camelCase wire name -> field name
_PREFERENCE_FIELDS: dict[str, str] = {
    **{name: name for name in Preferences.model_fields},
    **{to_camel(name): name for name in Preferences.model_fields},
}


class SettingsStore:
    """Process-wide holder of :class:`SettingsRecord`.

    Usage::

        store = SettingsStore(KeyValueRepository())
        await store.load()
        store.enable_collection()
        ...
        await store.flush()
    """

    def __init__(self, storage: KeyValueStorage | None = None, *, key: str | None = None) -> None:
        self._storage = storage
        self._key = key or get_settings().settings_storage_key
        self._record = SettingsRecord()
        self._listeners: list[SettingsListener] = []
        self._write_lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()
        self._dirty = False

    @property
    def key(self) -> str:
        return self._key

    @property
    def collection_enabled(self) -> bool:
        """Current intent, read without copying the record."""
        return self._record.collection_enabled

    # ── Reads ─────────────────────────────────────────────────

    def get_snapshot(self) -> SettingsRecord:
        """Return an immutable copy of the current record."""
        return self._record.model_copy(deep=True)

    # ── Subscriptions ─────────────────────────────────────────

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        """Register ``listener(current, previous)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ── Intent ────────────────────────────────────────────────

    def toggle_collection_enabled(self) -> SettingsRecord:
        enabled = not self._record.collection_enabled
        return self._apply(
            self._record.model_copy(update={"collection_enabled": enabled, "last_updated": utcnow()})
        )

    def enable_collection(self) -> SettingsRecord:
        return self._apply(
            self._record.model_copy(update={"collection_enabled": True, "last_updated": utcnow()})
        )

    def disable_collection(self) -> SettingsRecord:
        return self._apply(
            self._record.model_copy(update={"collection_enabled": False, "last_updated": utcnow()})
        )

    # ── Preferences ───────────────────────────────────────────

    def update_preference(self, field: str, value: Any) -> SettingsRecord:
        """Replace a single preference after validating *value*.

        *field* may be given in snake_case or camelCase.  Raises
        :class:`InvalidPreferenceValue` without touching the record if the
        field is unknown or the value has the wrong type.
        """
        name = _PREFERENCE_FIELDS.get(field) if isinstance(field, str) else None
        if name is None:
            raise InvalidPreferenceValue(
                str(field), value, f"unknown preference; expected one of {sorted(Preferences.model_fields)}"
            )

        if name == "sync_frequency":
            try:
                value = SyncFrequency(value)
            except (TypeError, ValueError):
                raise InvalidPreferenceValue(
                    field, value, f"expected one of {[f.value for f in SyncFrequency]}"
                ) from None
        elif not isinstance(value, bool):
            raise InvalidPreferenceValue(field, value, "expected a boolean")

        preferences = self._record.preferences.model_copy(update={name: value})
        return self._apply(
            self._record.model_copy(update={"preferences": preferences, "last_updated": utcnow()})
        )

    def update_sync_frequency(self, frequency: SyncFrequency | str) -> SettingsRecord:
        return self.update_preference("sync_frequency", frequency)

    def toggle_notifications(self) -> SettingsRecord:
        return self.update_preference(
            "notifications_enabled", not self._record.preferences.notifications_enabled
        )

    def toggle_privacy_mode(self) -> SettingsRecord:
        return self.update_preference("privacy_mode", not self._record.preferences.privacy_mode)

    def reset(self) -> SettingsRecord:
        """Restore every field to its default; ``last_updated`` becomes ``None``."""
        return self._apply(SettingsRecord())

    # ── Persistence ───────────────────────────────────────────

    async def load(self) -> SettingsRecord:
        """Replace the in-memory record with the persisted one, if any.

        A missing key, a storage error, or an unparsable payload all leave
        the defaults in place; none of them is an error for the caller.
        """
        if self._storage is None:
            return self.get_snapshot()

        try:
            raw = await self._storage.get_item(self._key)
        except Exception:
            logger.exception("settings_store.load_failed", key=self._key)
            raw = None

        if raw is None:
            logger.info("settings_store.defaults", key=self._key)
            return self.get_snapshot()

        try:
            record = SettingsRecord.from_storage(raw)
        except ValueError as exc:
            logger.warning("settings_store.parse_failed", key=self._key, error=str(exc))
            return self.get_snapshot()

        logger.info(
            "settings_store.loaded",
            key=self._key,
            collection_enabled=record.collection_enabled,
        )
        return self._apply(record, persist=False)

    async def flush(self) -> None:
        """Wait for in-flight writes, then write any change not yet scheduled."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        if self._dirty:
            await self._persist()

    def _schedule_persist(self) -> None:
        if self._storage is None:
            return
        self._dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet: the next flush() writes it.
            logger.debug("settings_store.persist_deferred", key=self._key)
            return
        task = loop.create_task(self._persist())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(self) -> None:
        async with self._write_lock:
            if not self._dirty or self._storage is None:
                return
            self._dirty = False
            payload = self._record.to_storage()
            try:
                await self._storage.set_item(self._key, payload)
            except Exception:
                logger.exception("settings_store.persist_failed", key=self._key)
                return
            logger.debug("settings_store.persisted", key=self._key)

    # ── Internals ─────────────────────────────────────────────

    def _apply(self, record: SettingsRecord, *, persist: bool = True) -> SettingsRecord:
        previous = self._record
        self._record = record
        if persist:
            self._schedule_persist()
        self._notify(record, previous)
        return self.get_snapshot()

    def _notify(self, current: SettingsRecord, previous: SettingsRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(current, previous)
            except Exception:
                logger.exception(
                    "settings_store.listener_failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                )

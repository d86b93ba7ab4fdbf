"""Key-value storage contract for the persisted settings record."""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueStorage(ABC):
    """Durable, string-valued key-value storage.

    Implementations raise on I/O failure; callers decide whether that is
    fatal.  A missing key is not a failure: :meth:`get_item` returns ``None``.
    """

    @abstractmethod
    async def get_item(self, key: str) -> str | None:
        """Return the stored value for *key*, or ``None`` if absent."""

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""


class MemoryStorage(KeyValueStorage):
    """Process-local storage, used in tests and when no database is wired."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._items

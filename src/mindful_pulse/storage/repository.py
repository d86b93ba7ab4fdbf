"""Data-access layer — thin async wrappers around SQLAlchemy queries."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mindful_pulse.storage.base import KeyValueStorage
from mindful_pulse.storage.database import KeyValueRow, get_session_factory


class BaseRepository:
    """Shared base with session management for all repositories."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._external_factory = session_factory

    def _session(self) -> AsyncSession:
        factory = self._external_factory or get_session_factory()
        return factory()


class KeyValueRepository(BaseRepository, KeyValueStorage):
    """SQL-backed :class:`KeyValueStorage` over the ``kv_store`` table."""

    async def get_item(self, key: str) -> str | None:
        async with self._session() as session:
            row = await session.get(KeyValueRow, key)
            return row.value if row is not None else None

    async def set_item(self, key: str, value: str) -> None:
        async with self._session() as session:
            row = await session.get(KeyValueRow, key)
            if row is None:
                session.add(KeyValueRow(key=key, value=value))
            else:
                row.value = value
            await session.commit()

    async def list_keys(self) -> list[str]:
        async with self._session() as session:
            result = await session.execute(select(KeyValueRow.key).order_by(KeyValueRow.key))
            return list(result.scalars().all())

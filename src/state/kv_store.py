"""Asynchronous key-value stores used to persist the outbox snapshot."""
import logging
from typing import Optional, Protocol

import aiosqlite

from src.state.database import DatabaseError, DatabaseManager
from src.state.repositories.kv import KeyValueRepository

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Asynchronous get/set over string keys and string values."""

    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_item(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local store, lost on exit."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self.write_count = 0

    async def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._data[key] = value
        self.write_count += 1


class SqliteKeyValueStore:
    """Store backed by the kv_store table of a local SQLite database.

    The schema is created lazily on first access.
    """

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    @property
    def db(self) -> DatabaseManager:
        return self._db

    async def _ensure_initialized(self) -> None:
        if not self._db.is_initialized:
            await self._db.initialize()

    async def get_item(self, key: str) -> Optional[str]:
        await self._ensure_initialized()
        try:
            async with self._db.connection() as conn:
                return await KeyValueRepository(conn).get(key)
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to read key {key!r}: {e}") from e

    async def set_item(self, key: str, value: str) -> None:
        await self._ensure_initialized()
        try:
            async with self._db.connection() as conn:
                await KeyValueRepository(conn).set(key, value)
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to write key {key!r}: {e}") from e
        logger.debug("Stored %d bytes under %s", len(value), key)

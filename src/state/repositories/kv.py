"""Key-value repository backing the persisted outbox snapshot."""
import aiosqlite
from datetime import datetime, timezone
from typing import Optional


class KeyValueRepository:
    """Reads and writes string values in the kv_store table.

    Each key holds one opaque string; writes replace the whole value.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when the key is absent."""
        cursor = await self._conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        return row["value"] if row is not None else None

    async def set(self, key: str, value: str) -> None:
        """Insert or replace the value stored under a key.

        Args:
            key: Storage key.
            value: Full replacement value.
        """
        await self._conn.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
            "updated_at = excluded.updated_at",
            (key, value, datetime.now(timezone.utc).isoformat()),
        )
        await self._conn.commit()

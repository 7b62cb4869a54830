"""KVStoreDAO — kv_entries table operations."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from vulnguard.models.kv_entry import KVEntry


class KVStoreDAO:
    """Durable mapping from key to JSON value, last write wins per key."""

    model = KVEntry

    @staticmethod
    def _require_key(key: str) -> None:
        if not key:
            raise ValueError("key must not be empty")

    async def get(self, session: AsyncSession, key: str) -> Any | None:
        """Return the JSON value stored under *key*, or None if absent."""
        self._require_key(key)
        entry = await session.get(KVEntry, key)
        if entry is None:
            return None
        return entry.value

    async def set(self, session: AsyncSession, key: str, value: Any) -> None:
        """Store *value* under *key*, replacing any previous value wholesale."""
        self._require_key(key)
        entry = await session.get(KVEntry, key)
        if entry is None:
            session.add(KVEntry(key=key, value=value))
        else:
            entry.value = value
            # JSON columns do not track in-place mutation
            flag_modified(entry, "value")
        await session.flush()

    async def delete(self, session: AsyncSession, key: str) -> bool:
        self._require_key(key)
        entry = await session.get(KVEntry, key)
        if entry is None:
            return False
        await session.delete(entry)
        await session.flush()
        return True

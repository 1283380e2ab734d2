# homefinder/adapters/cache/sql_store.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...db import session_scope
from ...models import CacheEntry
from .base import CacheStore


class SqlCacheStore(CacheStore):
    """
    Cache rows in the `cache_entries` table, one row per (namespace, key).
    Each write is its own transaction, so readers never see half an entry.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], namespace: str) -> None:
        self._session_maker = session_maker
        self.namespace = namespace

    async def read(self, key: str) -> str | None:
        async with self._session_maker() as session:
            q = select(CacheEntry.blob).where(CacheEntry.namespace == self.namespace, CacheEntry.key == key)
            return (await session.execute(q)).scalars().first()

    async def write(self, key: str, blob: str) -> None:
        async with session_scope(self._session_maker) as session:
            q = select(CacheEntry).where(CacheEntry.namespace == self.namespace, CacheEntry.key == key)
            row = (await session.execute(q)).scalars().first()
            if row:
                row.blob = blob
                row.updated_at = datetime.utcnow()
            else:
                session.add(CacheEntry(namespace=self.namespace, key=key, blob=blob))

    async def delete(self, key: str) -> None:
        async with session_scope(self._session_maker) as session:
            await session.execute(
                delete(CacheEntry).where(CacheEntry.namespace == self.namespace, CacheEntry.key == key)
            )

    async def clear(self) -> int:
        async with session_scope(self._session_maker) as session:
            res = await session.execute(delete(CacheEntry).where(CacheEntry.namespace == self.namespace))
            return int(res.rowcount or 0)

    async def keys(self) -> list[str]:
        async with self._session_maker() as session:
            q = select(CacheEntry.key).where(CacheEntry.namespace == self.namespace).order_by(CacheEntry.key)
            return list((await session.execute(q)).scalars().all())

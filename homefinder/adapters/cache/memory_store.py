# homefinder/adapters/cache/memory_store.py
from __future__ import annotations

from .base import CacheStore


class MemoryCacheStore(CacheStore):
    """Process-local store. Used by tests and CACHE_BACKEND=memory."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace
        self._data: dict[str, str] = {}

    async def read(self, key: str) -> str | None:
        return self._data.get(key)

    async def write(self, key: str, blob: str) -> None:
        self._data[key] = blob

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def clear(self) -> int:
        n = len(self._data)
        self._data.clear()
        return n

    async def keys(self) -> list[str]:
        return sorted(self._data)

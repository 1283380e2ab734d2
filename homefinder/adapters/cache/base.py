# homefinder/adapters/cache/base.py
from __future__ import annotations

from typing import Protocol


class CacheStore(Protocol):
    """
    Raw key -> text storage for one resource class (listings pages, isochrones).

    Stores know nothing about TTLs or envelopes; `TtlCache` layers those on
    top. `clear()` only touches this store's namespace.
    """

    namespace: str

    async def read(self, key: str) -> str | None:
        raise NotImplementedError

    async def write(self, key: str, blob: str) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def clear(self) -> int:
        raise NotImplementedError

    async def keys(self) -> list[str]:
        raise NotImplementedError

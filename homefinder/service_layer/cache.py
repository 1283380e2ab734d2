# homefinder/service_layer/cache.py
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from ..adapters.cache.base import CacheStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEnvelope:
    timestamp: float
    data: Any

    def age(self, now: float) -> float:
        return now - self.timestamp


class TtlCache:
    """
    {timestamp, data} envelopes over a raw CacheStore.

    get() returns None for a missing entry, an unreadable/corrupt entry and an
    expired entry alike. None of those are errors; the caller refetches.
    """

    def __init__(
        self,
        store: CacheStore,
        ttl_s: float,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.ttl_s = float(ttl_s)
        self._clock = clock

    @property
    def namespace(self) -> str:
        return self.store.namespace

    def now(self) -> float:
        return self._clock()

    async def envelope(self, key: str) -> CacheEnvelope | None:
        """Decoded entry regardless of age, or None if absent/corrupt."""
        try:
            blob = await self.store.read(key)
        except Exception as e:
            log.warning("Cache read failed %s%s: %s", self.namespace, key, e)
            return None
        if blob is None:
            return None

        try:
            raw = json.loads(blob)
            return CacheEnvelope(timestamp=float(raw["timestamp"]), data=raw["data"])
        except (ValueError, TypeError, KeyError) as e:
            log.warning("Corrupt cache entry %s%s: %s", self.namespace, key, e)
            return None

    async def get(self, key: str) -> Any | None:
        env = await self.envelope(key)
        if env is None:
            return None
        if env.age(self._clock()) > self.ttl_s:
            log.info("Cache for %s%s expired, will fetch fresh data", self.namespace, key)
            return None
        log.debug("Cache hit %s%s", self.namespace, key)
        return env.data

    async def put(self, key: str, data: Any) -> None:
        blob = json.dumps({"timestamp": self._clock(), "data": data})
        await self.store.write(key, blob)

    async def delete(self, key: str) -> None:
        await self.store.delete(key)

    async def clear(self) -> int:
        n = await self.store.clear()
        log.info("Cache cleared (%d %s entries deleted)", n, self.namespace)
        return n

    async def keys(self) -> list[str]:
        return await self.store.keys()

# homefinder/service_layer/prefetch.py
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Union

from ..domain.types import PrefetchResult, Property
from .listings import ListingsFetcher

log = logging.getLogger(__name__)

ProgressSink = Callable[[int, int], Union[None, Awaitable[None]]]


async def _maybe_await(x: Any) -> Any:
    if hasattr(x, "__await__"):
        return await x
    return x


class PrefetchOrchestrator:
    """
    Drain every upstream page through the same fetcher (and so the same
    shared RequestQueue) that searches use.

    Page 1 decides totalPages; a failure there ends the run with nothing
    loaded. Later pages that fail are logged and skipped, and `loaded_pages`
    says exactly which ones made it.
    """

    def __init__(self, fetcher: ListingsFetcher) -> None:
        self.fetcher = fetcher

    async def _report(self, on_progress: ProgressSink | None, current: int, total: int) -> None:
        if on_progress is None:
            return
        try:
            await _maybe_await(on_progress(current, total))
        except Exception as e:
            log.warning("Progress sink failed at %d/%d: %r", current, total, e)

    async def prefetch_all(self, on_progress: ProgressSink | None = None) -> PrefetchResult:
        first = await self.fetcher.fetch_page(1)
        if not first.is_ok:
            log.error("Prefetch aborted, page 1 unavailable: %s", first.reason)
            return PrefetchResult(properties=[], total_count=0, total_pages=0, loaded_pages=[])

        total_pages = first.value.total_pages
        total_count = first.value.total_count
        properties: list[Property] = list(first.value.properties)
        loaded: list[int] = [1]
        await self._report(on_progress, 1, max(total_pages, 1))

        for page in range(2, total_pages + 1):
            try:
                res = await self.fetcher.fetch_page(page)
            except Exception as e:
                # rate limit exhausted after the queue's retries
                log.error("Failed to fetch page %d, skipping: %r", page, e)
            else:
                if res.is_ok:
                    properties.extend(res.value.properties)
                    loaded.append(page)
                else:
                    log.warning("Page %d came back empty (%s), skipping", page, res.reason)
            await self._report(on_progress, page, total_pages)

        missing = total_pages - len(loaded)
        log.info(
            "Prefetched %d properties across %d/%d pages (%d missing)",
            len(properties),
            len(loaded),
            total_pages,
            missing,
        )
        return PrefetchResult(
            properties=properties,
            total_count=total_count,
            total_pages=total_pages,
            loaded_pages=loaded,
        )

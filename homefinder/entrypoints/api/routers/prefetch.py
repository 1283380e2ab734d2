# homefinder/entrypoints/api/routers/prefetch.py
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from ..deps import require_api_key, services_dep
from ....schemas import PrefetchOut
from ....service_layer.bootstrap import Services

log = logging.getLogger(__name__)

router = APIRouter(tags=["prefetch"])

# Prefetch runs to completion even if the SSE client goes away.
_RUNNING: set[asyncio.Task] = set()


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.get("/prefetch", response_model=PrefetchOut, dependencies=[Depends(require_api_key)])
async def prefetch_all(
    clear_cache: bool = Query(False),
    services: Services = Depends(services_dep),
) -> PrefetchOut:
    if clear_cache:
        await services.clear_listings_cache()
        log.info("Cache cleared before prefetching")

    try:
        res = await services.prefetch.prefetch_all()
    except Exception as e:
        log.exception("Error in prefetch all API")
        raise HTTPException(status_code=500, detail=f"Failed to prefetch all properties: {e}") from e

    missing = res.missing_pages
    return PrefetchOut(
        message=f"Prefetched {len(res.properties)} properties across {len(res.loaded_pages)} pages",
        totalPages=res.total_pages,
        totalCount=res.total_count,
        loadedPages=res.loaded_pages,
        missingPages=missing or None,
    )


@router.post("/prefetch", dependencies=[Depends(require_api_key)])
async def prefetch_all_stream(services: Services = Depends(services_dep)) -> StreamingResponse:
    """Server-sent events: progress per page, then one completion or error event."""
    events: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()

    async def on_progress(current: int, total: int) -> None:
        pct = round(current / total * 100) if total else 100
        await events.put({"progress": {"current": current, "total": total, "percentage": pct}})

    async def run() -> None:
        try:
            res = await services.prefetch.prefetch_all(on_progress)
            await events.put(
                {
                    "complete": True,
                    "totalProperties": len(res.properties),
                    "totalPages": res.total_pages,
                    "loadedPages": res.loaded_pages,
                    "missingPages": res.missing_pages,
                }
            )
        except Exception as e:
            log.exception("Prefetch stream failed")
            await events.put({"error": True, "message": str(e)})
        finally:
            await events.put(None)

    async def stream() -> AsyncIterator[str]:
        task = asyncio.create_task(run())
        _RUNNING.add(task)
        task.add_done_callback(_RUNNING.discard)

        while True:
            item = await events.get()
            if item is None:
                break
            yield _sse(item)

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )

# homefinder/entrypoints/api/routers/cache.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from ..deps import require_api_key, services_dep
from ....schemas import CacheClearOut
from ....service_layer.bootstrap import Services

router = APIRouter(tags=["cache"])


@router.post("/cache/clear", response_model=CacheClearOut, dependencies=[Depends(require_api_key)])
async def clear_listings_cache(services: Services = Depends(services_dep)) -> CacheClearOut:
    n = await services.clear_listings_cache()
    return CacheClearOut(message="Cache cleared successfully", deleted=n)


@router.get("/cache/debug", dependencies=[Depends(require_api_key)])
async def debug_listings_cache(
    clear: bool = Query(False),
    services: Services = Depends(services_dep),
) -> dict[str, Any]:
    report = await services.fetcher.debug_cache()
    cleared = None
    if clear:
        cleared = await services.clear_listings_cache()
    return {"success": True, "cache": report, "cleared": cleared}

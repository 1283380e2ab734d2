# homefinder/entrypoints/api/routers/isochrones.py
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ..deps import require_api_key, services_dep
from ....domain.errors import GeocodeError
from ....schemas import CacheClearOut
from ....service_layer.bootstrap import Services

log = logging.getLogger(__name__)

router = APIRouter(tags=["isochrones"])


@router.post("/isochrones/clear", response_model=CacheClearOut, dependencies=[Depends(require_api_key)])
async def clear_isochrones(services: Services = Depends(services_dep)) -> CacheClearOut:
    n = await services.clear_isochrone_cache()
    msg = "Isochrones cache cleared successfully" if n else "No isochrones cache to clear"
    return CacheClearOut(message=msg, deleted=n)


@router.post("/isochrones/refresh", dependencies=[Depends(require_api_key)])
async def refresh_isochrones(services: Services = Depends(services_dep)) -> dict[str, Any]:
    try:
        res = await services.resolver.resolve_polygons(force_refresh=True)
    except GeocodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        log.exception("Error refreshing isochrones")
        raise HTTPException(status_code=500, detail="Failed to refresh isochrones") from e

    return {
        "success": True,
        "status": res.status.value,
        "reason": res.reason,
        "message": f"Refreshed {len(res.value)} isochrones successfully",
    }


@router.get("/isochrones/debug", dependencies=[Depends(require_api_key)])
async def debug_isochrones(services: Services = Depends(services_dep)) -> dict[str, Any]:
    try:
        return await services.resolver.debug_summary(force_refresh=True)
    except Exception as e:
        log.exception("Error getting debug isochrones")
        raise HTTPException(status_code=500, detail="Failed to get isochrones for debugging") from e

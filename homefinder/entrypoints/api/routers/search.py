# homefinder/entrypoints/api/routers/search.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import require_api_key, services_dep
from ....domain.errors import GeocodeError
from ....domain.geo import combine_polygons
from ....schemas import SearchRequest, SearchResponse
from ....service_layer.bootstrap import Services

log = logging.getLogger(__name__)

router = APIRouter(tags=["search"])


@router.post("/search", response_model=SearchResponse, dependencies=[Depends(require_api_key)])
async def search(
    body: SearchRequest,
    page: int = Query(1, ge=1),
    services: Services = Depends(services_dep),
) -> SearchResponse:
    try:
        res = await services.search.search(body.to_params(), page, body.enabledPolygonIndices)
    except GeocodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        log.exception("Error in search API")
        raise HTTPException(status_code=500, detail="Failed to process search request") from e

    return SearchResponse.from_results(res, combine_polygons(res.drive_time_polygons))

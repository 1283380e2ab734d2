# homefinder/entrypoints/api/routers/health.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..deps import require_api_key
from ....config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/debug/config", dependencies=[Depends(require_api_key)])
def debug_config() -> dict[str, Any]:
    """Running server's settings, secrets redacted."""
    def _redact(v: str | None) -> str | None:
        if not v:
            return v
        if len(v) <= 8:
            return "***"
        return v[:4] + "***" + v[-4:]

    return {
        "ENV": settings.ENV,
        "CACHE_BACKEND": settings.CACHE_BACKEND,
        "CACHE_DIR": settings.CACHE_DIR,
        "LISTINGS_LOCATION": settings.LISTINGS_LOCATION,
        "LISTINGS_PAGE_SIZE": settings.LISTINGS_PAGE_SIZE,
        "RATE_LIMIT_RPS": settings.RATE_LIMIT_RPS,
        "RAPIDAPI_KEY": _redact(settings.RAPIDAPI_KEY),
        "GEOAPIFY_API_KEY": _redact(settings.GEOAPIFY_API_KEY),
        "ANCHOR_COUNT": len(settings.DRIVE_TIME_ANCHORS),
        "API_KEY_SET": bool(settings.API_KEY),
    }

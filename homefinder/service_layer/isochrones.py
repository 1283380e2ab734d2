# homefinder/service_layer/isochrones.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from ..adapters.clients.geoapify import GeocodeResult
from ..domain.geo import describe_polygon
from ..domain.parsing import DEFAULT_DRIVE_MINUTES, parse_drive_time
from ..domain.types import Anchor, DriveTimePolygon, Outcome
from .cache import TtlCache

log = logging.getLogger(__name__)

ISOCHRONE_CACHE_KEY = "all"


class GeoProvider(Protocol):
    async def geocode(self, address: str) -> GeocodeResult:
        raise NotImplementedError

    async def isochrone(self, lat: float, lon: float, minutes: int) -> dict[str, Any]:
        raise NotImplementedError


class IsochroneResolver:
    """
    Anchors -> drive-time polygons, cached as one entry for the whole anchor
    set. A cached set built for different anchors counts as a miss.
    """

    def __init__(self, provider: GeoProvider, cache: TtlCache, anchors: list[Anchor]) -> None:
        self.provider = provider
        self.cache = cache
        self.anchors = list(anchors)

    async def cached(self, anchors: list[Anchor] | None = None) -> Outcome[list[DriveTimePolygon]] | None:
        anchors = self.anchors if anchors is None else anchors
        data = await self.cache.get(ISOCHRONE_CACHE_KEY)
        if not isinstance(data, dict):
            return None
        if data.get("anchors") != [a.to_dict() for a in anchors]:
            log.info("Cached isochrones were built for a different anchor set")
            return None

        try:
            polygons = [DriveTimePolygon.from_dict(x) for x in data.get("polygons") or []]
        except (TypeError, ValueError) as e:
            log.warning("Corrupt isochrone cache entry: %s", e)
            return None

        log.info("Using cached isochrones")
        warnings = data.get("warnings") or []
        if warnings:
            return Outcome.degraded(polygons, "; ".join(warnings))
        return Outcome.ok(polygons)

    async def _resolve_one(self, anchor: Anchor) -> tuple[DriveTimePolygon, str | None]:
        minutes, parsed = parse_drive_time(anchor.drive_time)
        warning = None
        if not parsed:
            warning = (
                f"unparsed_drive_time:{anchor.drive_time!r} for {anchor.address!r}, "
                f"using {DEFAULT_DRIVE_MINUTES} minutes"
            )
            log.warning(warning)

        log.info("Geocoding address: %s", anchor.address)
        point = await self.provider.geocode(anchor.address)

        log.info(
            "Getting %d minute drive time polygon for %s at %s,%s",
            minutes,
            anchor.address,
            point.lat,
            point.lon,
        )
        geo_json = await self.provider.isochrone(point.lat, point.lon, minutes)
        log.debug("Received isochrone data type: %s", (geo_json or {}).get("type"))

        polygon = DriveTimePolygon(
            address=anchor.address,
            drive_time=anchor.drive_time,
            geo_json=geo_json or {},
            minutes=minutes,
        )
        return polygon, warning

    async def resolve_polygons(
        self,
        anchors: list[Anchor] | None = None,
        force_refresh: bool = False,
    ) -> Outcome[list[DriveTimePolygon]]:
        """
        Cached set when present and fresh, else geocode + isoline per anchor
        (concurrently; the first failure propagates, GeocodeError included).
        """
        anchors = self.anchors if anchors is None else list(anchors)

        if not force_refresh:
            hit = await self.cached(anchors)
            if hit is not None:
                return hit

        log.info("Fetching drive time polygons for %d anchors...", len(anchors))
        resolved = await asyncio.gather(*(self._resolve_one(a) for a in anchors))

        polygons = [p for p, _ in resolved]
        warnings = [w for _, w in resolved if w]

        await self.cache.put(
            ISOCHRONE_CACHE_KEY,
            {
                "anchors": [a.to_dict() for a in anchors],
                "polygons": [p.to_dict() for p in polygons],
                "warnings": warnings,
            },
        )
        log.info("Isochrones cached successfully")

        if warnings:
            return Outcome.degraded(polygons, "; ".join(warnings))
        return Outcome.ok(polygons)

    async def clear(self) -> int:
        return await self.cache.clear()

    async def debug_summary(self, force_refresh: bool = True) -> dict[str, Any]:
        res = await self.resolve_polygons(force_refresh=force_refresh)
        return {
            "count": len(res.value),
            "status": res.status.value,
            "reason": res.reason,
            "simplified": [describe_polygon(p) for p in res.value],
        }

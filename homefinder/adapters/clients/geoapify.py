# homefinder/adapters/clients/geoapify.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ...config import settings
from ...domain.errors import GeocodeError, ProviderConfigError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeocodeResult:
    lat: float
    lon: float
    formatted: str


class GeoapifyClient:
    """Geocoding (address -> point) and isoline (point + minutes -> GeoJSON)."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or settings.GEOAPIFY_BASE_URL).rstrip("/")
        self._timeout_s = float(timeout_s if timeout_s is not None else settings.HTTP_TIMEOUT_S)
        self._transport = transport

    def _key(self) -> str:
        if not self._api_key:
            raise ProviderConfigError("GEOAPIFY_API_KEY is not set")
        return self._api_key

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        params = {**params, "apiKey": self._key()}
        async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
            r = await client.get(f"{self._base_url}{path}", params=params)
            r.raise_for_status()
            return r.json()

    async def geocode(self, address: str) -> GeocodeResult:
        data = await self._get("/geocode/search", {"text": address, "format": "json"})

        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            raise GeocodeError(address)

        top = results[0]
        return GeocodeResult(
            lat=float(top["lat"]),
            lon=float(top["lon"]),
            formatted=str(top.get("formatted") or address),
        )

    async def isochrone(self, lat: float, lon: float, minutes: int) -> dict[str, Any]:
        """
        Drive-time isoline. The response is usually a FeatureCollection, but the
        caller must cope with a single Feature or a bare geometry too.
        """
        return await self._get(
            "/isoline",
            {
                "lat": lat,
                "lon": lon,
                "type": "time",
                "mode": "drive",
                "range": int(minutes) * 60,
            },
        )

# homefinder/adapters/clients/realtor_listings.py
from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import settings
from ...domain.errors import ProviderConfigError

log = logging.getLogger(__name__)


class RealtorListingsClient:
    """
    Low-level HTTP client for the RapidAPI realtor for-sale search.
    Returns the raw JSON body; normalization lives in the service layer.

    The geography/type/price filter is fixed per deployment. Only the page
    window (offset/limit) varies between calls.
    """

    def __init__(
        self,
        api_key: str | None = None,
        host: str | None = None,
        *,
        url: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._host = host
        self._url = url or settings.LISTINGS_SEARCH_URL
        self._timeout_s = float(timeout_s if timeout_s is not None else settings.HTTP_TIMEOUT_S)
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._host)

    def _headers(self) -> dict[str, str]:
        if not self.configured:
            raise ProviderConfigError("RapidAPI credentials are missing")
        return {
            "accept": "application/json",
            "x-rapidapi-key": self._api_key or "",
            "x-rapidapi-host": self._host or "",
        }

    def _params(self, offset: int, limit: int) -> dict[str, str]:
        return {
            "location": settings.LISTINGS_LOCATION,
            "type": settings.LISTINGS_PROPERTY_TYPES,
            "search_radius": str(settings.LISTINGS_SEARCH_RADIUS),
            "foreclosure": "false",
            "list_price-max": str(settings.LISTINGS_MAX_LIST_PRICE),
            "limit": str(limit),
            "offset": str(offset),
        }

    async def search_page(self, *, offset: int, limit: int) -> Any:
        headers = self._headers()
        params = self._params(offset, limit)
        log.debug("Listings search offset=%d limit=%d", offset, limit)

        async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
            r = await client.get(self._url, headers=headers, params=params)
            r.raise_for_status()
            return r.json()

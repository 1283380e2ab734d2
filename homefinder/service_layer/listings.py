# homefinder/service_layer/listings.py
from __future__ import annotations

import logging
import math
import uuid
from typing import Any, Protocol

import httpx

from ..adapters.clients.rate_limit import RequestQueue, is_rate_limit_error
from ..config import settings
from ..domain.errors import ProviderConfigError
from ..domain.parsing import get_nested, leading_float, to_float, to_int
from ..domain.types import ListingsPage, Outcome, Property
from .cache import TtlCache

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 200

FLAG_KEYS = (
    "is_coming_soon",
    "is_contingent",
    "is_foreclosure",
    "is_new_construction",
    "is_new_listing",
    "is_pending",
    "is_price_reduced",
)


class ListingsSource(Protocol):
    async def search_page(self, *, offset: int, limit: int) -> Any:
        raise NotImplementedError


class MalformedPayloadError(ValueError):
    pass


def _pick(item: dict[str, Any], *paths: str) -> Any:
    for p in paths:
        v = get_nested(item, p)
        if v not in (None, "", []):
            return v
    return None


def _bathrooms(item: dict[str, Any]) -> float:
    # baths_consolidated is text like "2.5+"; baths is a plain number
    for path in ("description.baths_consolidated", "description.baths"):
        v = leading_float(get_nested(item, path))
        if v is not None:
            return v
    return 0.0


def normalize_listing(item: dict[str, Any]) -> Property:
    """
    One upstream record -> Property.

    Missing numbers become 0, a missing photo becomes the placeholder image,
    and the listing URL comes from the permalink or falls back to "#".
    monthly_payment starts at 0; it depends on the searcher's down payment.
    """
    address = get_nested(item, "location.address") or {}
    if not isinstance(address, dict):
        address = {}

    line = address.get("line") or ""
    city = address.get("city") or ""
    state = address.get("state_code") or ""
    postal = address.get("postal_code") or ""

    coordinate = address.get("coordinate") or {}
    if not isinstance(coordinate, dict):
        coordinate = {}

    permalink = item.get("permalink")
    listing_url = f"{settings.LISTING_DETAIL_BASE_URL}{permalink}" if permalink else "#"

    raw_flags = item.get("flags") if isinstance(item.get("flags"), dict) else {}
    flags = {k: bool(raw_flags[k]) for k in FLAG_KEYS if raw_flags.get(k) is not None}

    return Property(
        id=str(_pick(item, "property_id", "listing_id") or uuid.uuid4().hex),
        address=f"{line}, {city}, {state} {postal}",
        price=to_int(item.get("list_price")) or 0,
        bedrooms=to_int(_pick(item, "description.beds")) or 0,
        bathrooms=_bathrooms(item),
        square_feet=to_int(_pick(item, "description.sqft")) or 0,
        lat=to_float(coordinate.get("lat")) or 0.0,
        lng=to_float(coordinate.get("lon")) or 0.0,
        image_url=_pick(item, "primary_photo.href") or settings.PLACEHOLDER_IMAGE_URL,
        listing_url=listing_url,
        monthly_payment=0.0,
        status=item.get("status"),
        flags=flags,
    )


def parse_page(data: Any, page_size: int) -> ListingsPage:
    if not isinstance(data, dict) or not isinstance(data.get("properties"), list):
        raise MalformedPayloadError(f"Invalid response format: {type(data).__name__}")

    rows = [x for x in data["properties"] if isinstance(x, dict)]
    properties = [normalize_listing(x) for x in rows]

    total_count = to_int(data.get("matching_rows"))
    if total_count is None:
        total_count = to_int(data.get("total"))
    if total_count is None:
        total_count = len(properties)

    total_pages = math.ceil(total_count / page_size) if page_size > 0 else 0
    return ListingsPage(properties=properties, total_count=total_count, total_pages=total_pages)


class ListingsFetcher:
    """
    Page-at-a-time access to the upstream listings, through the shared
    RequestQueue and a per-page cache.
    """

    def __init__(
        self,
        source: ListingsSource,
        queue: RequestQueue,
        cache: TtlCache,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.source = source
        self.queue = queue
        self.cache = cache
        self.page_size = page_size

    async def cached_page(self, page: int) -> ListingsPage | None:
        data = await self.cache.get(str(page))
        if data is None:
            return None
        try:
            return ListingsPage.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            log.warning("Corrupt listings cache entry for page %d: %s", page, e)
            return None

    async def fetch_page(self, page: int, page_size: int | None = None) -> Outcome[ListingsPage]:
        """
        Cached page, or one upstream request through the queue.

        Rate-limit errors that survive the queue's retries propagate. Anything
        else comes back as a failed Outcome holding an empty page.
        """
        if page < 1:
            raise ValueError("page must be >= 1")
        size = page_size or self.page_size

        hit = await self.cached_page(page)
        if hit is not None:
            log.info("Using cached properties for page %d", page)
            return Outcome.ok(hit)

        offset = (page - 1) * size

        async def _request() -> Any:
            return await self.source.search_page(offset=offset, limit=size)

        try:
            data = await self.queue.enqueue(_request)
            result = parse_page(data, size)
        except ProviderConfigError as e:
            log.error("Listings fetch skipped for page %d: %s", page, e)
            return Outcome.failed(ListingsPage.empty(), "missing_credentials")
        except MalformedPayloadError as e:
            log.error("Malformed listings payload for page %d: %s", page, e)
            return Outcome.failed(ListingsPage.empty(), "malformed_payload")
        except httpx.HTTPStatusError as e:
            if is_rate_limit_error(e):
                raise
            log.error("Listings HTTP error for page %d: %s", page, e)
            return Outcome.failed(ListingsPage.empty(), f"http_error:{e.response.status_code}")
        except Exception as e:
            if is_rate_limit_error(e):
                raise
            log.error("Error fetching properties for page %d: %r", page, e)
            return Outcome.failed(ListingsPage.empty(), f"fetch_error:{type(e).__name__}")

        await self.cache.put(str(page), result.to_dict())
        log.info("Properties for page %d cached successfully (%d rows)", page, len(result.properties))
        return Outcome.ok(result)

    async def clear(self) -> int:
        return await self.cache.clear()

    async def debug_cache(self) -> dict[str, Any]:
        """Per-page sizes, ages and leading ids; flags pages that look duplicated."""
        pages: list[dict[str, Any]] = []
        now = self.cache.now()
        keys = await self.cache.keys()
        for key in sorted(keys, key=lambda k: (not k.isdigit(), int(k) if k.isdigit() else 0, k)):
            env = await self.cache.envelope(key)
            if env is None:
                pages.append({"page": key, "corrupt": True})
                continue
            props = (env.data or {}).get("properties") or []
            pages.append(
                {
                    "page": key,
                    "count": len(props),
                    "ageSeconds": round(env.age(now), 1),
                    "expired": env.age(now) > self.cache.ttl_s,
                    "firstIds": [p.get("id") for p in props[:3]],
                }
            )

        warnings: list[str] = []
        firsts = [tuple(p["firstIds"]) for p in pages if p.get("firstIds")]
        if len(firsts) > 1 and len(set(firsts)) < len(firsts):
            warnings.append("First property ids repeat across pages; cached pages may contain duplicate data")
            log.warning(warnings[-1])

        return {"pages": pages, "warnings": warnings}

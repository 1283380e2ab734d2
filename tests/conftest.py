# tests/conftest.py
import asyncio
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from homefinder.adapters.cache.memory_store import MemoryCacheStore
from homefinder.adapters.clients.geoapify import GeocodeResult
from homefinder.adapters.clients.rate_limit import RequestQueue
from homefinder.domain.errors import GeocodeError
from homefinder.models import Base
from homefinder.service_layer.cache import TtlCache
from homefinder.service_layer.isochrones import IsochroneResolver
from homefinder.service_layer.listings import ListingsFetcher


# Two overlapping squares (lng, lat). Overlap: lng -85.3..-85.2, lat 35.1..35.2
SQUARE_A = [[-85.4, 35.0], [-85.2, 35.0], [-85.2, 35.2], [-85.4, 35.2], [-85.4, 35.0]]
SQUARE_B = [[-85.3, 35.1], [-85.1, 35.1], [-85.1, 35.3], [-85.3, 35.3], [-85.3, 35.1]]

IN_BOTH = (35.15, -85.25)  # (lat, lng)
ONLY_A = (35.05, -85.35)
ONLY_B = (35.25, -85.15)
OUTSIDE = (36.0, -84.0)


def polygon_geometry(ring: list[list[float]]) -> dict[str, Any]:
    return {"type": "Polygon", "coordinates": [ring]}


def feature(ring: list[list[float]], **props: Any) -> dict[str, Any]:
    return {"type": "Feature", "properties": dict(props), "geometry": polygon_geometry(ring)}


def feature_collection(*rings: list[list[float]]) -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": [feature(r) for r in rings]}


def raw_listing(
    pid: str,
    price: int,
    lat: float | None,
    lng: float | None,
    *,
    beds: int = 3,
    baths: str = "2",
    sqft: int = 1500,
) -> dict[str, Any]:
    coordinate = None if lat is None else {"lat": lat, "lon": lng}
    return {
        "property_id": pid,
        "list_price": price,
        "permalink": f"{pid}_permalink",
        "status": "for_sale",
        "primary_photo": {"href": f"https://img.example/{pid}.jpg"},
        "description": {"beds": beds, "baths_consolidated": baths, "sqft": sqft},
        "location": {
            "address": {
                "line": f"{pid} Main St",
                "city": "Chattanooga",
                "state_code": "TN",
                "postal_code": "37415",
                "coordinate": coordinate,
            }
        },
        "flags": {"is_new_listing": True, "is_pending": None},
    }


class FakeClock:
    """Monotonic fake time. sleep() advances it and yields once."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeGeoProvider:
    def __init__(self, shapes: dict[str, dict[str, Any]]) -> None:
        self.shapes = shapes
        self.geocode_calls: list[str] = []
        self.isochrone_calls: list[tuple[float, float, int]] = []

    async def geocode(self, address: str) -> GeocodeResult:
        self.geocode_calls.append(address)
        if address not in self.shapes:
            raise GeocodeError(address)
        # lat encodes which anchor this is, so isochrone() can find its shape
        idx = list(self.shapes).index(address)
        return GeocodeResult(lat=float(idx + 1), lon=-85.3, formatted=address)

    async def isochrone(self, lat: float, lon: float, minutes: int) -> dict[str, Any]:
        self.isochrone_calls.append((lat, lon, minutes))
        address = list(self.shapes)[int(lat) - 1]
        return self.shapes[address]


class FakeListingsSource:
    """
    Serves pages from a dict keyed by page number. A value that is an
    Exception is raised every time that page is requested.
    """

    def __init__(self, pages: dict[int, Any], page_size: int) -> None:
        self.pages = pages
        self.page_size = page_size
        self.calls: list[int] = []

    async def search_page(self, *, offset: int, limit: int) -> Any:
        page = offset // limit + 1
        self.calls.append(page)
        value = self.pages.get(page, {"properties": [], "matching_rows": 0})
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def queue(clock: FakeClock) -> RequestQueue:
    return RequestQueue(
        requests_per_second=1.0,
        max_retries=3,
        retry_delay_s=5.0,
        max_jitter_s=1.0,
        clock=clock,
        sleep=clock.sleep,
        rng=lambda: 0.5,
    )


@pytest.fixture
def listings_cache(clock: FakeClock) -> TtlCache:
    return TtlCache(MemoryCacheStore("properties_page_"), ttl_s=12 * 3600, clock=clock)


@pytest.fixture
def isochrone_cache(clock: FakeClock) -> TtlCache:
    return TtlCache(MemoryCacheStore("isochrones_"), ttl_s=7 * 86400, clock=clock)


@pytest.fixture
def make_fetcher(queue: RequestQueue, listings_cache: TtlCache):
    def _make(pages: dict[int, Any], page_size: int = 2) -> ListingsFetcher:
        source = FakeListingsSource(pages, page_size)
        return ListingsFetcher(source, queue, listings_cache, page_size=page_size)

    return _make


@pytest.fixture
def make_resolver(isochrone_cache: TtlCache):
    def _make(shapes: dict[str, dict[str, Any]], anchors) -> IsochroneResolver:
        return IsochroneResolver(FakeGeoProvider(shapes), isochrone_cache, anchors)

    return _make


@pytest.fixture
async def engine():
    """In-memory sqlite for the SQL cache store; StaticPool keeps one shared connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def async_session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)

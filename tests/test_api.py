import json

import httpx
import pytest

from homefinder.adapters.cache.memory_store import MemoryCacheStore
from homefinder.config import Settings, settings
from homefinder.entrypoints.api.deps import services_dep
from homefinder.entrypoints.fastapi_app import create_app
from homefinder.service_layer.bootstrap import build_services

from conftest import (
    IN_BOTH,
    ONLY_A,
    SQUARE_A,
    SQUARE_B,
    FakeGeoProvider,
    FakeListingsSource,
    feature,
    feature_collection,
    raw_listing,
)


ANCHORS = [
    {"address": "1 Work Plaza", "driveTime": "15 minutes"},
    {"address": "2 School Rd", "driveTime": "15 minutes"},
]
SHAPES = {"1 Work Plaza": feature_collection(SQUARE_A), "2 School Rd": feature(SQUARE_B)}
PAGES = {
    1: {
        "properties": [raw_listing("fits", 300_000, *IN_BOTH), raw_listing("only_a", 300_000, *ONLY_A)],
        "matching_rows": 3,
    },
    2: {"properties": [raw_listing("last", 250_000, *IN_BOTH)], "matching_rows": 3},
}
BODY = {"budget": {"maxPerMonth": 3000, "downPaymentPercent": 3.5}}


@pytest.fixture
def services(queue):
    cfg = Settings(DRIVE_TIME_ANCHORS=ANCHORS, LISTINGS_PAGE_SIZE=2, CACHE_BACKEND="memory")
    return build_services(
        cfg,
        queue=queue,
        listings_source=FakeListingsSource(PAGES, 2),
        geo_provider=FakeGeoProvider(SHAPES),
        stores=(MemoryCacheStore("properties_page_"), MemoryCacheStore("isochrones_")),
    )


@pytest.fixture
async def client(services, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", None)
    app = create_app(lifespan=False)
    app.dependency_overrides[services_dep] = lambda: services
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


async def test_search_returns_filtered_page(client):
    r = await client.post("/search", json=BODY)

    assert r.status_code == 200
    data = r.json()
    assert [p["id"] for p in data["properties"]] == ["fits"]
    assert data["properties"][0]["monthlyPayment"] > 0
    assert data["pagination"] == {"currentPage": 1, "totalPages": 2, "totalCount": 3}
    assert data["filterStats"]["filteredByLocation"] == 1
    assert len(data["driveTimePolygons"]) == 2
    assert data["driveTimePolygons"][0]["driveTime"] == "15 minutes"
    assert "geoJson" in data["driveTimePolygons"][0]
    combined = data["combinedPolygon"]
    assert combined["type"] == "FeatureCollection"
    assert [f["properties"]["address"] for f in combined["features"]] == ["1 Work Plaza", "2 School Rd"]


async def test_search_enabled_polygon_indices(client):
    r = await client.post("/search", json={**BODY, "enabledPolygonIndices": [0]})

    assert [p["id"] for p in r.json()["properties"]] == ["fits", "only_a"]


async def test_search_second_page(client):
    r = await client.post("/search?page=2", json=BODY)

    data = r.json()
    assert [p["id"] for p in data["properties"]] == ["last"]
    assert data["pagination"]["currentPage"] == 2


async def test_search_unknown_location_is_422(client):
    body = {**BODY, "locations": [{"address": "nowhere", "driveTime": "10 minutes"}]}

    r = await client.post("/search", json=body)

    assert r.status_code == 422
    assert "nowhere" in r.json()["detail"]


async def test_search_rejects_full_down_payment(client):
    r = await client.post("/search", json={"budget": {"maxPerMonth": 3000, "downPaymentPercent": 100}})
    assert r.status_code == 422


async def test_api_key_enforced(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "s3cret")

    assert (await client.post("/cache/clear")).status_code == 401
    r = await client.post("/cache/clear", headers={"X-API-Key": "s3cret"})
    assert r.status_code == 200


async def test_prefetch_json_and_cache_clear(client, services):
    r = await client.get("/prefetch")

    assert r.status_code == 200
    data = r.json()
    assert data["loadedPages"] == [1, 2]
    assert data["totalPages"] == 2
    assert data["totalCount"] == 3
    assert data["missingPages"] is None

    debug = (await client.get("/cache/debug")).json()
    assert [p["page"] for p in debug["cache"]["pages"]] == ["1", "2"]

    r = await client.post("/cache/clear")
    assert r.json()["deleted"] == 2
    assert await services.listings_cache.keys() == []


async def test_prefetch_stream_emits_progress_then_complete(client):
    r = await client.post("/prefetch")

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    events = [json.loads(line[len("data: "):]) for line in r.text.splitlines() if line.startswith("data: ")]
    assert [e["progress"]["current"] for e in events if "progress" in e] == [1, 2]
    assert events[-1]["complete"] is True
    assert events[-1]["totalProperties"] == 3
    assert events[-1]["missingPages"] == []


async def test_isochrone_refresh_debug_and_clear(client, services):
    r = await client.post("/isochrones/refresh")
    assert r.json()["message"] == "Refreshed 2 isochrones successfully"

    debug = (await client.get("/isochrones/debug")).json()
    assert debug["count"] == 2

    r = await client.post("/isochrones/clear")
    assert r.json()["deleted"] == 1
    r = await client.post("/isochrones/clear")
    assert r.json()["message"] == "No isochrones cache to clear"


async def test_search_response_keys_are_camel_case(client):
    data = (await client.post("/search", json=BODY)).json()

    assert set(data) == {
        "properties",
        "driveTimePolygons",
        "combinedPolygon",
        "pagination",
        "filterStats",
        "warnings",
    }
    prop = data["properties"][0]
    assert {"squareFeet", "imageUrl", "listingUrl", "monthlyPayment"} <= set(prop)
    assert not [k for k in prop if "_" in k]
    assert not [k for k in data["filterStats"] if "_" in k]
    assert data["filterStats"]["percentRemaining"] == 50.0

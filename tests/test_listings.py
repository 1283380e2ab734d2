import httpx
import pytest

from homefinder.config import settings
from homefinder.domain.errors import ProviderConfigError, RateLimitError
from homefinder.domain.types import OutcomeStatus
from homefinder.service_layer.listings import normalize_listing, parse_page

from conftest import raw_listing


def test_normalize_listing_maps_upstream_fields():
    p = normalize_listing(raw_listing("p1", 289_900, 35.1, -85.3, beds=4, baths="2.5", sqft=1800))

    assert p.id == "p1"
    assert p.address == "p1 Main St, Chattanooga, TN 37415"
    assert p.price == 289_900
    assert p.bedrooms == 4
    assert p.bathrooms == 2.5
    assert p.square_feet == 1800
    assert (p.lat, p.lng) == (35.1, -85.3)
    assert p.image_url == "https://img.example/p1.jpg"
    assert p.listing_url.endswith("/p1_permalink")
    assert p.monthly_payment == 0
    assert p.status == "for_sale"
    assert p.flags == {"is_new_listing": True}


def test_normalize_listing_defaults():
    p = normalize_listing({"listing_id": "L9"})

    assert p.id == "L9"
    assert p.price == 0
    assert p.bedrooms == 0
    assert p.bathrooms == 0.0
    assert p.square_feet == 0
    assert (p.lat, p.lng) == (0.0, 0.0)
    assert not p.is_locatable
    assert p.image_url == settings.PLACEHOLDER_IMAGE_URL
    assert p.listing_url == "#"


def test_parse_page_total_pages():
    data = {"properties": [raw_listing("a", 1, 35.1, -85.3)], "matching_rows": 401}
    page = parse_page(data, 200)
    assert page.total_count == 401
    assert page.total_pages == 3

    page = parse_page({"properties": [], "total": 400}, 200)
    assert page.total_pages == 2


async def test_fetch_page_caches_and_reuses(make_fetcher):
    fetcher = make_fetcher({1: {"properties": [raw_listing("a", 100_000, 35.1, -85.3)], "matching_rows": 1}})

    first = await fetcher.fetch_page(1)
    second = await fetcher.fetch_page(1)

    assert first.status == OutcomeStatus.ok
    assert second.value == first.value
    assert fetcher.source.calls == [1]


async def test_fetch_page_requests_offset_window(make_fetcher):
    fetcher = make_fetcher({3: {"properties": [raw_listing("c", 1, 35.1, -85.3)], "matching_rows": 5}}, page_size=2)

    res = await fetcher.fetch_page(3)

    assert fetcher.source.calls == [3]
    assert [p.id for p in res.value.properties] == ["c"]
    assert res.value.total_pages == 3


async def test_fetch_page_expired_cache_refetches(make_fetcher, clock):
    fetcher = make_fetcher({1: {"properties": [], "matching_rows": 0}})
    await fetcher.fetch_page(1)

    clock.now += 13 * 3600
    await fetcher.fetch_page(1)
    assert fetcher.source.calls == [1, 1]


@pytest.mark.parametrize(
    "failure, reason",
    [
        (ProviderConfigError("RapidAPI credentials are missing"), "missing_credentials"),
        (ValueError("boom"), "fetch_error:ValueError"),
        (
            httpx.HTTPStatusError(
                "server error",
                request=httpx.Request("GET", "https://x"),
                response=httpx.Response(503, request=httpx.Request("GET", "https://x")),
            ),
            "http_error:503",
        ),
    ],
)
async def test_fetch_page_soft_failures_return_empty_page(make_fetcher, listings_cache, failure, reason):
    fetcher = make_fetcher({1: failure})

    res = await fetcher.fetch_page(1)

    assert res.status == OutcomeStatus.failed
    assert res.reason == reason
    assert res.value.properties == []
    assert res.value.total_pages == 0
    assert await listings_cache.get("1") is None


async def test_fetch_page_malformed_payload(make_fetcher):
    fetcher = make_fetcher({1: {"unexpected": True}})

    res = await fetcher.fetch_page(1)
    assert res.status == OutcomeStatus.failed
    assert res.reason == "malformed_payload"


async def test_fetch_page_rate_limit_propagates_after_retries(make_fetcher):
    fetcher = make_fetcher({1: RateLimitError("429")})

    with pytest.raises(RateLimitError):
        await fetcher.fetch_page(1)
    # first attempt + 3 retries
    assert fetcher.source.calls == [1, 1, 1, 1]


async def test_fetch_page_rejects_page_zero(make_fetcher):
    with pytest.raises(ValueError):
        await make_fetcher({}).fetch_page(0)


async def test_debug_cache_flags_duplicate_pages(make_fetcher):
    same = {"properties": [raw_listing("dup", 1, 35.1, -85.3)], "matching_rows": 4}
    fetcher = make_fetcher({1: same, 2: same})
    await fetcher.fetch_page(1)
    await fetcher.fetch_page(2)

    report = await fetcher.debug_cache()

    assert [p["page"] for p in report["pages"]] == ["1", "2"]
    assert report["pages"][0]["firstIds"] == ["dup"]
    assert report["warnings"]


@pytest.mark.parametrize("baths, expected", [("2.5+", 2.5), ("3 full, 1 half", 3.0), (2, 2.0)])
def test_normalize_listing_bathrooms_take_leading_number(baths, expected):
    p = normalize_listing(raw_listing("x", 1, 35.1, -85.3, baths=baths))
    assert p.bathrooms == expected


def test_normalize_listing_bathrooms_fall_back_to_plain_baths():
    item = raw_listing("x", 1, 35.1, -85.3, baths="unknown")
    item["description"]["baths"] = 2

    assert normalize_listing(item).bathrooms == 2.0

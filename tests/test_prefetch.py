from homefinder.domain.errors import RateLimitError
from homefinder.service_layer.prefetch import PrefetchOrchestrator

from conftest import IN_BOTH, raw_listing


def _page(*ids, total=6):
    return {"properties": [raw_listing(i, 100_000, *IN_BOTH) for i in ids], "matching_rows": total}


async def test_prefetch_all_loads_every_page(make_fetcher):
    fetcher = make_fetcher({1: _page("a", "b"), 2: _page("c", "d"), 3: _page("e", "f")})
    seen = []

    res = await PrefetchOrchestrator(fetcher).prefetch_all(lambda cur, total: seen.append((cur, total)))

    assert [p.id for p in res.properties] == ["a", "b", "c", "d", "e", "f"]
    assert res.total_pages == 3
    assert res.total_count == 6
    assert res.loaded_pages == [1, 2, 3]
    assert res.missing_pages == []
    assert seen == [(1, 3), (2, 3), (3, 3)]


async def test_prefetch_skips_failed_pages(make_fetcher):
    fetcher = make_fetcher({1: _page("a", "b"), 2: RuntimeError("upstream hiccup"), 3: _page("e")})

    res = await PrefetchOrchestrator(fetcher).prefetch_all()

    assert [p.id for p in res.properties] == ["a", "b", "e"]
    assert res.loaded_pages == [1, 3]
    assert res.missing_pages == [2]


async def test_prefetch_skips_rate_limited_page(make_fetcher):
    fetcher = make_fetcher({1: _page("a", "b", total=4), 2: RateLimitError("429 Too Many Requests")})

    res = await PrefetchOrchestrator(fetcher).prefetch_all()

    assert res.loaded_pages == [1]
    assert res.missing_pages == [2]


async def test_prefetch_page_one_failure_returns_empty(make_fetcher):
    fetcher = make_fetcher({1: {"oops": True}})

    res = await PrefetchOrchestrator(fetcher).prefetch_all()

    assert res.properties == []
    assert res.total_pages == 0
    assert res.loaded_pages == []


async def test_prefetch_async_progress_sink_errors_are_ignored(make_fetcher):
    fetcher = make_fetcher({1: _page("a", "b", total=4), 2: _page("c", "d", total=4)})
    calls = []

    async def sink(cur, total):
        calls.append(cur)
        raise RuntimeError("client went away")

    res = await PrefetchOrchestrator(fetcher).prefetch_all(sink)

    assert res.loaded_pages == [1, 2]
    assert calls == [1, 2]


async def test_prefetch_uses_cached_pages(make_fetcher):
    fetcher = make_fetcher({1: _page("a", "b", total=2)})
    await fetcher.fetch_page(1)

    await PrefetchOrchestrator(fetcher).prefetch_all()

    assert fetcher.source.calls == [1]

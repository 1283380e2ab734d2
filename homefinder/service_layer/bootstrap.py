# homefinder/service_layer/bootstrap.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine

from ..adapters.cache.base import CacheStore
from ..adapters.cache.file_store import FileCacheStore
from ..adapters.cache.memory_store import MemoryCacheStore
from ..adapters.cache.sql_store import SqlCacheStore
from ..adapters.clients.geoapify import GeoapifyClient
from ..adapters.clients.rate_limit import RequestQueue
from ..adapters.clients.realtor_listings import RealtorListingsClient
from ..config import Settings, settings as default_settings
from ..db import create_all, make_engine, make_session_maker
from ..domain.types import Anchor
from .cache import TtlCache
from .isochrones import GeoProvider, IsochroneResolver
from .listings import ListingsFetcher, ListingsSource
from .prefetch import PrefetchOrchestrator
from .search import SearchOrchestrator

log = logging.getLogger(__name__)

LISTINGS_NAMESPACE = "properties_page_"
ISOCHRONES_NAMESPACE = "isochrones_"


@dataclass
class Services:
    queue: RequestQueue
    listings_cache: TtlCache
    isochrone_cache: TtlCache
    resolver: IsochroneResolver
    fetcher: ListingsFetcher
    search: SearchOrchestrator
    prefetch: PrefetchOrchestrator
    engine: AsyncEngine | None = None

    async def startup(self) -> None:
        if self.engine is not None:
            await create_all(self.engine)

    async def clear_listings_cache(self) -> int:
        return await self.listings_cache.clear()

    async def clear_isochrone_cache(self) -> int:
        return await self.isochrone_cache.clear()


def _build_stores(cfg: Settings) -> tuple[CacheStore, CacheStore, AsyncEngine | None]:
    backend = (cfg.CACHE_BACKEND or "file").strip().lower()

    if backend == "file":
        return (
            FileCacheStore(cfg.CACHE_DIR, LISTINGS_NAMESPACE),
            FileCacheStore(cfg.CACHE_DIR, ISOCHRONES_NAMESPACE),
            None,
        )
    if backend == "sqlite":
        engine = make_engine(cfg.HOMEFINDER_DB_URL)
        session_maker = make_session_maker(engine)
        return (
            SqlCacheStore(session_maker, LISTINGS_NAMESPACE),
            SqlCacheStore(session_maker, ISOCHRONES_NAMESPACE),
            engine,
        )
    if backend == "memory":
        return MemoryCacheStore(LISTINGS_NAMESPACE), MemoryCacheStore(ISOCHRONES_NAMESPACE), None

    raise ValueError(f"Unknown CACHE_BACKEND={backend!r}. Use file, sqlite or memory.")


def build_services(
    cfg: Settings | None = None,
    *,
    queue: RequestQueue | None = None,
    listings_source: ListingsSource | None = None,
    geo_provider: GeoProvider | None = None,
    stores: tuple[CacheStore, CacheStore] | None = None,
) -> Services:
    """Wire the pipeline. Every collaborator can be swapped out for tests."""
    cfg = cfg or default_settings

    engine: AsyncEngine | None = None
    if stores is not None:
        listings_store, isochrone_store = stores
    else:
        listings_store, isochrone_store, engine = _build_stores(cfg)
    listings_cache = TtlCache(listings_store, ttl_s=float(cfg.LISTINGS_CACHE_TTL_HOURS) * 3600)
    isochrone_cache = TtlCache(isochrone_store, ttl_s=float(cfg.ISOCHRONE_CACHE_TTL_DAYS) * 86400)

    queue = queue or RequestQueue(
        requests_per_second=float(cfg.RATE_LIMIT_RPS),
        max_retries=int(cfg.RATE_LIMIT_MAX_RETRIES),
        retry_delay_s=float(cfg.RATE_LIMIT_RETRY_DELAY_S),
        max_jitter_s=float(cfg.RATE_LIMIT_MAX_JITTER_S),
    )

    resolver = IsochroneResolver(
        geo_provider or GeoapifyClient(api_key=cfg.GEOAPIFY_API_KEY, base_url=cfg.GEOAPIFY_BASE_URL),
        isochrone_cache,
        [Anchor.from_dict(a) for a in cfg.DRIVE_TIME_ANCHORS],
    )
    fetcher = ListingsFetcher(
        listings_source or RealtorListingsClient(api_key=cfg.RAPIDAPI_KEY, host=cfg.RAPIDAPI_HOST),
        queue,
        listings_cache,
        page_size=int(cfg.LISTINGS_PAGE_SIZE),
    )

    return Services(
        queue=queue,
        listings_cache=listings_cache,
        isochrone_cache=isochrone_cache,
        resolver=resolver,
        fetcher=fetcher,
        search=SearchOrchestrator(
            resolver,
            fetcher,
            interest_rate=float(cfg.MORTGAGE_INTEREST_RATE),
            term_years=int(cfg.MORTGAGE_TERM_YEARS),
        ),
        prefetch=PrefetchOrchestrator(fetcher),
        engine=engine,
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    """Process-wide instance; one RequestQueue for every listings call."""
    log.info("Building services (cache backend=%s)", default_settings.CACHE_BACKEND)
    return build_services()

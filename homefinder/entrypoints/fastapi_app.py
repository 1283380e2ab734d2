# homefinder/entrypoints/fastapi_app.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ..service_layer.bootstrap import get_services
from .api.routers import cache, health, isochrones, prefetch, search


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Only the sqlite cache backend has tables to create.
    await get_services().startup()
    yield


def create_app(*, lifespan: bool = True) -> FastAPI:
    app = FastAPI(title="HomeFinder - Drive Time Search", lifespan=_lifespan if lifespan else None)

    # Routers
    app.include_router(health.router)
    app.include_router(search.router)
    app.include_router(prefetch.router)
    app.include_router(cache.router)
    app.include_router(isochrones.router)

    return app

# homefinder/jobs/scheduler.py
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..config import settings
from ..service_layer.bootstrap import Services, get_services

log = logging.getLogger(__name__)


async def run_prefetch_job(services: Services | None = None) -> None:
    """Warm the listings cache. Missing pages are logged, not raised."""
    services = services or get_services()
    try:
        res = await services.prefetch.prefetch_all()
    except Exception:
        log.exception("Scheduled prefetch failed")
        return

    if res.missing_pages:
        log.warning("Scheduled prefetch missing pages: %s", res.missing_pages)
    else:
        log.info("Scheduled prefetch loaded %d pages", len(res.loaded_pages))


def build_scheduler(services: Services | None = None) -> AsyncIOScheduler:
    sched = AsyncIOScheduler()

    # prefetch cadence (default: every 12 hours, matching the listings TTL).
    # Registered as a coroutine function so the executor awaits it on the loop.
    sched.add_job(
        run_prefetch_job,
        "interval",
        minutes=int(settings.SCHED_PREFETCH_INTERVAL_MINUTES),
        args=[services],
        id="prefetch_all",
        max_instances=1,
        coalesce=True,
    )

    return sched

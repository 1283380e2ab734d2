from __future__ import annotations

import asyncio
import logging

from homefinder.jobs.scheduler import build_scheduler, run_prefetch_job
from homefinder.service_layer.bootstrap import get_services

from _logging import quiet_logging


async def main() -> None:
    quiet_logging()

    services = get_services()
    await services.startup()

    scheduler = build_scheduler(services)
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started")

    # warm once at boot instead of waiting a full interval
    await run_prefetch_job(services)

    try:
        while True:
            await asyncio.sleep(3600)
    except (KeyboardInterrupt, asyncio.CancelledError):
        scheduler.shutdown()
        logging.getLogger(__name__).info("Scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())

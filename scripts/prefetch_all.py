# scripts/prefetch_all.py
from __future__ import annotations

import argparse
import asyncio

from homefinder.service_layer.bootstrap import get_services

from _logging import quiet_logging


def _progress(current: int, total: int) -> None:
    print(f"  page {current}/{total}")


async def main() -> None:
    ap = argparse.ArgumentParser(description="Fetch every listings page into the cache.")
    ap.add_argument("--clear-cache", action="store_true", help="drop cached listings pages first")
    args = ap.parse_args()

    quiet_logging()
    services = get_services()
    await services.startup()

    if args.clear_cache:
        n = await services.clear_listings_cache()
        print(f"Cleared {n} cached pages")

    res = await services.prefetch.prefetch_all(_progress)
    print(f"Prefetched {len(res.properties)} properties across {len(res.loaded_pages)}/{res.total_pages} pages")
    if res.missing_pages:
        print(f"Missing pages: {res.missing_pages}")


if __name__ == "__main__":
    asyncio.run(main())

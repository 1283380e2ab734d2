# scripts/smoke_search.py
import asyncio
import os

from homefinder.domain.types import SearchParams
from homefinder.service_layer.bootstrap import get_services

from _logging import quiet_logging


async def main():
    quiet_logging()
    services = get_services()
    await services.startup()

    params = SearchParams(
        max_monthly_payment=float(os.environ.get("MAX_PER_MONTH", "3000")),
        down_payment_percent=float(os.environ.get("DOWN_PCT", "3.5")),
    )
    res = await services.search.search(params, page=int(os.environ.get("PAGE", "1")))
    print(res.filter_stats.snapshot())
    for p in res.properties[:10]:
        print(f"{p.price:>9,}  ${p.monthly_payment:,.0f}/mo  {p.address}")
    if res.warnings:
        print("warnings:", res.warnings)


if __name__ == "__main__":
    asyncio.run(main())

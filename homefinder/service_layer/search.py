# homefinder/service_layer/search.py
from __future__ import annotations

import logging
from dataclasses import replace

from ..domain import affordability
from ..domain.geo import DriveTimeRegion, contained_in_all
from ..domain.types import (
    DriveTimePolygon,
    FilterStats,
    Pagination,
    Property,
    SearchParams,
    SearchResults,
)
from .isochrones import IsochroneResolver
from .listings import ListingsFetcher

log = logging.getLogger(__name__)


def select_polygons(
    polygons: list[DriveTimePolygon],
    enabled_indices: list[int] | None,
) -> list[DriveTimePolygon]:
    """
    Polygons a property must sit inside. No indices (or none that point at a
    real polygon) means all of them.
    """
    if not enabled_indices:
        return list(polygons)
    valid = sorted({i for i in enabled_indices if 0 <= i < len(polygons)})
    if not valid:
        log.warning("No enabled polygon index in range (got %s); using all polygons", enabled_indices)
        return list(polygons)
    return [polygons[i] for i in valid]


def _meets_minimums(p: Property, params: SearchParams) -> bool:
    if params.min_bedrooms is not None and p.bedrooms < params.min_bedrooms:
        return False
    if params.min_bathrooms is not None and p.bathrooms < params.min_bathrooms:
        return False
    if params.min_square_feet is not None and p.square_feet < params.min_square_feet:
        return False
    return True


def filter_properties(
    properties: list[Property],
    regions: list[DriveTimeRegion],
    params: SearchParams,
    max_price: float,
    *,
    interest_rate: float = affordability.DEFAULT_INTEREST_RATE,
    term_years: int = affordability.DEFAULT_TERM_YEARS,
) -> tuple[list[Property], FilterStats]:
    """
    Price, then location (inside every region), then monthly payment, then the
    optional minimums. Upstream order is preserved.
    """
    stats = FilterStats(
        total_properties_on_page=len(properties),
        max_price_filter=max_price,
        max_monthly_payment_filter=params.max_monthly_payment,
        down_payment_percent=params.down_payment_percent,
        enabled_polygon_count=len(regions),
    )

    located: list[Property] = []
    for p in properties:
        if p.price > max_price:
            stats.filtered_by_price += 1
            continue
        if not p.is_locatable:
            stats.filtered_by_location += 1
            stats.unlocatable += 1
            continue
        if not contained_in_all(p.lat, p.lng, regions):
            stats.filtered_by_location += 1
            continue
        located.append(
            replace(
                p,
                monthly_payment=affordability.monthly_payment(
                    p.price,
                    params.down_payment_percent,
                    interest_rate=interest_rate,
                    term_years=term_years,
                ),
            )
        )

    remaining = [p for p in located if _meets_minimums(p, params)]
    stats.filtered_by_minimums = len(located) - len(remaining)
    stats.remaining_after_filters = len(remaining)
    return remaining, stats


class SearchOrchestrator:
    def __init__(
        self,
        resolver: IsochroneResolver,
        fetcher: ListingsFetcher,
        *,
        interest_rate: float = affordability.DEFAULT_INTEREST_RATE,
        term_years: int = affordability.DEFAULT_TERM_YEARS,
    ) -> None:
        self.resolver = resolver
        self.fetcher = fetcher
        self.interest_rate = interest_rate
        self.term_years = term_years

    async def search(
        self,
        params: SearchParams,
        page: int = 1,
        enabled_polygon_indices: list[int] | None = None,
    ) -> SearchResults:
        indices = enabled_polygon_indices if enabled_polygon_indices is not None else params.enabled_polygon_indices

        max_price = affordability.max_price(
            params.max_monthly_payment,
            params.down_payment_percent,
            interest_rate=self.interest_rate,
            term_years=self.term_years,
        )
        log.info("Searching properties with max price: %.0f (page %d)", max_price, page)

        warnings: list[str] = []

        polygons_res = await self.resolver.resolve_polygons(params.anchors)
        if polygons_res.reason:
            warnings.append(polygons_res.reason)
        polygons = polygons_res.value

        page_res = await self.fetcher.fetch_page(page)
        if page_res.reason:
            warnings.append(f"listings_page_{page}:{page_res.reason}")
        listing_page = page_res.value

        regions = [DriveTimeRegion.from_polygon(p) for p in select_polygons(polygons, indices)]

        properties, stats = filter_properties(
            listing_page.properties,
            regions,
            params,
            max_price,
            interest_rate=self.interest_rate,
            term_years=self.term_years,
        )
        log.info(
            "Page %d: %d on page, %d by price, %d by location, %d remaining",
            page,
            stats.total_properties_on_page,
            stats.filtered_by_price,
            stats.filtered_by_location,
            stats.remaining_after_filters,
        )

        return SearchResults(
            properties=properties,
            drive_time_polygons=polygons,
            pagination=Pagination(
                current_page=page,
                total_pages=listing_page.total_pages,
                total_count=listing_page.total_count,
            ),
            filter_stats=stats,
            warnings=warnings,
        )

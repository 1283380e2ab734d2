from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any

from .domain.types import Anchor, SearchParams, SearchResults


class LocationIn(BaseModel):
    address: str = Field(..., min_length=1)
    driveTime: str = "15 minutes"


class BudgetIn(BaseModel):
    maxPerMonth: float = Field(..., ge=0)
    downPaymentPercent: float = Field(..., ge=0, lt=100)


class SearchRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Omitted -> the configured anchor set
    locations: list[LocationIn] | None = None
    budget: BudgetIn
    minBedrooms: int | None = Field(None, ge=0)
    minBathrooms: float | None = Field(None, ge=0)
    minSquareFeet: int | None = Field(None, ge=0)
    enabledPolygonIndices: list[int] | None = None

    def to_params(self) -> SearchParams:
        anchors = None
        if self.locations:
            anchors = [Anchor(address=x.address, drive_time=x.driveTime) for x in self.locations]
        return SearchParams(
            max_monthly_payment=self.budget.maxPerMonth,
            down_payment_percent=self.budget.downPaymentPercent,
            min_bedrooms=self.minBedrooms,
            min_bathrooms=self.minBathrooms,
            min_square_feet=self.minSquareFeet,
            enabled_polygon_indices=self.enabledPolygonIndices,
            anchors=anchors,
        )


class CamelOut(BaseModel):
    # JSON out of the API is camelCase, like the request bodies
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PropertyOut(CamelOut):
    id: str
    address: str
    price: int
    bedrooms: int
    bathrooms: float
    square_feet: int
    lat: float
    lng: float
    image_url: str
    listing_url: str
    monthly_payment: float
    status: str | None = None
    # upstream flag names, passed through as-is
    flags: dict[str, bool] = {}


class DriveTimePolygonOut(CamelOut):
    address: str
    drive_time: str
    minutes: int
    geo_json: dict[str, Any]


class PaginationOut(CamelOut):
    current_page: int
    total_pages: int
    total_count: int


class FilterStatsOut(CamelOut):
    total_properties_on_page: int
    filtered_by_price: int
    filtered_by_location: int
    unlocatable: int
    filtered_by_minimums: int
    remaining_after_filters: int
    max_price_filter: float
    max_monthly_payment_filter: float
    down_payment_percent: float
    enabled_polygon_count: int
    percent_filtered_by_price: float
    percent_filtered_by_location: float
    percent_remaining: float


class SearchResponse(CamelOut):
    properties: list[PropertyOut]
    drive_time_polygons: list[DriveTimePolygonOut]
    combined_polygon: dict[str, Any] | None = None
    pagination: PaginationOut
    filter_stats: FilterStatsOut
    warnings: list[str] = []

    @classmethod
    def from_results(cls, res: SearchResults, combined: dict[str, Any] | None) -> "SearchResponse":
        return cls(
            properties=[PropertyOut(**p.to_dict()) for p in res.properties],
            drive_time_polygons=[
                DriveTimePolygonOut(
                    address=p.address,
                    drive_time=p.drive_time,
                    minutes=p.minutes,
                    geo_json=p.geo_json,
                )
                for p in res.drive_time_polygons
            ],
            combined_polygon=combined,
            pagination=PaginationOut(
                current_page=res.pagination.current_page,
                total_pages=res.pagination.total_pages,
                total_count=res.pagination.total_count,
            ),
            filter_stats=FilterStatsOut(**res.filter_stats.snapshot()),
            warnings=list(res.warnings),
        )



class PrefetchOut(BaseModel):
    success: bool = True
    message: str
    totalPages: int
    totalCount: int
    loadedPages: list[int]
    missingPages: list[int] | None = None


class CacheClearOut(BaseModel):
    success: bool = True
    message: str
    deleted: int = Field(..., ge=0)

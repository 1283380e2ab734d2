# homefinder/domain/types.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Property:
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
    # Derived per search from the caller's down payment; 0 until then.
    monthly_payment: float = 0.0
    status: str | None = None
    flags: dict[str, bool] = field(default_factory=dict)

    @property
    def is_locatable(self) -> bool:
        return bool(self.lat) and bool(self.lng)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Property":
        return cls(
            id=str(d.get("id") or ""),
            address=d.get("address") or "",
            price=int(d.get("price") or 0),
            bedrooms=int(d.get("bedrooms") or 0),
            bathrooms=float(d.get("bathrooms") or 0.0),
            square_feet=int(d.get("square_feet") or 0),
            lat=float(d.get("lat") or 0.0),
            lng=float(d.get("lng") or 0.0),
            image_url=d.get("image_url") or "",
            listing_url=d.get("listing_url") or "#",
            monthly_payment=float(d.get("monthly_payment") or 0.0),
            status=d.get("status"),
            flags=dict(d.get("flags") or {}),
        )


@dataclass(frozen=True)
class Anchor:
    address: str
    drive_time: str

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Anchor":
        return cls(
            address=str(d.get("address") or ""),
            drive_time=str(d.get("driveTime") or d.get("drive_time") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {"address": self.address, "driveTime": self.drive_time}


@dataclass(frozen=True)
class DriveTimePolygon:
    """
    One anchor's isochrone as returned by the provider.

    `geo_json` is a Feature, a FeatureCollection or a bare geometry. It is
    treated as read-only once cached; containment goes through
    `homefinder.domain.geo.DriveTimeRegion`, which copies coordinates.
    """
    address: str
    drive_time: str
    geo_json: dict[str, Any]
    minutes: int = 15

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "driveTime": self.drive_time,
            "minutes": self.minutes,
            "geoJson": self.geo_json,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "DriveTimePolygon":
        return cls(
            address=str(d.get("address") or ""),
            drive_time=str(d.get("driveTime") or ""),
            geo_json=d.get("geoJson") or {},
            minutes=int(d.get("minutes") or 15),
        )


@dataclass(frozen=True)
class ListingsPage:
    properties: list[Property]
    total_count: int
    total_pages: int

    @classmethod
    def empty(cls) -> "ListingsPage":
        return cls(properties=[], total_count=0, total_pages=0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "properties": [p.to_dict() for p in self.properties],
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ListingsPage":
        return cls(
            properties=[Property.from_dict(x) for x in (d.get("properties") or [])],
            total_count=int(d.get("totalCount") or 0),
            total_pages=int(d.get("totalPages") or 0),
        )


class OutcomeStatus(str, Enum):
    ok = "ok"
    degraded = "degraded"
    failed = "failed"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result carrier for operations that used to default-and-continue.

    `failed` still carries a usable value (an empty page, an empty list) so
    callers that only care about data keep working; callers that care about
    *why* the data is empty read `status` / `reason`.
    """
    status: OutcomeStatus
    value: T
    reason: str | None = None

    @classmethod
    def ok(cls, value: T) -> "Outcome[T]":
        return cls(OutcomeStatus.ok, value)

    @classmethod
    def degraded(cls, value: T, reason: str) -> "Outcome[T]":
        return cls(OutcomeStatus.degraded, value, reason)

    @classmethod
    def failed(cls, value: T, reason: str) -> "Outcome[T]":
        return cls(OutcomeStatus.failed, value, reason)

    @property
    def is_ok(self) -> bool:
        return self.status == OutcomeStatus.ok


@dataclass(frozen=True)
class SearchParams:
    max_monthly_payment: float
    down_payment_percent: float
    min_bedrooms: int | None = None
    min_bathrooms: float | None = None
    min_square_feet: int | None = None
    enabled_polygon_indices: list[int] | None = None
    anchors: list[Anchor] | None = None


@dataclass
class FilterStats:
    total_properties_on_page: int = 0
    filtered_by_price: int = 0
    # Passed price, failed location. Includes unlocatable properties.
    filtered_by_location: int = 0
    # Subset of filtered_by_location that had no coordinates at all.
    unlocatable: int = 0
    filtered_by_minimums: int = 0
    remaining_after_filters: int = 0
    max_price_filter: float = 0.0
    max_monthly_payment_filter: float = 0.0
    down_payment_percent: float = 0.0
    enabled_polygon_count: int = 0

    def _pct(self, n: int) -> float:
        if not self.total_properties_on_page:
            return 0.0
        return round(100.0 * n / self.total_properties_on_page, 1)

    @property
    def percent_filtered_by_price(self) -> float:
        return self._pct(self.filtered_by_price)

    @property
    def percent_filtered_by_location(self) -> float:
        return self._pct(self.filtered_by_location)

    @property
    def percent_remaining(self) -> float:
        return self._pct(self.remaining_after_filters)

    def snapshot(self) -> dict[str, Any]:
        out = asdict(self)
        out["percent_filtered_by_price"] = self.percent_filtered_by_price
        out["percent_filtered_by_location"] = self.percent_filtered_by_location
        out["percent_remaining"] = self.percent_remaining
        return out


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_count: int


@dataclass(frozen=True)
class SearchResults:
    properties: list[Property]
    drive_time_polygons: list[DriveTimePolygon]
    pagination: Pagination
    filter_stats: FilterStats
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PrefetchResult:
    properties: list[Property]
    total_count: int
    total_pages: int
    loaded_pages: list[int]

    @property
    def missing_pages(self) -> list[int]:
        loaded = set(self.loaded_pages)
        return [p for p in range(1, self.total_pages + 1) if p not in loaded]

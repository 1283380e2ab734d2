# homefinder/domain/geo.py
"""
GeoJSON normalization and point containment.

Isochrone providers hand back a Feature, a FeatureCollection or a bare
geometry depending on endpoint and version. Everything is normalized once into
a flat tuple of shapely geometries so containment never has to sniff types.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from shapely.errors import ShapelyError
from shapely.geometry import Point, shape
from shapely.geometry.base import BaseGeometry

from .types import DriveTimePolygon

log = logging.getLogger(__name__)

AREA_GEOMETRY_TYPES = {"Polygon", "MultiPolygon"}


def iter_geometries(geo_json: dict[str, Any] | None) -> Iterable[dict[str, Any]]:
    """Yield raw geometry dicts from a Feature, FeatureCollection or bare geometry."""
    if not isinstance(geo_json, dict):
        return
    kind = geo_json.get("type")

    if kind == "FeatureCollection":
        for feature in geo_json.get("features") or []:
            if isinstance(feature, dict) and isinstance(feature.get("geometry"), dict):
                yield feature["geometry"]
    elif kind == "Feature":
        if isinstance(geo_json.get("geometry"), dict):
            yield geo_json["geometry"]
    elif kind in AREA_GEOMETRY_TYPES:
        yield geo_json
    else:
        log.warning("Unhandled geoJson type: %r", kind)


def normalize_geojson(geo_json: dict[str, Any] | None) -> tuple[BaseGeometry, ...]:
    """
    Convert any supported GeoJSON shape into shapely geometries.

    A malformed feature is skipped (it simply contains nothing) rather than
    failing the whole polygon.
    """
    shapes: list[BaseGeometry] = []
    for geom in iter_geometries(geo_json):
        try:
            s = shape(geom)
        except (ShapelyError, ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
            log.warning("Skipping malformed geometry (%s): %s", geom.get("type"), e)
            continue
        if s.is_empty:
            continue
        shapes.append(s)
    return tuple(shapes)


@dataclass(frozen=True)
class DriveTimeRegion:
    address: str
    drive_time: str
    shapes: tuple[BaseGeometry, ...]

    @classmethod
    def from_polygon(cls, polygon: DriveTimePolygon) -> "DriveTimeRegion":
        return cls(
            address=polygon.address,
            drive_time=polygon.drive_time,
            shapes=normalize_geojson(polygon.geo_json),
        )

    def contains(self, lat: float, lng: float) -> bool:
        """Boundary counts as inside. First matching shape wins."""
        point = Point(lng, lat)
        for s in self.shapes:
            try:
                if s.covers(point):
                    return True
            except ShapelyError as e:
                log.warning("Containment check failed for %s: %s", self.address, e)
        return False


def contained_in_all(lat: float, lng: float, regions: list[DriveTimeRegion]) -> bool:
    """
    AND semantics: the point must be inside every region.

    Zero coordinates mean "unlocatable" and never match. An empty region list
    matches nothing, since there is no area to be inside of.
    """
    if not lat or not lng or not regions:
        return False
    return all(r.contains(lat, lng) for r in regions)


def combine_polygons(polygons: list[DriveTimePolygon]) -> dict[str, Any] | None:
    """
    Flatten every Feature of every polygon into one FeatureCollection for
    rendering, stamping each with its anchor's address and drive time.

    Display only. Features are deep-copied so cached GeoJSON is left untouched.
    """
    if not polygons:
        return None

    features: list[dict[str, Any]] = []
    for p in polygons:
        gj = p.geo_json or {}
        kind = gj.get("type")
        if kind == "FeatureCollection":
            source = [f for f in gj.get("features") or [] if isinstance(f, dict) and f.get("geometry")]
        elif kind == "Feature" and gj.get("geometry"):
            source = [gj]
        elif kind in AREA_GEOMETRY_TYPES:
            source = [{"type": "Feature", "geometry": gj, "properties": {}}]
        else:
            source = []

        for f in source:
            feature = copy.deepcopy(f)
            props = dict(feature.get("properties") or {})
            props["address"] = p.address
            props["driveTime"] = p.drive_time
            feature["properties"] = props
            features.append(feature)

    log.debug("Created collection with %d features", len(features))
    return {"type": "FeatureCollection", "features": features}


def describe_polygon(polygon: DriveTimePolygon) -> dict[str, Any]:
    """Shape summary used by the isochrone debug endpoint."""
    gj = polygon.geo_json or {}
    feats = gj.get("features") if isinstance(gj.get("features"), list) else []
    return {
        "address": polygon.address,
        "driveTime": polygon.drive_time,
        "minutes": polygon.minutes,
        "geoJsonType": gj.get("type"),
        "hasFeaturesArray": isinstance(gj.get("features"), list),
        "featureCount": len(feats),
        "featureTypes": [f.get("type") for f in feats if isinstance(f, dict)],
        "geometryTypes": [
            (f.get("geometry") or {}).get("type") for f in feats if isinstance(f, dict)
        ],
        "normalizedShapes": len(normalize_geojson(gj)),
    }

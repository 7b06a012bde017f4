"""
Distance calculator.

Two coordinate systems, never mixed in one call:

  - Geographic mode: haversine great-circle distance between GeoPoints, in
    miles, using the single EARTH_RADIUS_MILES constant from config.
  - Normalized-plane mode: PlanePoints in the unit square are treated as a
    continental-US proxy. The x delta is scaled by PLANE_WIDTH_MILES, the y
    delta by PLANE_HEIGHT_MILES, and the Euclidean norm is returned. This is
    an explicit approximation for layouts that have no real coordinates.

distance() dispatches on the point types and raises MixedCoordinateModeError
when given one of each.
"""

import math
from enum import Enum
from typing import Iterable

import pandas as pd

from pop_engine.config import (
    EARTH_RADIUS_MILES,
    KM_PER_MILE,
    PLANE_HEIGHT_MILES,
    PLANE_WIDTH_MILES,
)
from pop_engine.coords import CONUS_BOUNDS
from pop_engine.errors import MixedCoordinateModeError
from pop_engine.ontology import GeoPoint, PlanePoint, Point


class DistanceMode(str, Enum):
    GEOGRAPHIC = "geographic"
    PLANE = "plane"


def haversine_miles(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in miles."""
    phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlambda = math.radians(b.longitude - a.longitude)

    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # min() guards asin against h drifting just above 1.0 for antipodal points
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(h)))


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_miles(a, b) * KM_PER_MILE


def plane_distance_miles(a: PlanePoint, b: PlanePoint) -> float:
    """Approximate miles between two unit-square points."""
    dx = (b.x - a.x) * PLANE_WIDTH_MILES
    dy = (b.y - a.y) * PLANE_HEIGHT_MILES
    return math.hypot(dx, dy)


def mode_of(point: Point) -> DistanceMode:
    if isinstance(point, GeoPoint):
        return DistanceMode.GEOGRAPHIC
    if isinstance(point, PlanePoint):
        return DistanceMode.PLANE
    raise TypeError(f"Not a GeoPoint or PlanePoint: {point!r}")


def distance(a: Point, b: Point) -> float:
    """Distance in miles between two points of the same coordinate system."""
    mode_a, mode_b = mode_of(a), mode_of(b)
    if mode_a != mode_b:
        raise MixedCoordinateModeError(
            f"Cannot measure {mode_a.value} point against {mode_b.value} point"
        )
    if mode_a == DistanceMode.GEOGRAPHIC:
        return haversine_miles(a, b)
    return plane_distance_miles(a, b)


def run_mode(entities: Iterable) -> DistanceMode:
    """Coordinate mode shared by every located entity in a run.

    Entities without a valid location are ignored. An empty run defaults to
    geographic mode. Raises MixedCoordinateModeError when both modes appear.
    """
    modes = {mode_of(e.location) for e in entities if e.has_location}
    if len(modes) > 1:
        raise MixedCoordinateModeError(
            "Run mixes geographic and normalized-plane coordinates"
        )
    return modes.pop() if modes else DistanceMode.GEOGRAPHIC


def distance_matrix(sites, facilities) -> pd.DataFrame:
    """Miles from every located site (rows) to every located facility (columns).

    Built from distance() so the values match the scalar calls exactly.
    """
    located_sites = [s for s in sites if s.has_location]
    located_facilities = [f for f in facilities if f.has_location]
    rows = [
        [distance(s.location, f.location) for f in located_facilities]
        for s in located_sites
    ]
    return pd.DataFrame(
        rows,
        index=pd.Index([s.id for s in located_sites], name="site_id"),
        columns=pd.Index([f.id for f in located_facilities], name="facility_id"),
        dtype=float,
    )


# ── Plane <-> geography projection ──────────────────────────────────────────
# Equirectangular mapping over the continental-US box. y grows southward to
# match screen coordinates.

def geo_to_plane(point: GeoPoint) -> PlanePoint:
    min_lon, max_lon, min_lat, max_lat = CONUS_BOUNDS
    x = (point.longitude - min_lon) / (max_lon - min_lon)
    y = (max_lat - point.latitude) / (max_lat - min_lat)
    return PlanePoint(min(1.0, max(0.0, x)), min(1.0, max(0.0, y)))


def plane_to_geo(point: PlanePoint) -> GeoPoint:
    min_lon, max_lon, min_lat, max_lat = CONUS_BOUNDS
    return GeoPoint(
        latitude=max_lat - point.y * (max_lat - min_lat),
        longitude=min_lon + point.x * (max_lon - min_lon),
    )


def as_geo(point: Point) -> GeoPoint:
    """Geographic view of any point; plane points are projected onto the US box."""
    if isinstance(point, PlanePoint):
        return plane_to_geo(point)
    return point

"""
Geographic matching.

Point-in-polygon testing, polygon centroids, great-circle distance and
latitude-corrected polygon area. All functions are pure.

Boundary behavior: points exactly on an edge or vertex are classified by the
even-odd ray cast as-is. A point on a left or bottom edge usually counts as
inside and one on a right or top edge as outside, but callers must not rely
on either.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from ..core.errors import ErrorCode
from ..core.result import Result, err, ok
from ..models.geo import Geofence, LatLng, Polygon
from ..models.signal import GeofenceTarget, GlobalTarget, PolygonTarget

# Mean Earth radius (km)
EARTH_RADIUS_KM = 6371.0

# Minimum vertices for a closed polygon
MIN_POLYGON_POINTS = 3


# =============================================================================
# Validation
# =============================================================================


def validate_lat_lng(point: LatLng) -> Result[LatLng]:
    """Check coordinate bounds and finiteness."""
    if not math.isfinite(point.lat) or not -90 <= point.lat <= 90:
        return err(ErrorCode.GEO_INVALID_LAT, "Latitude is invalid.", field="lat")
    if not math.isfinite(point.lng) or not -180 <= point.lng <= 180:
        return err(ErrorCode.GEO_INVALID_LNG, "Longitude is invalid.", field="lng")
    return ok(point)


def validate_polygon(polygon: Polygon) -> Result[Polygon]:
    """A polygon needs at least 3 points, each with valid coordinates."""
    if len(polygon.points) < MIN_POLYGON_POINTS:
        return err(
            ErrorCode.GEO_INVALID_POLYGON,
            f"Polygon must have at least {MIN_POLYGON_POINTS} points.",
            field="points",
        )

    for point in polygon.points:
        result = validate_lat_lng(point)
        if not result.ok:
            return result

    return ok(polygon)


# =============================================================================
# Containment
# =============================================================================


def is_point_in_polygon(point: LatLng, polygon: Polygon) -> bool:
    """
    Even-odd ray cast.

    Casts a horizontal ray from the point towards +lng and toggles on every
    edge crossing. Longitude is treated as x and latitude as y; polygons
    spanning the antimeridian are not supported.
    """
    points = polygon.points
    inside = False
    x, y = point.lng, point.lat

    j = len(points) - 1
    for i in range(len(points)):
        xi, yi = points[i].lng, points[i].lat
        xj, yj = points[j].lng, points[j].lat

        # (yi > y) != (yj > y) guarantees yj != yi
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i

    return inside


def polygon_within_polygon(inner: Polygon, outer: Polygon) -> bool:
    """True if every vertex of ``inner`` lies inside ``outer``."""
    return all(is_point_in_polygon(p, outer) for p in inner.points)


# =============================================================================
# Centroids & Distance
# =============================================================================


def polygon_centroid(points: Sequence[LatLng]) -> LatLng | None:
    """Arithmetic mean of the vertices, or None for an empty sequence."""
    if not points:
        return None
    lat = sum(p.lat for p in points) / len(points)
    lng = sum(p.lng for p in points) / len(points)
    return LatLng(lat=lat, lng=lng)


def representative_point(
    target: GlobalTarget | GeofenceTarget | PolygonTarget,
    geofence: Geofence | None = None,
) -> LatLng | None:
    """
    Single point standing in for a signal target when measuring distance.

    Args:
        target: Signal target
        geofence: Resolved geofence for geofence targets

    Returns:
        Vertex centroid, or None for global targets and unresolved geofences
    """
    if isinstance(target, PolygonTarget):
        return polygon_centroid(target.polygon.points)

    if isinstance(target, GeofenceTarget):
        if geofence is None:
            return None
        return polygon_centroid(geofence.polygon.points)

    return None


def haversine_km(a: LatLng, b: LatLng) -> float:
    """Great-circle distance between two points in kilometres."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.lng - a.lng)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


# =============================================================================
# Area
# =============================================================================


def polygon_area_km2(points: Sequence[LatLng]) -> float:
    """
    Approximate polygon area in square kilometres.

    Projects each vertex onto a local tangent plane (y = R * lat, x = R * lng *
    cos(lat)), so longitude spans shrink towards the poles, then applies the
    shoelace formula. The result is orientation independent.

    Returns 0.0 for fewer than 3 points.
    """
    if len(points) < MIN_POLYGON_POINTS:
        return 0.0

    projected = [
        (
            EARTH_RADIUS_KM * math.radians(p.lng) * math.cos(math.radians(p.lat)),
            EARTH_RADIUS_KM * math.radians(p.lat),
        )
        for p in points
    ]

    twice_area = 0.0
    n = len(projected)
    for i in range(n):
        x1, y1 = projected[i]
        x2, y2 = projected[(i + 1) % n]
        twice_area += x1 * y2 - x2 * y1

    return abs(twice_area) / 2

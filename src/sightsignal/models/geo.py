"""
Geographic models: coordinates, polygons and named geofences.

Coordinate bounds and the 3-point polygon minimum are checked by
``sightsignal.services.geo.validate_polygon`` so that callers receive a
Result instead of a construction error.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from .base import SightSignalModel
from .ids import GeofenceId, UserId

GeofenceVisibility = Literal["public", "private"]


class LatLng(SightSignalModel):
    """A WGS84 coordinate in decimal degrees."""

    lat: float
    lng: float


class Polygon(SightSignalModel):
    """Closed ring of points; the last point connects back to the first."""

    points: tuple[LatLng, ...] = Field(default_factory=tuple)


class Geofence(SightSignalModel):
    """A named, reusable polygon area that signals can target."""

    id: GeofenceId
    name: str
    polygon: Polygon
    visibility: GeofenceVisibility = "private"
    owner_id: UserId | None = None

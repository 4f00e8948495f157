"""
Search Region and Location Provider

The regional text search needs a center point. The region built here is
deliberately huge (10,000 km each way by default) so it never acts as a
real filter; it only anchors the query near the latest known location.
"""

import math
from dataclasses import dataclass
from typing import Tuple

METERS_PER_DEGREE = 111_320.0  # ~1 degree of latitude
DEFAULT_REGION_SPAN_M = 10_000_000


@dataclass(frozen=True)
class Coordinate:
    latitude: float = 0.0
    longitude: float = 0.0


ORIGIN = Coordinate(0.0, 0.0)


def validate_coordinate(latitude: float, longitude: float) -> Coordinate:
    """Build a Coordinate, raising ValueError when out of range."""
    lat = float(latitude)
    lng = float(longitude)
    if math.isnan(lat) or not -90.0 <= lat <= 90.0:
        raise ValueError(f"latitude out of range: {latitude}")
    if math.isnan(lng) or not -180.0 <= lng <= 180.0:
        raise ValueError(f"longitude out of range: {longitude}")
    return Coordinate(lat, lng)


class LocationProvider:
    """
    Holds the most recent known device coordinate.

    Read (not subscribed to) when a regional search starts. Until the first
    update arrives the origin is reported.
    """

    def __init__(self, initial: Coordinate = ORIGIN):
        self._latest = initial

    def update(self, latitude: float, longitude: float) -> Coordinate:
        self._latest = validate_coordinate(latitude, longitude)
        return self._latest

    def latest(self) -> Coordinate:
        return self._latest


@dataclass(frozen=True)
class SearchRegion:
    center: Coordinate
    latitudinal_meters: float = DEFAULT_REGION_SPAN_M
    longitudinal_meters: float = DEFAULT_REGION_SPAN_M

    @classmethod
    def around(
        cls,
        center: Coordinate,
        latitudinal_meters: float = DEFAULT_REGION_SPAN_M,
        longitudinal_meters: float = DEFAULT_REGION_SPAN_M,
    ) -> "SearchRegion":
        return cls(center, float(latitudinal_meters), float(longitudinal_meters))

    def viewbox(self) -> Tuple[float, float, float, float]:
        """
        Bounding box as (west, north, east, south) in degrees, clamped to
        valid ranges.
        """
        half_lat = self.latitudinal_meters / 2 / METERS_PER_DEGREE
        # Floor the cosine so boxes centered on a pole stay finite
        cos_lat = max(math.cos(math.radians(self.center.latitude)), 0.01)
        half_lng = self.longitudinal_meters / 2 / (METERS_PER_DEGREE * cos_lat)

        north = min(self.center.latitude + half_lat, 90.0)
        south = max(self.center.latitude - half_lat, -90.0)
        east = min(self.center.longitude + half_lng, 180.0)
        west = max(self.center.longitude - half_lng, -180.0)
        return (west, north, east, south)

"""
Geospatial helpers.

Spherical-earth math is accurate enough for walking distances, so this module
stays free of GIS dependencies.
"""
from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt

EARTH_RADIUS_METERS = 6_371_000
METERS_PER_DEGREE_LATITUDE = 111_000

# Average walking stride and pace
STRIDE_LENGTH_METERS = 0.762
WALKING_METERS_PER_MINUTE = 84


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned latitude/longitude rectangle in decimal degrees."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return (
            self.min_lat <= lat <= self.max_lat
            and self.min_lon <= lon <= self.max_lon
        )


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute great-circle distance in meters between two points."""
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    d_phi = radians(lat2 - lat1)
    d_lambda = radians(lon2 - lon1)

    a = sin(d_phi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(d_lambda / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def bounding_box(lat: float, lon: float, radius_meters: float) -> BoundingBox:
    """Rectangle enclosing the circle of ``radius_meters`` around a point.

    The box over-includes the corners, so callers must post-filter by
    haversine distance.
    """
    lat_delta = radius_meters / METERS_PER_DEGREE_LATITUDE
    cos_lat = cos(radians(lat))
    if cos_lat < 1e-9:
        # At a pole every longitude is within reach
        return BoundingBox(
            min_lat=lat - lat_delta,
            max_lat=lat + lat_delta,
            min_lon=-180.0,
            max_lon=180.0,
        )

    # Meridians converge towards the poles
    lon_delta = radius_meters / (METERS_PER_DEGREE_LATITUDE * cos_lat)

    return BoundingBox(
        min_lat=lat - lat_delta,
        max_lat=lat + lat_delta,
        min_lon=lon - lon_delta,
        max_lon=lon + lon_delta,
    )


def footsteps_for_distance(distance_meters: float) -> int:
    """Approximate number of steps needed to walk a distance."""
    return round(distance_meters / STRIDE_LENGTH_METERS)


def walking_minutes_for_distance(distance_meters: float) -> int:
    return round(distance_meters / WALKING_METERS_PER_MINUTE)

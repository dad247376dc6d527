"""
Purpose: Great-circle distance and travel-time estimates.
What it does:
- haversine_km: distance between two (lon, lat) points in kilometers
- estimate_travel_minutes: minutes needed at a fixed average speed
- validate_coordinate: fail fast on anything that would turn into NaN

Rule: Pure functions only. No I/O, no dispatch rules.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import Tuple

# Internal coordinate type: (lon, lat) in decimal degrees
LonLat = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0
DEFAULT_AVERAGE_SPEED_KMH = 30.0


class InvalidCoordinate(ValueError):
    """Raised when a coordinate pair is missing, malformed or non-finite."""
    kind = "InvalidCoordinate"


def validate_coordinate(point) -> LonLat:
    """
    Returns the point as a (lon, lat) float tuple or raises InvalidCoordinate.
    """
    try:
        lon, lat = point
    except (TypeError, ValueError):
        raise InvalidCoordinate(f"Expected a (longitude, latitude) pair, got {point!r}")

    for value in (lon, lat):
        if isinstance(value, bool) or not isinstance(value, Real):
            raise InvalidCoordinate(f"Coordinate values must be numbers, got {point!r}")
        if not math.isfinite(value):
            raise InvalidCoordinate(f"Coordinate values must be finite, got {point!r}")

    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinate(f"Longitude out of range: {lon}")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinate(f"Latitude out of range: {lat}")

    return float(lon), float(lat)


def haversine_km(a: LonLat, b: LonLat) -> float:
    """
    Great-circle distance between two (lon, lat) points, in kilometers.

    Accounts for Earth's curvature using the haversine formula with a
    6371 km radius, which is accurate enough for last-mile distances.
    """
    lon1, lat1 = validate_coordinate(a)
    lon2, lat2 = validate_coordinate(b)

    lon1, lat1, lon2, lat2 = map(math.radians, [lon1, lat1, lon2, lat2])

    dlon = lon2 - lon1
    dlat = lat2 - lat1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # clamp: float error can push h a hair above 1 for antipodal points
    c = 2 * math.asin(math.sqrt(min(1.0, h)))
    return EARTH_RADIUS_KM * c


def estimate_travel_minutes(distance_km: float, average_speed_kmh: float = DEFAULT_AVERAGE_SPEED_KMH) -> int:
    """
    Travel time at a fixed average speed, rounded to the nearest minute.
    """
    if isinstance(distance_km, bool) or not isinstance(distance_km, Real) or not math.isfinite(distance_km):
        raise InvalidCoordinate(f"Distance must be a finite number, got {distance_km!r}")
    if distance_km < 0:
        raise InvalidCoordinate(f"Distance cannot be negative: {distance_km}")
    if average_speed_kmh <= 0:
        raise ValueError("average_speed_kmh must be > 0")

    # Halves round up, so 2.5 minutes is quoted as 3
    return int(math.floor(distance_km * 60 / average_speed_kmh + 0.5))

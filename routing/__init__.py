#Marks routing as a package.
#Re-exports the clean public API (haversine_km, estimate_travel_minutes, check_radius)
#so other modules import from routing without knowing internal file names.
#No business logic.

from .distance import (
    LonLat,
    InvalidCoordinate,
    haversine_km,
    estimate_travel_minutes,
    validate_coordinate,
)
from .geofence import GeofenceCheck, check_radius, distance_m, is_within_radius

__all__ = [
           "LonLat",
           "InvalidCoordinate",
           "haversine_km",
           "estimate_travel_minutes",
           "validate_coordinate",
           "GeofenceCheck",
           "check_radius",
           "distance_m",
           "is_within_radius",
           ]

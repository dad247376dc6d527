#Purpose: Straight-line geofencing for proof-of-presence checks.
#Answers "is the rider standing at the pharmacy?" before a pickup proof is accepted.
#Typical responsibilities:
#distance between the rider and the pickup point in meters
#apply a radius threshold (400 m by default)
#report the measured distance so the API can show how far off the rider is
#Output: a GeofenceCheck with the verdict and the metrics behind it.

from dataclasses import dataclass #for simple data structures
from typing import Optional

from routing.distance import LonLat, haversine_km

DEFAULT_PICKUP_RADIUS_M = 400.0


@dataclass(frozen=True) #immutable result of a single geofence check
class GeofenceCheck:
    """
    Result of checking one point against a circular fence.
    """

    distance_m: float # from the point to the centre of the fence
    radius_m: float
    inside: bool


def distance_m(a: LonLat, b: LonLat) -> float:
    """Distance between two (lon, lat) points in meters."""
    return haversine_km(a, b) * 1000.0


def check_radius(point: LonLat, centre: LonLat, radius_m: Optional[float] = None) -> GeofenceCheck:
    """
    Measures `point` against a circular fence around `centre`.

    The boundary counts as inside, so a rider exactly on the radius passes.
    """
    radius_m = DEFAULT_PICKUP_RADIUS_M if radius_m is None else radius_m
    if radius_m < 0:
        raise ValueError("radius_m must be >= 0")

    measured = distance_m(point, centre)
    return GeofenceCheck(distance_m=measured, radius_m=radius_m, inside=measured <= radius_m)


def is_within_radius(point: LonLat, centre: LonLat, radius_m: Optional[float] = None) -> bool:
    return check_radius(point, centre, radius_m).inside

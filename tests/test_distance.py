import math

import pytest

from routing import (
    InvalidCoordinate,
    check_radius,
    estimate_travel_minutes,
    haversine_km,
    is_within_radius,
    validate_coordinate,
)


def test_haversine_zero_for_same_point():
    assert haversine_km((77.6, 12.97), (77.6, 12.97)) == 0.0


def test_haversine_is_symmetric():
    a = (77.5946, 12.9716)
    b = (77.6408, 12.9784)
    assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))


def test_haversine_one_degree_of_latitude():
    # 2 * pi * 6371 / 360
    assert haversine_km((0.0, 0.0), (0.0, 1.0)) == pytest.approx(111.195, abs=0.01)


def test_haversine_takes_longitude_first():
    # one degree of longitude shrinks with latitude, one of latitude does not
    at_60_north = haversine_km((10.0, 60.0), (11.0, 60.0))
    assert at_60_north == pytest.approx(111.195 / 2, rel=0.01)


@pytest.mark.parametrize("bad", [
    (float("nan"), 12.0),
    (77.0, float("inf")),
    (181.0, 0.0),
    (0.0, -90.5),
    ("77.0", 12.0),
    (True, 12.0),
    None,
    (1.0,),
])
def test_invalid_coordinates_raise(bad):
    with pytest.raises(InvalidCoordinate):
        haversine_km(bad, (0.0, 0.0))


def test_validate_coordinate_returns_floats():
    assert validate_coordinate((77, 12)) == (77.0, 12.0)


def test_travel_minutes_at_30_kmh():
    assert estimate_travel_minutes(15.0) == 30
    assert estimate_travel_minutes(0.0) == 0
    # 1.3 km -> 2.6 min
    assert estimate_travel_minutes(1.3) == 3
    # 1.25 km -> 2.5 min, 0.75 km -> 1.5 min: halves round up
    assert estimate_travel_minutes(1.25) == 3
    assert estimate_travel_minutes(0.75) == 2


def test_travel_minutes_rejects_non_finite():
    with pytest.raises(InvalidCoordinate):
        estimate_travel_minutes(math.nan)
    with pytest.raises(InvalidCoordinate):
        estimate_travel_minutes(-1.0)


def test_geofence_boundary_counts_as_inside():
    pharmacy = (77.6070, 12.9755)
    rider = (77.6070, 12.9755 + 0.003)  # ~334 m north

    check = check_radius(rider, pharmacy, 400)
    assert check.inside
    assert check.distance_m == pytest.approx(333.6, abs=1.0)

    assert not check_radius(rider, pharmacy, 300).inside
    assert check_radius(rider, pharmacy, check.distance_m).inside


def test_is_within_radius_uses_default_pickup_radius():
    pharmacy = (77.6070, 12.9755)
    assert is_within_radius((77.6070, 12.9755 + 0.003), pharmacy)
    assert not is_within_radius((77.6070, 12.9755 + 0.004), pharmacy)
    assert is_within_radius((77.6070, 12.9755 + 0.004), pharmacy, radius_m=500)

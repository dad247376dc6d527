import pytest

from .factories import CENTRE, World, active_pharmacy, offset, online_rider


@pytest.fixture
def world_factory():
    return World


@pytest.fixture
def world():
    return World(
        riders=[online_rider("rider-near", offset(CENTRE, dlat=0.002))],
        pharmacies=[active_pharmacy("pharm-near", offset(CENTRE, dlat=0.001))],
    )

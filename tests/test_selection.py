import pytest

from dispatch import filter_eligible_riders, rank_candidates, require_nearest, select_nearest
from orders.exceptions import NoCandidateAvailable
from riders import LicenseStatus, Rider, RiderStatus
from routing import InvalidCoordinate

from .factories import CENTRE, offset, online_rider


@pytest.fixture
def pool():
    return [
        online_rider("far", offset(CENTRE, dlat=0.02)),
        online_rider("near", offset(CENTRE, dlat=0.001)),
        online_rider("mid", offset(CENTRE, dlon=0.005)),
    ]


def test_select_nearest_picks_closest(pool):
    assert select_nearest(CENTRE, pool).id == "near"


def test_rank_is_closest_first(pool):
    ranked = rank_candidates(CENTRE, pool)
    assert [c.id for _, c in ranked] == ["near", "mid", "far"]
    distances = [d for d, _ in ranked]
    assert distances == sorted(distances)


def test_excluded_ids_are_skipped(pool):
    assert select_nearest(CENTRE, pool, excluded_ids={"near"}).id == "mid"


def test_empty_pool():
    assert select_nearest(CENTRE, []) is None
    with pytest.raises(NoCandidateAvailable):
        require_nearest(CENTRE, [])


def test_everyone_excluded(pool):
    with pytest.raises(NoCandidateAvailable):
        require_nearest(CENTRE, pool, excluded_ids=[c.id for c in pool])


def test_ties_break_on_id():
    spot = offset(CENTRE, dlat=0.003)
    pool = [online_rider("b", spot), online_rider("a", spot), online_rider("c", spot)]
    assert select_nearest(CENTRE, pool).id == "a"
    assert select_nearest(CENTRE, list(reversed(pool))).id == "a"


def test_candidates_without_location_are_ignored():
    nowhere = Rider.new("ghost", status=RiderStatus.ONLINE, license_status=LicenseStatus.APPROVED)
    assert select_nearest(CENTRE, [nowhere]) is None


def test_bad_target_raises(pool):
    with pytest.raises(InvalidCoordinate):
        select_nearest((float("nan"), 0.0), pool)


def test_filter_drops_offline_unlicensed_and_rejected():
    riders = [
        online_rider("ok", CENTRE),
        Rider.new("offline", *CENTRE, status=RiderStatus.OFFLINE, license_status=LicenseStatus.APPROVED),
        Rider.new("pending", *CENTRE, status=RiderStatus.ONLINE, license_status=LicenseStatus.PENDING),
        online_rider("rejected", CENTRE),
    ]
    eligible = filter_eligible_riders(riders, excluding={"rejected"})
    assert [r.id for r in eligible] == ["ok"]

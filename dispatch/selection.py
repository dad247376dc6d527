"""
Purpose: Business rules and distance math for choosing the nearest candidate.
What it does:
Accepts a target location and a pool of riders or pharmacies, drops anyone
without a position or in the excluded set, and ranks the rest by
great-circle distance to the target.

Rule: ties are broken by candidate id so the same pool always yields the
same pick.
"""

from typing import Iterable, List, Optional, Tuple, TypeVar

from orders.exceptions import NoCandidateAvailable
from routing.distance import LonLat, haversine_km, validate_coordinate

C = TypeVar("C")


def rank_candidates(target: LonLat, candidates: Iterable[C], excluded_ids: Iterable[str] = ()) -> List[Tuple[float, C]]:
    """
    Returns (distance_km, candidate) pairs, closest first.
    Candidates only need `.id` and `.location`.
    """
    target = validate_coordinate(target)
    excluded = set(excluded_ids)

    ranked = []
    for candidate in candidates:
        if candidate.id in excluded:
            continue
        if candidate.location is None:
            continue
        ranked.append((haversine_km(target, candidate.location), candidate))

    ranked.sort(key=lambda pair: (pair[0], str(pair[1].id)))
    return ranked


def select_nearest(target: LonLat, candidates: Iterable[C], excluded_ids: Iterable[str] = ()) -> Optional[C]:
    """
    The closest eligible candidate, or None when nobody is left.
    """
    ranked = rank_candidates(target, candidates, excluded_ids)
    if not ranked:
        return None
    return ranked[0][1]


def require_nearest(target: LonLat, candidates: Iterable[C], excluded_ids: Iterable[str] = ()) -> Tuple[float, C]:
    """
    Like select_nearest but returns the distance too and raises when the pool is empty.
    """
    ranked = rank_candidates(target, candidates, excluded_ids)
    if not ranked:
        raise NoCandidateAvailable(f"No eligible candidate near {target}")
    return ranked[0]

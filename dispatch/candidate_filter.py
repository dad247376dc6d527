#Purpose: Non-routing hard eligibility filtering (rule gates).
#Builds the base candidate set before distance ranking.
#Riders: online, licence approved, known location
#Pharmacies: Active, known location (Pending / Suspended / Inactive never receive orders)
#Output: "rule-qualified" candidates (still not ranked).

from typing import Iterable, List

from riders.models import Rider
from vendors.models import Pharmacy


def filter_eligible_riders(riders: Iterable[Rider], excluding: Iterable[str] = ()) -> List[Rider]:
    excluded = set(excluding)
    return [rider for rider in riders if rider.is_dispatchable and rider.id not in excluded]


def filter_eligible_pharmacies(pharmacies: Iterable[Pharmacy], excluding: Iterable[str] = ()) -> List[Pharmacy]:
    excluded = set(excluding)
    return [pharmacy for pharmacy in pharmacies if pharmacy.is_dispatchable and pharmacy.id not in excluded]

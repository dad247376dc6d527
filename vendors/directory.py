"""
Purpose: Pharmacy lookup boundary for dispatch.
What it does:
- PharmacyDirectory protocol consumed by the dispatcher
- InMemoryPharmacyDirectory used by tests and the simulation script
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Dict, Iterable, List, Protocol

from orders.exceptions import NotFound
from routing.distance import LonLat, validate_coordinate

from .models import Pharmacy, PharmacyStatus

logger = logging.getLogger(__name__)


class PharmacyDirectory(Protocol):
    def get(self, pharmacy_id: str) -> Pharmacy:
        ...

    def list_eligible(self, location: LonLat, excluding: Iterable[str] = ()) -> List[Pharmacy]:
        ...


class InMemoryPharmacyDirectory:
    def __init__(self, pharmacies: Iterable[Pharmacy] = ()):
        self._pharmacies: Dict[str, Pharmacy] = {}
        self._guard = threading.Lock()
        for pharmacy in pharmacies:
            self.add(pharmacy)

    def get(self, pharmacy_id: str) -> Pharmacy:
        with self._guard:
            pharmacy = self._pharmacies.get(pharmacy_id)
            if pharmacy is None:
                raise NotFound(f"Pharmacy {pharmacy_id} not found")
            return copy.deepcopy(pharmacy)

    def all(self) -> List[Pharmacy]:
        with self._guard:
            return [copy.deepcopy(p) for p in self._pharmacies.values()]

    def list_eligible(self, location: LonLat, excluding: Iterable[str] = ()) -> List[Pharmacy]:
        excluded = set(excluding)
        with self._guard:
            return [
                copy.deepcopy(p)
                for p in self._pharmacies.values()
                if p.is_dispatchable and p.id not in excluded
            ]

    def add(self, pharmacy: Pharmacy) -> Pharmacy:
        if pharmacy.location is not None:
            validate_coordinate(pharmacy.location)
        with self._guard:
            self._pharmacies[pharmacy.id] = copy.deepcopy(pharmacy)
        return pharmacy

    def set_status(self, pharmacy_id: str, status: PharmacyStatus) -> Pharmacy:
        with self._guard:
            pharmacy = self._pharmacies.get(pharmacy_id)
            if pharmacy is None:
                raise NotFound(f"Pharmacy {pharmacy_id} not found")
            pharmacy.status = PharmacyStatus(status)
            logger.info("Pharmacy %s is now %s", pharmacy_id, pharmacy.status.value)
            return copy.deepcopy(pharmacy)

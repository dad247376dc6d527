"""
Purpose: Rider lookup + wallet mutation boundary.
What it does:
- RiderDirectory protocol consumed by the dispatcher and the withdrawal desk
- InMemoryRiderDirectory used by tests and the simulation script

The Django implementation lives in backend/logistics/adapters.py.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from orders.exceptions import NotFound
from routing.distance import LonLat, validate_coordinate

from . import wallet
from .models import BankAccount, LicenseStatus, Rider, RiderStatus, WalletTransaction

logger = logging.getLogger(__name__)


class RiderDirectory(Protocol):
    def get(self, rider_id: str) -> Rider:
        ...

    def list_eligible(self, location: LonLat, excluding: Iterable[str] = ()) -> List[Rider]:
        ...

    def credit_wallet(self, rider_id: str, amount: Decimal, *, reason: str, order_id: Optional[str] = None) -> WalletTransaction:
        ...

    def debit_wallet(self, rider_id: str, amount: Decimal, *, reason: str, reference: Optional[str] = None) -> WalletTransaction:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRiderDirectory:
    """
    Dict-backed directory. Reads hand out copies, so callers can never mutate
    stored riders behind the directory's back.
    """

    def __init__(self, riders: Iterable[Rider] = (), clock: Optional[Callable[[], datetime]] = None):
        self._riders: Dict[str, Rider] = {}
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._guard = threading.Lock()
        self._clock = clock or _utcnow
        for rider in riders:
            self.add(rider)

    def _lock_for(self, rider_id: str) -> threading.Lock:
        with self._guard:
            return self._locks[rider_id]

    def _stored(self, rider_id: str) -> Rider:
        rider = self._riders.get(rider_id)
        if rider is None:
            raise NotFound(f"Rider {rider_id} not found")
        return rider

    # ---- reads ----

    def get(self, rider_id: str) -> Rider:
        with self._lock_for(rider_id):
            return copy.deepcopy(self._stored(rider_id))

    def all(self) -> List[Rider]:
        return [self.get(rider_id) for rider_id in list(self._riders)]

    def list_eligible(self, location: LonLat, excluding: Iterable[str] = ()) -> List[Rider]:
        """
        Online, licence-approved riders with a known position, minus `excluding`.
        `location` is accepted for parity with database-backed directories that
        pre-filter geographically; ranking is the selector's job.
        """
        excluded = set(excluding)
        return [
            copy.deepcopy(rider)
            for rider in self._riders.values()
            if rider.is_dispatchable and rider.id not in excluded
        ]

    # ---- writes ----

    def add(self, rider: Rider) -> Rider:
        with self._lock_for(rider.id):
            self._riders[rider.id] = copy.deepcopy(rider)
        return rider

    def update_location(self, rider_id: str, location: LonLat) -> Rider:
        location = validate_coordinate(location)
        with self._lock_for(rider_id):
            rider = self._stored(rider_id)
            rider.location = location
            return copy.deepcopy(rider)

    def set_status(self, rider_id: str, status: RiderStatus) -> Rider:
        with self._lock_for(rider_id):
            rider = self._stored(rider_id)
            rider.status = RiderStatus(status)
            return copy.deepcopy(rider)

    def set_license_status(self, rider_id: str, license_status: LicenseStatus) -> Rider:
        with self._lock_for(rider_id):
            rider = self._stored(rider_id)
            rider.license_status = LicenseStatus(license_status)
            return copy.deepcopy(rider)

    def add_bank_account(self, rider_id: str, account: BankAccount) -> Rider:
        with self._lock_for(rider_id):
            rider = self._stored(rider_id)
            rider.bank_accounts.append(account)
            return copy.deepcopy(rider)

    def credit_wallet(self, rider_id: str, amount: Decimal, *, reason: str, order_id: Optional[str] = None) -> WalletTransaction:
        with self._lock_for(rider_id):
            rider = self._stored(rider_id)
            transaction = wallet.credit(rider, amount, now=self._clock(), reason=reason, order_id=order_id)
        logger.info("Credited %s to rider %s (%s)", transaction.amount, rider_id, reason)
        return transaction

    def debit_wallet(self, rider_id: str, amount: Decimal, *, reason: str, reference: Optional[str] = None) -> WalletTransaction:
        with self._lock_for(rider_id):
            rider = self._stored(rider_id)
            transaction = wallet.debit(rider, amount, now=self._clock(), reason=reason, reference=reference)
        logger.info("Debited %s from rider %s (%s)", transaction.amount, rider_id, reason)
        return transaction

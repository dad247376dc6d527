"""
Purpose: Rider payout requests and their admin approval.
What it does:
- request_withdrawal: snapshot bank details, park the request as Requested
- approve: debit the wallet exactly once, then mark Approved
- reject: mark Rejected, wallet untouched

Approved and Rejected are terminal. The wallet is only debited at approval,
never at request time.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol
import uuid

from orders.exceptions import ConcurrentModification, InsufficientFunds, InvalidState, NotFound

from .directory import RiderDirectory
from .wallet import normalize_amount

logger = logging.getLogger(__name__)


class WithdrawalStatus(str, Enum):
    REQUESTED = "Requested"
    APPROVED = "Approved"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class WithdrawalRequest:
    id: str
    rider_id: str
    amount: Decimal
    bank_detail: Dict[str, Optional[str]] = field(default_factory=dict)
    status: WithdrawalStatus = WithdrawalStatus.REQUESTED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != WithdrawalStatus.REQUESTED


class WithdrawalStore(Protocol):
    def add(self, request: WithdrawalRequest) -> WithdrawalRequest:
        ...

    def get(self, request_id: str) -> WithdrawalRequest:
        ...

    def compare_and_set_status(self, request_id: str, expected: WithdrawalStatus, new: WithdrawalStatus, now: datetime) -> WithdrawalRequest:
        ...


class InMemoryWithdrawalStore:
    def __init__(self):
        self._requests: Dict[str, WithdrawalRequest] = {}
        self._guard = threading.Lock()

    def add(self, request: WithdrawalRequest) -> WithdrawalRequest:
        with self._guard:
            self._requests[request.id] = request
        return request

    def get(self, request_id: str) -> WithdrawalRequest:
        request = self._requests.get(request_id)
        if request is None:
            raise NotFound(f"Withdrawal request {request_id} not found")
        return request

    def list(self) -> List[WithdrawalRequest]:
        return sorted(self._requests.values(), key=lambda r: r.created_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)

    def compare_and_set_status(self, request_id: str, expected: WithdrawalStatus, new: WithdrawalStatus, now: datetime) -> WithdrawalRequest:
        with self._guard:
            current = self.get(request_id)
            if current.status != expected:
                raise ConcurrentModification(
                    f"Withdrawal request {request_id} is {current.status.value}, expected {expected.value}"
                )
            updated = replace(current, status=new, updated_at=now)
            self._requests[request_id] = updated
            return updated


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WithdrawalDesk:
    """
    Coordinates payout requests against the rider wallet.

    `lock_manager.lock(key)` must serialize callers per request id; in Django it
    also opens the database transaction that makes debit + status change atomic.
    """

    def __init__(self, store: WithdrawalStore, riders: RiderDirectory, lock_manager, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.riders = riders
        self.lock_manager = lock_manager
        self.clock = clock or _utcnow

    def request_withdrawal(self, rider_id: str, amount, bank_account_id: str) -> WithdrawalRequest:
        value = normalize_amount(amount)
        rider = self.riders.get(rider_id)

        if value > rider.wallet_balance:
            raise InsufficientFunds(f"Rider {rider_id} has {rider.wallet_balance}, cannot request {value}")

        account = rider.bank_account(bank_account_id)
        if account is None:
            raise NotFound(f"Bank account {bank_account_id} not found for rider {rider_id}")

        now = self.clock()
        request = WithdrawalRequest(
            id=str(uuid.uuid4()),
            rider_id=rider_id,
            amount=value,
            bank_detail=account.snapshot(),
            status=WithdrawalStatus.REQUESTED,
            created_at=now,
            updated_at=now,
        )
        self.store.add(request)
        logger.info("Rider %s requested withdrawal %s of %s", rider_id, request.id, value)
        return copy.deepcopy(request)

    def approve(self, request_id: str) -> WithdrawalRequest:
        with self.lock_manager.lock(f"withdrawal_{request_id}"):
            request = self.store.get(request_id)
            if request.status != WithdrawalStatus.REQUESTED:
                raise InvalidState(f"Only Requested withdrawals can be approved; {request_id} is {request.status.value}")

            # raises InsufficientFunds before anything is written
            self.riders.debit_wallet(
                request.rider_id,
                request.amount,
                reason="withdrawal",
                reference=request.id,
            )
            approved = self.store.compare_and_set_status(
                request_id, WithdrawalStatus.REQUESTED, WithdrawalStatus.APPROVED, self.clock()
            )

        logger.info("Approved withdrawal %s for rider %s (%s)", request_id, request.rider_id, request.amount)
        return approved

    def reject(self, request_id: str) -> WithdrawalRequest:
        with self.lock_manager.lock(f"withdrawal_{request_id}"):
            request = self.store.get(request_id)
            if request.status != WithdrawalStatus.REQUESTED:
                raise InvalidState(f"Only Requested withdrawals can be rejected; {request_id} is {request.status.value}")
            rejected = self.store.compare_and_set_status(
                request_id, WithdrawalStatus.REQUESTED, WithdrawalStatus.REJECTED, self.clock()
            )

        logger.info("Rejected withdrawal %s for rider %s", request_id, request.rider_id)
        return rejected

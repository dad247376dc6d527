"""
Purpose: Core data models for the riders domain.
What it does:
Defines the structure of a Rider, their availability, licence gate, wallet
ledger and bank accounts without relying on Django ORM constraints.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
import uuid

from routing.distance import LonLat


class RiderStatus(str, Enum):
    """
    Availability toggle the rider controls from the app.
    """
    ONLINE = "online"
    OFFLINE = "offline"


class LicenseStatus(str, Enum):
    """
    Admin review of the rider's driving licence. Gates login and dispatch.
    """
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass(frozen=True)
class WalletTransaction:
    """
    One line of the append-only wallet ledger.
    """
    type: TransactionType
    amount: Decimal
    created_at: datetime
    reason: str = ""
    order_id: Optional[str] = None
    reference: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == TransactionType.CREDIT else -self.amount


@dataclass(frozen=True)
class BankAccount:
    id: str
    account_holder_name: str
    account_number: str
    ifsc_code: str = ""
    bank_name: str = ""
    upi_id: Optional[str] = None

    def snapshot(self) -> dict:
        """Copy of the details stored on a withdrawal request."""
        return {
            "account_holder_name": self.account_holder_name,
            "account_number": self.account_number,
            "ifsc_code": self.ifsc_code,
            "bank_name": self.bank_name,
            "upi_id": self.upi_id,
        }


@dataclass
class Rider:
    """
    A delivery agent at a specific point in time.

    wallet_balance must always equal the signed sum of `transactions`;
    only riders.wallet mutates either of them.
    """
    id: str
    name: str = ""
    phone: str = ""
    status: RiderStatus = RiderStatus.OFFLINE
    license_status: LicenseStatus = LicenseStatus.PENDING
    location: Optional[LonLat] = None

    # None means "use the platform default"
    base_fare: Optional[Decimal] = None

    wallet_balance: Decimal = Decimal("0.00")
    transactions: List[WalletTransaction] = field(default_factory=list)
    bank_accounts: List[BankAccount] = field(default_factory=list)

    @property
    def is_dispatchable(self) -> bool:
        """Online, licence-approved and with a known position."""
        return (
            self.status == RiderStatus.ONLINE
            and self.license_status == LicenseStatus.APPROVED
            and self.location is not None
        )

    def bank_account(self, account_id: str) -> Optional[BankAccount]:
        for account in self.bank_accounts:
            if account.id == account_id:
                return account
        return None

    @classmethod
    def new(
        cls,
        rider_id: Optional[str] = None,
        lon: Optional[float] = None,
        lat: Optional[float] = None,
        status: str | RiderStatus = RiderStatus.OFFLINE,
        license_status: str | LicenseStatus = LicenseStatus.PENDING,
        **kwargs,
    ) -> Rider:
        if isinstance(status, str):
            status = RiderStatus(status)
        if isinstance(license_status, str):
            license_status = LicenseStatus(license_status)

        location = (lon, lat) if lon is not None and lat is not None else None
        return cls(
            id=rider_id or str(uuid.uuid4()),
            status=status,
            license_status=license_status,
            location=location,
            **kwargs,
        )

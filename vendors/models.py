"""
Purpose: Core data models for the vendors (pharmacies) domain.
What it does:
Defines the structure of a Pharmacy and its admin-controlled status.
Only Active pharmacies with a known location receive orders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
import uuid

from routing.distance import LonLat


class PharmacyStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    INACTIVE = "Inactive"


@dataclass
class Pharmacy:
    """
    A vendor that fulfils orders from its own stock.

    monthly_revenue is kept for the admin payout screens; nothing in dispatch reads it.
    """
    id: str
    name: str = ""
    owner_id: Optional[str] = None
    location: Optional[LonLat] = None
    status: PharmacyStatus = PharmacyStatus.PENDING
    categories: List[str] = field(default_factory=list)
    account_details: Dict[str, str] = field(default_factory=dict)
    monthly_revenue: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def is_dispatchable(self) -> bool:
        return self.status == PharmacyStatus.ACTIVE and self.location is not None

    @classmethod
    def new(
        cls,
        pharmacy_id: Optional[str] = None,
        lon: Optional[float] = None,
        lat: Optional[float] = None,
        status: str | PharmacyStatus = PharmacyStatus.PENDING,
        **kwargs,
    ) -> Pharmacy:
        if isinstance(status, str):
            status = PharmacyStatus(status)

        location = (lon, lat) if lon is not None and lat is not None else None
        return cls(
            id=pharmacy_id or str(uuid.uuid4()),
            location=location,
            status=status,
            **kwargs,
        )

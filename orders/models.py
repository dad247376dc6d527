"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines core data structures:
- Order (id, user, line items, address, money breakdown, assignment, timeline, proofs)
- TimelineEntry (status, reason code, optional message, timestamp)
- ProofAttachment (rider, image url, timestamp)
- Address, CodCollection

Defines enums/constants:
- OrderStatus = Placed | PendingVendorResponse | VendorAccepted | RiderAssignmentPending
                | RiderAssigned | RiderAccepted | PickedUp | Delivered
                | Rejected | Cancelled | Failed | Refunded
- TimelineReason = machine-readable reason codes for timeline entries
- EXTERNAL_STATUS / RIDER_STATUS = mapping to the legacy client vocabulary

Rule: No dispatch logic here. Models only, plus the invariants that protect
the assignment fields and the timeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from pricing.calculator import LineItem
from routing.distance import LonLat

from .exceptions import InvalidState


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    PLACED = "Placed"
    PENDING_VENDOR_RESPONSE = "PendingVendorResponse"
    VENDOR_ACCEPTED = "VendorAccepted"
    RIDER_ASSIGNMENT_PENDING = "RiderAssignmentPending"
    RIDER_ASSIGNED = "RiderAssigned"
    RIDER_ACCEPTED = "RiderAccepted"
    PICKED_UP = "PickedUp"
    DELIVERED = "Delivered"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"
    FAILED = "Failed"
    REFUNDED = "Refunded"


TERMINAL_STATUSES = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.REJECTED,
    OrderStatus.CANCELLED,
    OrderStatus.FAILED,
    OrderStatus.REFUNDED,
})

# Legacy vocabulary still used by the mobile apps. One canonical status maps to
# exactly one outward status, so the two can never disagree.
EXTERNAL_STATUS: Dict[OrderStatus, str] = {
    OrderStatus.PLACED: "Pending",
    OrderStatus.PENDING_VENDOR_RESPONSE: "Pending",
    OrderStatus.VENDOR_ACCEPTED: "Confirmed",
    OrderStatus.RIDER_ASSIGNMENT_PENDING: "Confirmed",
    OrderStatus.RIDER_ASSIGNED: "Assigned",
    OrderStatus.RIDER_ACCEPTED: "Accepted",
    OrderStatus.PICKED_UP: "PickedUp",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.REJECTED: "Rejected",
    OrderStatus.CANCELLED: "Cancelled",
    OrderStatus.FAILED: "Failed",
    OrderStatus.REFUNDED: "Refunded",
}

# Rider-side view of the same status (what used to be assignedRiderStatus).
RIDER_STATUS: Dict[OrderStatus, str] = {
    OrderStatus.PLACED: "Pending",
    OrderStatus.PENDING_VENDOR_RESPONSE: "Pending",
    OrderStatus.VENDOR_ACCEPTED: "Pending",
    OrderStatus.RIDER_ASSIGNMENT_PENDING: "Pending",
    OrderStatus.RIDER_ASSIGNED: "Assigned",
    OrderStatus.RIDER_ACCEPTED: "Accepted",
    OrderStatus.PICKED_UP: "PickedUp",
    OrderStatus.DELIVERED: "Completed",
    OrderStatus.REJECTED: "Rejected",
    OrderStatus.CANCELLED: "Failed",
    OrderStatus.FAILED: "Failed",
    OrderStatus.REFUNDED: "Failed",
}


class TimelineReason(str, Enum):
    ORDER_PLACED = "order_placed"
    VENDOR_ASSIGNED = "vendor_assigned"
    VENDOR_REJECTED = "vendor_rejected"
    VENDOR_REASSIGNED = "vendor_reassigned"
    VENDOR_ACCEPTED = "vendor_accepted"
    NO_VENDOR_AVAILABLE = "no_vendor_available"
    RIDER_ASSIGNED = "rider_assigned"
    RIDER_ASSIGNMENT_PENDING = "rider_assignment_pending"
    RIDER_REJECTED = "rider_rejected"
    RIDER_REASSIGNED = "rider_reassigned"
    RIDER_ACCEPTED = "rider_accepted"
    NO_RIDER_AVAILABLE = "no_rider_available"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED_ON_REQUEST = "cancelled_on_request"
    REJECTED_BY_ADMIN = "rejected_by_admin"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    ONLINE = "online"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    REFUNDED = "Refunded"
    FAILED = "Failed"


class PlanType(str, Enum):
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class CodPaymentMode(str, Enum):
    CASH = "cash"
    ONLINE = "online"


@dataclass(frozen=True)
class Address:
    house: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "house": self.house,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Address:
        data = data or {}
        return cls(**{key: str(data.get(key) or "") for key in cls.__dataclass_fields__})


@dataclass(frozen=True)
class TimelineEntry:
    """
    One step of the order's audit trail. Entries are appended, never edited.
    """
    status: OrderStatus
    reason: TimelineReason
    timestamp: datetime
    message: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "reason": self.reason.value,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "detail": dict(self.detail),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TimelineEntry:
        return cls(
            status=OrderStatus(data["status"]),
            reason=TimelineReason(data["reason"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            message=data.get("message"),
            detail=dict(data.get("detail") or {}),
        )


@dataclass(frozen=True)
class ProofAttachment:
    rider_id: str
    image_url: str
    uploaded_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rider_id": self.rider_id,
            "image_url": self.image_url,
            "uploaded_at": self.uploaded_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ProofAttachment:
        return cls(
            rider_id=str(data["rider_id"]),
            image_url=data["image_url"],
            uploaded_at=datetime.fromisoformat(data["uploaded_at"]),
        )


class InvalidCodCollection(ValueError):
    """Raised when the collected cash amount or payment mode is unusable."""
    kind = "InvalidCodCollection"


@dataclass(frozen=True)
class CodCollection:
    """Cash-on-delivery details captured by the rider at the door."""
    amount: Decimal
    mode: CodPaymentMode

    @classmethod
    def new(cls, amount, mode) -> CodCollection:
        if isinstance(amount, bool) or amount is None:
            raise InvalidCodCollection(f"COD amount must be a number, got {amount!r}")
        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            raise InvalidCodCollection(f"COD amount must be a number, got {amount!r}")
        if not value.is_finite() or value < 0:
            raise InvalidCodCollection(f"COD amount must be a non-negative number, got {amount!r}")
        try:
            mode = CodPaymentMode(mode)
        except ValueError:
            raise InvalidCodCollection(f"COD payment mode must be cash or online, got {mode!r}")
        return cls(amount=value.quantize(Decimal("0.01")), mode=mode)


def line_item_to_dict(item: LineItem) -> Dict[str, Any]:
    return {
        "medicine_id": item.medicine_id,
        "name": item.name,
        "quantity": item.quantity,
        "unit_price": str(item.unit_price),
    }


def line_item_from_dict(data: Dict[str, Any]) -> LineItem:
    return LineItem.new(
        medicine_id=data["medicine_id"],
        quantity=data["quantity"],
        unit_price=Decimal(str(data["unit_price"])),
        name=data.get("name", ""),
    )


@dataclass
class Order:
    """
    A purchase request moving through vendor and rider fulfilment states.

    `version` is bumped by the repository on every successful save and is the
    compare-and-swap token for concurrent writers.
    """

    id: str
    user_id: str
    items: List[LineItem]
    delivery_location: LonLat
    delivery_address: Address = field(default_factory=Address)

    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    payment_status: PaymentStatus = PaymentStatus.PENDING

    subtotal: Decimal = Decimal("0.00")
    platform_fee: Decimal = Decimal("0.00")
    delivery_charge: Decimal = Decimal("0.00")
    discount: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    coupon_code: Optional[str] = None

    is_prescription_order: bool = False
    is_reordered: bool = False
    plan_type: Optional[PlanType] = None
    delivery_date: Optional[date] = None
    notes: str = ""

    status: OrderStatus = OrderStatus.PLACED
    assigned_rider_id: Optional[str] = None
    assigned_pharmacy_id: Optional[str] = None
    rejected_rider_ids: List[str] = field(default_factory=list)
    rejected_pharmacy_ids: List[str] = field(default_factory=list)

    timeline: List[TimelineEntry] = field(default_factory=list)
    pickup_proofs: List[ProofAttachment] = field(default_factory=list)
    delivery_proofs: List[ProofAttachment] = field(default_factory=list)
    cod: Optional[CodCollection] = None

    version: int = 0
    created_at: datetime = field(default_factory=utcnow)

    @staticmethod # Factory method to create an Order with a fresh id
    def new(user_id: str, items: List[LineItem], delivery_location: LonLat, **kwargs) -> Order:
        return Order(
            id=str(uuid.uuid4()),
            user_id=str(user_id),
            items=list(items),
            delivery_location=delivery_location,
            **kwargs,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def external_status(self) -> str:
        return EXTERNAL_STATUS[self.status]

    @property
    def rider_status(self) -> str:
        return RIDER_STATUS[self.status]

    # ---- timeline ----

    def append_timeline(
        self,
        status: OrderStatus,
        reason: TimelineReason,
        now: datetime,
        message: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None,
    ) -> TimelineEntry:
        """
        Appends one entry. Timestamps never go backwards: a clock that reads
        earlier than the last entry is clamped to it.
        """
        if self.timeline and now < self.timeline[-1].timestamp:
            now = self.timeline[-1].timestamp
        entry = TimelineEntry(status=status, reason=reason, timestamp=now, message=message, detail=dict(detail or {}))
        self.timeline.append(entry)
        return entry

    # ---- assignment (at most one rider, at most one pharmacy) ----

    def _guard_assignment(self) -> None:
        if self.is_terminal:
            raise InvalidState(f"Order {self.id} is {self.status.value}; assignment is frozen")

    def assign_rider(self, rider_id: str) -> None:
        self._guard_assignment()
        if self.assigned_rider_id is not None:
            raise InvalidState(f"Order {self.id} already has rider {self.assigned_rider_id}; clear it first")
        self.assigned_rider_id = rider_id

    def clear_rider(self, *, rejected: bool = False) -> Optional[str]:
        self._guard_assignment()
        rider_id = self.assigned_rider_id
        if rejected and rider_id is not None and rider_id not in self.rejected_rider_ids:
            self.rejected_rider_ids.append(rider_id)
        self.assigned_rider_id = None
        return rider_id

    def assign_pharmacy(self, pharmacy_id: str) -> None:
        self._guard_assignment()
        if self.assigned_pharmacy_id is not None:
            raise InvalidState(f"Order {self.id} already has pharmacy {self.assigned_pharmacy_id}; clear it first")
        self.assigned_pharmacy_id = pharmacy_id

    def clear_pharmacy(self, *, rejected: bool = False) -> Optional[str]:
        self._guard_assignment()
        pharmacy_id = self.assigned_pharmacy_id
        if rejected and pharmacy_id is not None and pharmacy_id not in self.rejected_pharmacy_ids:
            self.rejected_pharmacy_ids.append(pharmacy_id)
        self.assigned_pharmacy_id = None
        return pharmacy_id

"""
Purpose: The single legal transition table for orders.
What it does:
Every status change goes through transition(), which checks the table,
moves the status and appends exactly one timeline entry.

Placed -> PendingVendorResponse -> VendorAccepted -> (RiderAssignmentPending) ->
RiderAssigned -> RiderAccepted -> PickedUp -> Delivered
plus the terminal failures Rejected / Cancelled / Failed / Refunded.
"""

from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional

from orders.exceptions import InvalidState
from orders.models import Order, OrderStatus, TimelineEntry, TimelineReason

S = OrderStatus

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.PLACED: frozenset({S.PENDING_VENDOR_RESPONSE, S.CANCELLED, S.REJECTED, S.FAILED, S.REFUNDED}),
    # self-loop: vendor rejected, pharmacy cleared, waiting for the next one
    S.PENDING_VENDOR_RESPONSE: frozenset({
        S.PENDING_VENDOR_RESPONSE, S.VENDOR_ACCEPTED, S.FAILED, S.CANCELLED, S.REJECTED, S.REFUNDED,
    }),
    S.VENDOR_ACCEPTED: frozenset({S.RIDER_ASSIGNED, S.RIDER_ASSIGNMENT_PENDING, S.CANCELLED, S.REFUNDED, S.FAILED}),
    S.RIDER_ASSIGNMENT_PENDING: frozenset({S.RIDER_ASSIGNED, S.CANCELLED, S.FAILED, S.REFUNDED}),
    S.RIDER_ASSIGNED: frozenset({S.RIDER_ACCEPTED, S.RIDER_ASSIGNMENT_PENDING, S.CANCELLED, S.FAILED, S.REFUNDED}),
    S.RIDER_ACCEPTED: frozenset({S.PICKED_UP, S.CANCELLED, S.FAILED, S.REFUNDED}),
    S.PICKED_UP: frozenset({S.DELIVERED, S.FAILED}),
    S.DELIVERED: frozenset(),
    S.REJECTED: frozenset(),
    S.CANCELLED: frozenset(),
    S.FAILED: frozenset(),
    S.REFUNDED: frozenset(),
}


class OrderStateException(InvalidState):
    """Raised when an invalid state transition is attempted."""
    pass


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def assert_transition(order: Order, target: OrderStatus) -> None:
    if not can_transition(order.status, target):
        raise OrderStateException(
            f"Cannot move order {order.id} from {order.status.value} to {target.value}"
        )


def transition(
    order: Order,
    target: OrderStatus,
    reason: TimelineReason,
    now: datetime,
    message: Optional[str] = None,
    detail: Optional[Dict[str, Any]] = None,
) -> TimelineEntry:
    """
    Moves `order` to `target` and records why. Mutates the order in place.
    """
    assert_transition(order, target)
    order.status = target
    return order.append_timeline(target, reason, now, message=message, detail=detail)


def record_placed(order: Order, now: datetime, message: Optional[str] = None) -> TimelineEntry:
    """
    Opening entry for a freshly created order. Not a transition: there is no prior state.
    """
    if order.timeline:
        raise OrderStateException(f"Order {order.id} already has a timeline")
    order.status = S.PLACED
    return order.append_timeline(S.PLACED, TimelineReason.ORDER_PLACED, now, message=message)

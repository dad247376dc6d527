from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from dispatch.state_machines.order_state import (
    ALLOWED_TRANSITIONS,
    OrderStateException,
    can_transition,
    record_placed,
    transition,
)
from orders import EXTERNAL_STATUS, RIDER_STATUS, TERMINAL_STATUSES, Order, OrderStatus, TimelineReason
from orders.exceptions import InvalidState
from pricing import LineItem

S = OrderStatus
R = TimelineReason
T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def order():
    o = Order.new("user-1", [LineItem.new("m", 1, Decimal("10"))], (77.6, 12.97))
    record_placed(o, T0)
    return o


def test_every_status_has_a_row_and_terminals_are_dead_ends():
    assert set(ALLOWED_TRANSITIONS) == set(OrderStatus)
    for status in TERMINAL_STATUSES:
        assert ALLOWED_TRANSITIONS[status] == frozenset()


def test_vocabularies_cover_every_status():
    assert set(EXTERNAL_STATUS) == set(OrderStatus)
    assert set(RIDER_STATUS) == set(OrderStatus)


def test_happy_path_appends_one_entry_per_transition(order):
    steps = [
        (S.PENDING_VENDOR_RESPONSE, R.VENDOR_ASSIGNED),
        (S.VENDOR_ACCEPTED, R.VENDOR_ACCEPTED),
        (S.RIDER_ASSIGNED, R.RIDER_ASSIGNED),
        (S.RIDER_ACCEPTED, R.RIDER_ACCEPTED),
        (S.PICKED_UP, R.PICKED_UP),
        (S.DELIVERED, R.DELIVERED),
    ]
    for i, (status, reason) in enumerate(steps, start=1):
        transition(order, status, reason, T0 + timedelta(minutes=i))

    assert order.status == S.DELIVERED
    assert [e.status for e in order.timeline] == [S.PLACED] + [s for s, _ in steps]
    assert order.external_status == "Delivered"
    assert order.rider_status == "Completed"


def test_illegal_transition_is_invalid_state(order):
    with pytest.raises(InvalidState):
        transition(order, S.PICKED_UP, R.PICKED_UP, T0)
    assert order.status == S.PLACED
    assert len(order.timeline) == 1


def test_cannot_leave_terminal(order):
    transition(order, S.CANCELLED, R.CANCELLED_ON_REQUEST, T0)
    with pytest.raises(OrderStateException):
        transition(order, S.PENDING_VENDOR_RESPONSE, R.VENDOR_ASSIGNED, T0)


def test_picked_up_cannot_be_cancelled():
    assert not can_transition(S.PICKED_UP, S.CANCELLED)
    assert can_transition(S.PICKED_UP, S.DELIVERED)


def test_timeline_timestamps_never_go_backwards(order):
    transition(order, S.PENDING_VENDOR_RESPONSE, R.VENDOR_ASSIGNED, T0 + timedelta(minutes=5))
    # clock skew: the next write reads an earlier time
    entry = transition(order, S.VENDOR_ACCEPTED, R.VENDOR_ACCEPTED, T0 + timedelta(minutes=1))

    assert entry.timestamp == T0 + timedelta(minutes=5)
    stamps = [e.timestamp for e in order.timeline]
    assert stamps == sorted(stamps)


def test_record_placed_only_once(order):
    with pytest.raises(OrderStateException):
        record_placed(order, T0)


def test_assignment_is_frozen_after_terminal(order):
    order.assign_pharmacy("p1")
    with pytest.raises(InvalidState):
        order.assign_pharmacy("p2")

    transition(order, S.FAILED, R.NO_VENDOR_AVAILABLE, T0)
    with pytest.raises(InvalidState):
        order.clear_pharmacy()

"""
Purpose: Orchestrator / decision pipeline (the "glue").
What it does:
Accepts a new order, finds it a pharmacy, then a rider, and walks it through
pickup and delivery. Rejections and empty candidate pools are retried through
the RetryScheduler instead of sleeping in-process.

Every mutating call:
1. takes lock_manager.lock("order_<id>")
2. loads the order, applies one or more transitions
3. saves with a compare-and-swap on version
4. only then emits notifications
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from orders.exceptions import (
    ConcurrentModification,
    InvalidState,
    NoCandidateAvailable,
    NotAssigned,
    NotFound,
    ProofMissing,
    TooFarFromPickup,
)
from orders.models import (
    Address,
    CodCollection,
    InvalidCodCollection,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PlanType,
    ProofAttachment,
    TimelineEntry,
    TimelineReason,
    utcnow,
)
from pricing.calculator import LineItem, compute_totals, delivery_charge, order_total
from pricing.coupons import CouponBook
from pricing.policy import PricingPolicy, default_pricing_policy
from riders.directory import RiderDirectory
from routing.distance import LonLat, estimate_travel_minutes, haversine_km, validate_coordinate
from routing.geofence import check_radius
from vendors.directory import PharmacyDirectory

from .candidate_filter import filter_eligible_pharmacies, filter_eligible_riders
from .notifications import NotificationSink, TargetType
from .policy import DispatchPolicy, default_dispatch_policy
from .repository import OrderRepository
from .scheduler import RetryKind, RetryScheduler, RetryTask
from .selection import require_nearest
from .state_machines.order_state import record_placed, transition

logger = logging.getLogger(__name__)

S = OrderStatus
R = TimelineReason


@dataclass(frozen=True)
class PlaceOrderRequest:
    user_id: str
    items: Sequence[LineItem]
    delivery_location: LonLat
    delivery_address: Address = field(default_factory=Address)
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    coupon_code: Optional[str] = None
    # set when a vendor creates a prescription order on a user's behalf
    pharmacy_id: Optional[str] = None
    is_prescription_order: bool = False
    is_reordered: bool = False
    plan_type: Optional[PlanType] = None
    delivery_date: Optional[date] = None
    notes: str = ""


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of one lifecycle call. `timeline` holds only the entries appended by that call.
    """
    order_id: str
    status: OrderStatus
    timeline: List[TimelineEntry]


@dataclass
class _Unit:
    """
    Work collected while the order lock is held.
    """
    now: datetime
    outbox: List[Tuple[TargetType, str, str, str, Optional[str]]] = field(default_factory=list)
    # retry scheduling, applied only once the order save succeeds
    scheduling: List[Callable[[], None]] = field(default_factory=list)
    after_save: List[Callable[[], None]] = field(default_factory=list)
    dirty: bool = True

    def notify(self, target_type: TargetType, target_id: str, message: str, order_id: str, reason: Optional[R] = None):
        self.outbox.append((target_type, str(target_id), message, order_id, reason.value if reason else None))


class Dispatcher:
    """
    Order lifecycle manager. All collaborators are injected so the same rules
    run over the in-memory adapters and the Django ones.
    """

    def __init__(
        self,
        orders: OrderRepository,
        riders: RiderDirectory,
        pharmacies: PharmacyDirectory,
        scheduler: RetryScheduler,
        notifications: NotificationSink,
        lock_manager,
        pricing_policy: Optional[PricingPolicy] = None,
        dispatch_policy: Optional[DispatchPolicy] = None,
        coupons: Optional[CouponBook] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.orders = orders
        self.riders = riders
        self.pharmacies = pharmacies
        self.scheduler = scheduler
        self.notifications = notifications
        self.lock_manager = lock_manager
        self.pricing_policy = pricing_policy or default_pricing_policy()
        self.dispatch_policy = dispatch_policy or default_dispatch_policy()
        self.coupons = coupons
        self.clock = clock or utcnow

    # ------------------------------------------------------------------
    # unit of work
    # ------------------------------------------------------------------

    def _flush(self, unit: _Unit) -> None:
        for target_type, target_id, message, order_id, reason in unit.outbox:
            self.notifications.notify(target_type, target_id, message, related_order_id=order_id, reason=reason)

    def _mutate(self, order_id: str, apply: Callable[[Order, _Unit], None], now: Optional[datetime] = None) -> TransitionResult:
        unit = _Unit(now=now or self.clock())
        with self.lock_manager.lock(f"order_{order_id}"):
            order = self.orders.get(order_id)
            start = len(order.timeline)
            apply(order, unit)
            if unit.dirty:
                self.orders.save(order)
                for effect in unit.scheduling + unit.after_save:
                    effect()
        self._flush(unit)
        return TransitionResult(order.id, order.status, list(order.timeline[start:]))

    def _schedule(self, order: Order, unit: _Unit, kind: RetryKind, attempt: int, max_attempts: int, delay_seconds: float) -> RetryTask:
        task = RetryTask(
            order_id=order.id,
            kind=kind,
            due_at=unit.now + timedelta(seconds=delay_seconds),
            attempt=attempt,
            max_attempts=max_attempts,
            expected_status=order.status,
        )
        unit.scheduling.append(lambda: self.scheduler.schedule(task))
        logger.info(
            "Scheduling %s retry %s/%s for order %s at %s",
            kind.value, attempt, max_attempts, order.id, task.due_at.isoformat(),
        )
        return task

    def _terminate(self, order: Order, unit: _Unit, status: OrderStatus, reason: R, message: Optional[str] = None) -> None:
        transition(order, status, reason, unit.now, message=message)
        unit.scheduling.append(lambda: self.scheduler.cancel(order.id))
        logger.info("Order %s is %s (%s)", order.id, status.value, reason.value)

        unit.notify(TargetType.USER, order.user_id, message or f"Your order is {order.external_status}", order.id, reason)
        if order.assigned_rider_id and reason not in (R.NO_RIDER_AVAILABLE,):
            unit.notify(TargetType.RIDER, order.assigned_rider_id, f"Order {order.id} was {status.value.lower()}", order.id, reason)
        if order.assigned_pharmacy_id and reason not in (R.NO_VENDOR_AVAILABLE,):
            unit.notify(TargetType.VENDOR, order.assigned_pharmacy_id, f"Order {order.id} was {status.value.lower()}", order.id, reason)

    # ------------------------------------------------------------------
    # vendor assignment
    # ------------------------------------------------------------------

    def _assign_vendor(self, order: Order, unit: _Unit, attempt: int, max_attempts: int, preferred: Optional[str] = None) -> bool:
        target = order.delivery_location
        chosen = None

        if preferred:
            pharmacy = self.pharmacies.get(preferred)
            if pharmacy.is_dispatchable and pharmacy.id not in order.rejected_pharmacy_ids:
                chosen = (haversine_km(target, pharmacy.location), pharmacy)
            else:
                logger.info("Requested pharmacy %s is not eligible for order %s, picking nearest", preferred, order.id)

        if chosen is None:
            pool = filter_eligible_pharmacies(
                self.pharmacies.list_eligible(target, excluding=order.rejected_pharmacy_ids),
                excluding=order.rejected_pharmacy_ids,
            )
            try:
                chosen = require_nearest(target, pool)
            except NoCandidateAvailable:
                self._vendor_unavailable(order, unit, attempt, max_attempts)
                return False

        distance_km, pharmacy = chosen
        reason = R.VENDOR_REASSIGNED if order.rejected_pharmacy_ids else R.VENDOR_ASSIGNED
        order.assign_pharmacy(pharmacy.id)
        transition(
            order, S.PENDING_VENDOR_RESPONSE, reason, unit.now,
            detail={"pharmacy_id": pharmacy.id, "distance_km": round(distance_km, 3)},
        )
        unit.scheduling.append(lambda: self.scheduler.cancel(order.id))
        unit.notify(TargetType.VENDOR, pharmacy.id, f"New order {order.id} is waiting for your response", order.id, reason)
        logger.info("Order %s offered to pharmacy %s (%.2f km)", order.id, pharmacy.id, distance_km)
        return True

    def _vendor_unavailable(self, order: Order, unit: _Unit, attempt: int, max_attempts: int) -> None:
        if attempt >= max_attempts:
            logger.warning("No pharmacy for order %s after %s attempts", order.id, attempt)
            self._terminate(
                order, unit, S.FAILED, R.NO_VENDOR_AVAILABLE,
                message="No pharmacy is available to fulfil your order",
            )
            return
        self._schedule(
            order, unit, RetryKind.VENDOR_ASSIGNMENT,
            attempt=attempt + 1, max_attempts=max_attempts,
            delay_seconds=self.dispatch_policy.retry_delay_seconds,
        )

    # ------------------------------------------------------------------
    # rider assignment
    # ------------------------------------------------------------------

    def _assign_rider(self, order: Order, unit: _Unit, attempt: int, max_attempts: int) -> bool:
        target = order.delivery_location
        pool = filter_eligible_riders(
            self.riders.list_eligible(target, excluding=order.rejected_rider_ids),
            excluding=order.rejected_rider_ids,
        )
        try:
            distance_km, rider = require_nearest(target, pool)
        except NoCandidateAvailable:
            self._rider_unavailable(order, unit, attempt, max_attempts)
            return False

        charge = delivery_charge(distance_km, rider.base_fare, self.pricing_policy)
        order.assign_rider(rider.id)
        order.delivery_charge = charge
        order.total = order_total(order.subtotal, order.platform_fee, charge, order.discount)

        reason = R.RIDER_REASSIGNED if order.rejected_rider_ids else R.RIDER_ASSIGNED
        transition(
            order, S.RIDER_ASSIGNED, reason, unit.now,
            detail={
                "rider_id": rider.id,
                "distance_km": round(distance_km, 3),
                "eta_minutes": estimate_travel_minutes(distance_km, self.dispatch_policy.average_speed_kmh),
                "delivery_charge": str(charge),
            },
        )
        unit.scheduling.append(lambda: self.scheduler.cancel(order.id))
        unit.notify(TargetType.RIDER, rider.id, f"New delivery assigned: order {order.id}", order.id, reason)
        logger.info("Order %s assigned to rider %s (%.2f km, charge %s)", order.id, rider.id, distance_km, charge)
        return True

    def _rider_unavailable(self, order: Order, unit: _Unit, attempt: int, max_attempts: int) -> None:
        if attempt >= max_attempts:
            logger.warning("No rider for order %s after %s attempts", order.id, attempt)
            self._terminate(
                order, unit, S.CANCELLED, R.NO_RIDER_AVAILABLE,
                message="No rider is available to deliver your order",
            )
            return
        if order.status != S.RIDER_ASSIGNMENT_PENDING:
            transition(order, S.RIDER_ASSIGNMENT_PENDING, R.RIDER_ASSIGNMENT_PENDING, unit.now, detail={"attempt": attempt})
        self._schedule(
            order, unit, RetryKind.RIDER_ASSIGNMENT,
            attempt=attempt + 1, max_attempts=max_attempts,
            delay_seconds=self.dispatch_policy.retry_delay_for(attempt),
        )

    # ------------------------------------------------------------------
    # public operations
    # ------------------------------------------------------------------

    def place_order(self, request: PlaceOrderRequest) -> TransitionResult:
        location = validate_coordinate(request.delivery_location)
        now = self.clock()

        coupon = self.coupons.get(request.coupon_code) if (self.coupons and request.coupon_code) else None
        totals = compute_totals(
            list(request.items),
            self.pricing_policy,
            coupon=coupon,
            today=now.date(),
        )

        order = Order.new(
            request.user_id,
            request.items,
            location,
            delivery_address=request.delivery_address,
            payment_method=PaymentMethod(request.payment_method),
            subtotal=totals.subtotal,
            platform_fee=totals.platform_fee,
            delivery_charge=totals.delivery_charge,
            discount=totals.discount,
            total=totals.total,
            coupon_code=totals.coupon_code,
            is_prescription_order=request.is_prescription_order,
            is_reordered=request.is_reordered,
            plan_type=PlanType(request.plan_type) if request.plan_type else None,
            delivery_date=request.delivery_date,
            notes=request.notes,
            created_at=now,
        )

        unit = _Unit(now=now)
        with self.lock_manager.lock(f"order_{order.id}"):
            record_placed(order, now)
            self._assign_vendor(
                order, unit,
                attempt=1, max_attempts=self.dispatch_policy.max_vendor_attempts,
                preferred=request.pharmacy_id,
            )
            self.orders.add(order)
            for effect in unit.scheduling:
                effect()
        self._flush(unit)

        logger.info("Order %s placed by user %s (total %s)", order.id, order.user_id, order.total)
        return TransitionResult(order.id, order.status, list(order.timeline))

    def vendor_respond(self, order_id: str, pharmacy_id: str, accept: bool, reason: Optional[str] = None) -> TransitionResult:
        def apply(order: Order, unit: _Unit) -> None:
            if order.status != S.PENDING_VENDOR_RESPONSE:
                raise InvalidState(f"Order {order.id} is {order.status.value}, not waiting for a pharmacy")
            if order.assigned_pharmacy_id != pharmacy_id:
                raise NotAssigned(f"Order {order.id} is not assigned to pharmacy {pharmacy_id}")

            if accept:
                transition(order, S.VENDOR_ACCEPTED, R.VENDOR_ACCEPTED, unit.now, detail={"pharmacy_id": pharmacy_id})
                unit.notify(TargetType.USER, order.user_id, "Your order has been confirmed by the pharmacy", order.id, R.VENDOR_ACCEPTED)
                self._assign_rider(order, unit, attempt=1, max_attempts=self.dispatch_policy.max_assignment_attempts)
                return

            order.clear_pharmacy(rejected=True)
            transition(
                order, S.PENDING_VENDOR_RESPONSE, R.VENDOR_REJECTED, unit.now,
                message=reason, detail={"pharmacy_id": pharmacy_id},
            )
            self._schedule(
                order, unit, RetryKind.VENDOR_ASSIGNMENT,
                attempt=1, max_attempts=self.dispatch_policy.max_vendor_attempts,
                delay_seconds=self.dispatch_policy.retry_delay_seconds,
            )

        return self._mutate(order_id, apply)

    def rider_respond(self, order_id: str, rider_id: str, accept: bool, reason: Optional[str] = None) -> TransitionResult:
        def apply(order: Order, unit: _Unit) -> None:
            if order.status != S.RIDER_ASSIGNED:
                raise InvalidState(f"Order {order.id} is {order.status.value}, not waiting for a rider")
            if order.assigned_rider_id != rider_id:
                raise NotAssigned(f"Order {order.id} is not assigned to rider {rider_id}")

            if accept:
                transition(order, S.RIDER_ACCEPTED, R.RIDER_ACCEPTED, unit.now, detail={"rider_id": rider_id})
                unit.notify(TargetType.USER, order.user_id, "A rider is on the way to the pharmacy", order.id, R.RIDER_ACCEPTED)
                if order.assigned_pharmacy_id:
                    unit.notify(TargetType.VENDOR, order.assigned_pharmacy_id, f"Rider {rider_id} will collect order {order.id}", order.id, R.RIDER_ACCEPTED)
                return

            order.clear_rider(rejected=True)
            transition(
                order, S.RIDER_ASSIGNMENT_PENDING, R.RIDER_REJECTED, unit.now,
                message=reason, detail={"rider_id": rider_id},
            )
            self._schedule(
                order, unit, RetryKind.RIDER_ASSIGNMENT,
                attempt=1, max_attempts=self.dispatch_policy.rejection_retry_attempts,
                delay_seconds=self.dispatch_policy.retry_delay_seconds,
            )

        return self._mutate(order_id, apply)

    def attach_pickup_proof(self, order_id: str, rider_id: str, image_url: str, rider_location: Optional[LonLat] = None) -> TransitionResult:
        def apply(order: Order, unit: _Unit) -> None:
            if order.status != S.RIDER_ACCEPTED:
                raise InvalidState(f"Pickup proof needs an accepted order; {order.id} is {order.status.value}")
            if order.assigned_rider_id != rider_id:
                raise NotAssigned(f"Order {order.id} is not assigned to rider {rider_id}")
            if not image_url:
                raise ProofMissing("A pickup proof image is required")

            if self.dispatch_policy.require_pickup_proximity:
                location = rider_location if rider_location is not None else self.riders.get(rider_id).location
                if location is None:
                    raise InvalidState(f"Rider {rider_id} has no known location")
                pharmacy = self.pharmacies.get(order.assigned_pharmacy_id)
                check = check_radius(validate_coordinate(location), pharmacy.location, self.dispatch_policy.pickup_proximity_m)
                if not check.inside:
                    raise TooFarFromPickup(
                        f"Rider is {check.distance_m:.0f} m from the pharmacy; must be within {check.radius_m:.0f} m",
                        distance_m=check.distance_m,
                        radius_m=check.radius_m,
                    )

            order.pickup_proofs.append(ProofAttachment(rider_id=rider_id, image_url=image_url, uploaded_at=unit.now))

        return self._mutate(order_id, apply)

    def mark_picked_up(self, order_id: str, rider_id: str) -> TransitionResult:
        def apply(order: Order, unit: _Unit) -> None:
            if order.assigned_rider_id != rider_id:
                raise NotAssigned(f"Order {order.id} is not assigned to rider {rider_id}")
            if order.status != S.RIDER_ACCEPTED:
                raise InvalidState(f"Order {order.id} is {order.status.value}, cannot be picked up")
            if not order.pickup_proofs:
                raise ProofMissing(f"Upload a pickup proof for order {order.id} first")

            transition(order, S.PICKED_UP, R.PICKED_UP, unit.now, detail={"rider_id": rider_id})
            unit.notify(TargetType.USER, order.user_id, "Your order has been picked up", order.id, R.PICKED_UP)

        return self._mutate(order_id, apply)

    def attach_delivery_proof(self, order_id: str, rider_id: str, image_url: str) -> TransitionResult:
        def apply(order: Order, unit: _Unit) -> None:
            if order.status not in (S.RIDER_ACCEPTED, S.PICKED_UP):
                raise InvalidState(f"Delivery proof not accepted while order {order.id} is {order.status.value}")
            if order.assigned_rider_id != rider_id:
                raise NotAssigned(f"Order {order.id} is not assigned to rider {rider_id}")
            if not image_url:
                raise ProofMissing("A delivery proof image is required")

            order.delivery_proofs.append(ProofAttachment(rider_id=rider_id, image_url=image_url, uploaded_at=unit.now))

        return self._mutate(order_id, apply)

    def mark_delivered(self, order_id: str, rider_id: str, cod: Optional[CodCollection] = None) -> TransitionResult:
        def apply(order: Order, unit: _Unit) -> None:
            if order.assigned_rider_id != rider_id:
                raise NotAssigned(f"Order {order.id} is not assigned to rider {rider_id}")
            if order.status != S.PICKED_UP:
                raise InvalidState(f"Order {order.id} is {order.status.value}, cannot be delivered")
            if not order.delivery_proofs:
                raise ProofMissing(f"Upload a delivery proof for order {order.id} first")

            if order.payment_method == PaymentMethod.CASH_ON_DELIVERY:
                if cod is None:
                    raise InvalidCodCollection("Cash-on-delivery orders need the collected amount and payment mode")
                order.cod = CodCollection.new(cod.amount, cod.mode)

            order.payment_status = PaymentStatus.PAID
            transition(order, S.DELIVERED, R.DELIVERED, unit.now, detail={"rider_id": rider_id})

            earning = order.delivery_charge
            if earning > 0:
                unit.after_save.append(
                    lambda: self.riders.credit_wallet(rider_id, earning, reason="delivery_earning", order_id=order.id)
                )
            unit.notify(TargetType.USER, order.user_id, "Your order has been delivered", order.id, R.DELIVERED)
            if order.assigned_pharmacy_id:
                unit.notify(TargetType.VENDOR, order.assigned_pharmacy_id, f"Order {order.id} was delivered", order.id, R.DELIVERED)

        return self._mutate(order_id, apply)

    def cancel(self, order_id: str, reason: Optional[str] = None) -> TransitionResult:
        def apply(order: Order, unit: _Unit) -> None:
            self._terminate(order, unit, S.CANCELLED, R.CANCELLED_ON_REQUEST, message=reason or "Order cancelled")

        return self._mutate(order_id, apply)

    def reject(self, order_id: str, reason: Optional[str] = None) -> TransitionResult:
        def apply(order: Order, unit: _Unit) -> None:
            self._terminate(order, unit, S.REJECTED, R.REJECTED_BY_ADMIN, message=reason or "Order rejected")

        return self._mutate(order_id, apply)

    def refund(self, order_id: str, reason: Optional[str] = None) -> TransitionResult:
        def apply(order: Order, unit: _Unit) -> None:
            self._terminate(order, unit, S.REFUNDED, R.REFUNDED, message=reason or "Order refunded")
            order.payment_status = PaymentStatus.REFUNDED

        return self._mutate(order_id, apply)

    def get_order(self, order_id: str) -> Order:
        return self.orders.get(order_id)

    # ------------------------------------------------------------------
    # retries
    # ------------------------------------------------------------------

    def run_due_retries(self, now: Optional[datetime] = None, limit: int = 100) -> List[TransitionResult]:
        """
        Drains due retry tasks. Meant to be called by a worker loop
        (logistics run_dispatch_worker) or directly from tests.
        """
        now = now or self.clock()
        results = []
        for task in self.scheduler.claim_due(now, limit):
            try:
                results.append(self._run_retry(task, now))
            except NotFound:
                logger.warning("Dropping %s retry for missing order %s", task.kind.value, task.order_id)
            except ConcurrentModification:
                logger.warning("Order %s changed under %s retry, rescheduling", task.order_id, task.kind.value)
                self.scheduler.schedule(
                    RetryTask(
                        order_id=task.order_id,
                        kind=task.kind,
                        due_at=now + timedelta(seconds=self.dispatch_policy.retry_delay_seconds),
                        attempt=task.attempt,
                        max_attempts=task.max_attempts,
                        expected_status=task.expected_status,
                    )
                )
        return results

    def _run_retry(self, task: RetryTask, now: datetime) -> TransitionResult:
        def apply(order: Order, unit: _Unit) -> None:
            if order.status != task.expected_status:
                logger.info(
                    "Skipping %s retry for order %s: now %s, expected %s",
                    task.kind.value, order.id, order.status.value, task.expected_status.value,
                )
                unit.dirty = False
                return

            if task.kind == RetryKind.VENDOR_ASSIGNMENT:
                if order.assigned_pharmacy_id is not None:
                    unit.dirty = False
                    return
                self._assign_vendor(order, unit, attempt=task.attempt, max_attempts=task.max_attempts)
            else:
                if order.assigned_rider_id is not None:
                    unit.dirty = False
                    return
                self._assign_rider(order, unit, attempt=task.attempt, max_attempts=task.max_attempts)

        return self._mutate(task.order_id, apply, now=now)

"""
Django implementations of the dispatch boundaries.

Dispatcher and WithdrawalDesk only see these through their protocols
(OrderRepository, RiderDirectory, PharmacyDirectory, RetryScheduler,
NotificationSink, CouponBook, WithdrawalStore, lock manager), so the same
lifecycle rules run here and over the in-memory adapters in tests.
"""

from contextlib import contextmanager
from decimal import Decimal
import logging
from typing import Iterable, List, Optional

from django.db import transaction
from django.utils import timezone

from dispatch.notifications import TargetType
from dispatch.scheduler import RetryKind, RetryTask
from orders.exceptions import ConcurrentModification, NotFound
from orders.models import (
    Address,
    CodCollection,
    CodPaymentMode,
    Order as DomainOrder,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PlanType,
    ProofAttachment,
    TimelineEntry,
    line_item_from_dict,
    line_item_to_dict,
)
from pricing.coupons import Coupon as DomainCoupon
from riders import wallet
from riders.models import (
    BankAccount as DomainBankAccount,
    LicenseStatus,
    Rider as DomainRider,
    RiderStatus,
    TransactionType,
    WalletTransaction as DomainWalletTransaction,
)
from riders.withdrawals import WithdrawalRequest as DomainWithdrawal, WithdrawalStatus
from vendors.models import Pharmacy as DomainPharmacy, PharmacyStatus

from .models import (
    Coupon,
    DispatchLock,
    Notification,
    Order,
    Pharmacy,
    Rider,
    ScheduledRetry,
    WalletTransaction,
    WithdrawalRequest,
)

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# row <-> domain conversion
# ----------------------------------------------------------------------

def _location(lng, lat):
    if lng is None or lat is None:
        return None
    return (lng, lat)


def rider_from_row(row: Rider, with_ledger: bool = True) -> DomainRider:
    rider = DomainRider(
        id=row.id,
        name=row.name,
        phone=row.phone,
        status=RiderStatus(row.status),
        license_status=LicenseStatus(row.license_status),
        location=_location(row.lng, row.lat),
        base_fare=row.base_fare,
        wallet_balance=Decimal(row.wallet_balance).quantize(wallet.CENTS),
    )
    if with_ledger:
        rider.transactions = [
            DomainWalletTransaction(
                type=TransactionType(t.type),
                amount=t.amount,
                created_at=t.created_at,
                reason=t.reason,
                order_id=t.order_id,
                reference=t.reference,
            )
            for t in row.transactions.all()
        ]
        rider.bank_accounts = [
            DomainBankAccount(
                id=b.id,
                account_holder_name=b.account_holder_name,
                account_number=b.account_number,
                ifsc_code=b.ifsc_code,
                bank_name=b.bank_name,
                upi_id=b.upi_id,
            )
            for b in row.bank_accounts.all()
        ]
    return rider


def pharmacy_from_row(row: Pharmacy) -> DomainPharmacy:
    return DomainPharmacy(
        id=row.id,
        name=row.name,
        owner_id=str(row.owner_id) if row.owner_id is not None else None,
        location=_location(row.lng, row.lat),
        status=PharmacyStatus(row.status),
        categories=list(row.categories or []),
        account_details=dict(row.account_details or {}),
    )


def order_from_row(row: Order) -> DomainOrder:
    return DomainOrder(
        id=row.id,
        user_id=str(row.customer_id),
        items=[line_item_from_dict(item) for item in row.items],
        delivery_location=(row.delivery_lng, row.delivery_lat),
        delivery_address=Address.from_dict(row.delivery_address),
        payment_method=PaymentMethod(row.payment_method),
        payment_status=PaymentStatus(row.payment_status),
        subtotal=row.subtotal,
        platform_fee=row.platform_fee,
        delivery_charge=row.delivery_charge,
        discount=row.discount,
        total=row.total_amount,
        coupon_code=row.coupon_code,
        is_prescription_order=row.is_prescription_order,
        is_reordered=row.is_reordered,
        plan_type=PlanType(row.plan_type) if row.plan_type else None,
        delivery_date=row.delivery_date,
        notes=row.notes,
        status=OrderStatus(row.status),
        assigned_rider_id=row.rider_id,
        assigned_pharmacy_id=row.pharmacy_id,
        rejected_rider_ids=list(row.rejected_rider_ids or []),
        rejected_pharmacy_ids=list(row.rejected_pharmacy_ids or []),
        timeline=[TimelineEntry.from_dict(entry) for entry in row.timeline],
        pickup_proofs=[ProofAttachment.from_dict(p) for p in row.pickup_proofs],
        delivery_proofs=[ProofAttachment.from_dict(p) for p in row.delivery_proofs],
        cod=CodCollection(row.cod_amount, CodPaymentMode(row.cod_mode)) if row.cod_mode else None,
        version=row.version,
        created_at=row.created_at,
    )


def _order_fields(order: DomainOrder) -> dict:
    lng, lat = order.delivery_location
    return {
        "customer_id": order.user_id,
        "pharmacy_id": order.assigned_pharmacy_id,
        "rider_id": order.assigned_rider_id,
        "rejected_rider_ids": list(order.rejected_rider_ids),
        "rejected_pharmacy_ids": list(order.rejected_pharmacy_ids),
        "items": [line_item_to_dict(item) for item in order.items],
        "delivery_address": order.delivery_address.to_dict(),
        "delivery_lng": lng,
        "delivery_lat": lat,
        "payment_method": order.payment_method.value,
        "payment_status": order.payment_status.value,
        "subtotal": order.subtotal,
        "platform_fee": order.platform_fee,
        "delivery_charge": order.delivery_charge,
        "discount": order.discount,
        "total_amount": order.total,
        "coupon_code": order.coupon_code,
        "is_prescription_order": order.is_prescription_order,
        "is_reordered": order.is_reordered,
        "plan_type": order.plan_type.value if order.plan_type else None,
        "delivery_date": order.delivery_date,
        "notes": order.notes,
        "status": order.status.value,
        "timeline": [entry.to_dict() for entry in order.timeline],
        "pickup_proofs": [p.to_dict() for p in order.pickup_proofs],
        "delivery_proofs": [p.to_dict() for p in order.delivery_proofs],
        "cod_amount": order.cod.amount if order.cod else None,
        "cod_mode": order.cod.mode.value if order.cod else None,
    }


# ----------------------------------------------------------------------
# locks
# ----------------------------------------------------------------------

class DjangoLockManager:
    """
    One DispatchLock row per key. Holding the row lock inside
    transaction.atomic() serializes writers across worker processes and
    makes everything done under the lock commit (or roll back) together.
    """

    @contextmanager
    def lock(self, key: str):
        DispatchLock.objects.get_or_create(key=key)
        with transaction.atomic():
            DispatchLock.objects.select_for_update().get(key=key)
            yield


# ----------------------------------------------------------------------
# repositories / directories
# ----------------------------------------------------------------------

class DjangoOrderRepository:
    def add(self, order: DomainOrder) -> DomainOrder:
        order.version = 1
        Order.objects.create(id=order.id, version=order.version, created_at=order.created_at, **_order_fields(order))
        return order

    def get(self, order_id: str) -> DomainOrder:
        try:
            return order_from_row(Order.objects.get(pk=order_id))
        except Order.DoesNotExist:
            raise NotFound(f"Order {order_id} not found")

    def save(self, order: DomainOrder) -> DomainOrder:
        updated = Order.objects.filter(pk=order.id, version=order.version).update(
            version=order.version + 1,
            updated_at=timezone.now(),
            **_order_fields(order),
        )
        if not updated:
            if not Order.objects.filter(pk=order.id).exists():
                raise NotFound(f"Order {order.id} not found")
            logger.warning("Stale write on order %s at version %s", order.id, order.version)
            raise ConcurrentModification(f"Order {order.id} was modified concurrently")
        order.version += 1
        return order


class DjangoRiderDirectory:
    def _row(self, rider_id: str, for_update: bool = False) -> Rider:
        qs = Rider.objects.select_for_update() if for_update else Rider.objects.all()
        try:
            return qs.get(pk=rider_id)
        except Rider.DoesNotExist:
            raise NotFound(f"Rider {rider_id} not found")

    def get(self, rider_id: str) -> DomainRider:
        return rider_from_row(self._row(rider_id))

    def list_eligible(self, location, excluding: Iterable[str] = ()) -> List[DomainRider]:
        rows = (
            Rider.objects.filter(
                status=Rider.Status.ONLINE,
                license_status=Rider.LicenseStatus.APPROVED,
                lat__isnull=False,
                lng__isnull=False,
            )
            .exclude(pk__in=list(excluding))
        )
        return [rider_from_row(row, with_ledger=False) for row in rows]

    def _apply(self, rider_id: str, mutate) -> DomainWalletTransaction:
        with transaction.atomic():
            row = self._row(rider_id, for_update=True)
            rider = rider_from_row(row, with_ledger=False)
            entry = mutate(rider)
            row.wallet_balance = rider.wallet_balance
            row.save(update_fields=["wallet_balance"])
            WalletTransaction.objects.create(
                rider=row,
                type=entry.type.value,
                amount=entry.amount,
                reason=entry.reason,
                order_id=entry.order_id,
                reference=entry.reference,
                created_at=entry.created_at,
            )
        return entry

    def credit_wallet(self, rider_id: str, amount, *, reason: str, order_id: Optional[str] = None) -> DomainWalletTransaction:
        entry = self._apply(
            rider_id,
            lambda rider: wallet.credit(rider, amount, now=timezone.now(), reason=reason, order_id=order_id),
        )
        logger.info("Credited %s to rider %s (%s)", entry.amount, rider_id, reason)
        return entry

    def debit_wallet(self, rider_id: str, amount, *, reason: str, reference: Optional[str] = None) -> DomainWalletTransaction:
        entry = self._apply(
            rider_id,
            lambda rider: wallet.debit(rider, amount, now=timezone.now(), reason=reason, reference=reference),
        )
        logger.info("Debited %s from rider %s (%s)", entry.amount, rider_id, reason)
        return entry


class DjangoPharmacyDirectory:
    def get(self, pharmacy_id: str) -> DomainPharmacy:
        try:
            return pharmacy_from_row(Pharmacy.objects.get(pk=pharmacy_id))
        except Pharmacy.DoesNotExist:
            raise NotFound(f"Pharmacy {pharmacy_id} not found")

    def list_eligible(self, location, excluding: Iterable[str] = ()) -> List[DomainPharmacy]:
        rows = (
            Pharmacy.objects.filter(status=Pharmacy.Status.ACTIVE, lat__isnull=False, lng__isnull=False)
            .exclude(pk__in=list(excluding))
        )
        return [pharmacy_from_row(row) for row in rows]


# ----------------------------------------------------------------------
# retries / notifications / coupons
# ----------------------------------------------------------------------

def _task_from_row(row: ScheduledRetry) -> RetryTask:
    return RetryTask(
        order_id=row.order_id,
        kind=RetryKind(row.kind),
        due_at=row.due_at,
        attempt=row.attempt,
        max_attempts=row.max_attempts,
        expected_status=OrderStatus(row.expected_status),
    )


class DjangoRetryScheduler:
    def schedule(self, task: RetryTask) -> None:
        ScheduledRetry.objects.update_or_create(
            order_id=task.order_id,
            defaults={
                "kind": task.kind.value,
                "due_at": task.due_at,
                "attempt": task.attempt,
                "max_attempts": task.max_attempts,
                "expected_status": task.expected_status.value,
            },
        )

    def cancel(self, order_id: str) -> None:
        ScheduledRetry.objects.filter(order_id=order_id).delete()

    def claim_due(self, now, limit: int = 100) -> List[RetryTask]:
        with transaction.atomic():
            rows = list(
                ScheduledRetry.objects.select_for_update(skip_locked=True)
                .filter(due_at__lte=now)
                .order_by("due_at", "order_id")[:limit]
            )
            ScheduledRetry.objects.filter(order_id__in=[row.order_id for row in rows]).delete()
        return [_task_from_row(row) for row in rows]

    def pending(self, order_id: str) -> Optional[RetryTask]:
        row = ScheduledRetry.objects.filter(order_id=order_id).first()
        return _task_from_row(row) if row else None


class DjangoNotificationSink:
    def notify(self, target_type, target_id, message, related_order_id=None, reason=None) -> None:
        Notification.objects.create(
            target_type=TargetType(target_type).value,
            target_id=str(target_id),
            message=message,
            order_id=related_order_id,
            reason=reason,
        )


class DjangoCouponBook:
    def get(self, code: str) -> Optional[DomainCoupon]:
        if not code:
            return None
        row = Coupon.objects.filter(code__iexact=code.strip()).first()
        if row is None:
            return None
        return DomainCoupon(code=row.code, discount_percentage=row.discount_percentage, expires_on=row.expiration_date)


# ----------------------------------------------------------------------
# withdrawals
# ----------------------------------------------------------------------

def withdrawal_from_row(row: WithdrawalRequest) -> DomainWithdrawal:
    return DomainWithdrawal(
        id=row.id,
        rider_id=row.rider_id,
        amount=row.amount,
        bank_detail=dict(row.bank_detail or {}),
        status=WithdrawalStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class DjangoWithdrawalStore:
    def add(self, request: DomainWithdrawal) -> DomainWithdrawal:
        WithdrawalRequest.objects.create(
            id=request.id,
            rider_id=request.rider_id,
            amount=request.amount,
            bank_detail=request.bank_detail,
            status=request.status.value,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )
        return request

    def get(self, request_id: str) -> DomainWithdrawal:
        try:
            return withdrawal_from_row(WithdrawalRequest.objects.get(pk=request_id))
        except WithdrawalRequest.DoesNotExist:
            raise NotFound(f"Withdrawal request {request_id} not found")

    def compare_and_set_status(self, request_id: str, expected: WithdrawalStatus, new: WithdrawalStatus, now) -> DomainWithdrawal:
        updated = WithdrawalRequest.objects.filter(pk=request_id, status=expected.value).update(status=new.value, updated_at=now)
        if not updated:
            current = self.get(request_id)
            raise ConcurrentModification(
                f"Withdrawal request {request_id} is {current.status.value}, expected {expected.value}"
            )
        return self.get(request_id)

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


def new_id():
    return str(uuid.uuid4())


class Pharmacy(models.Model):
    """
    A vendor storefront. Owner is the VENDOR user who manages it.
    Only ACTIVE pharmacies with coordinates receive orders.
    """
    class Status(models.TextChoices):
        PENDING = "Pending", "Pending review"
        ACTIVE = "Active", "Active"
        SUSPENDED = "Suspended", "Suspended"
        INACTIVE = "Inactive", "Inactive"

    id = models.CharField(primary_key=True, max_length=64, default=new_id, editable=False)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='pharmacies')
    name = models.CharField(max_length=255)
    address_text = models.TextField(blank=True)

    # Geolocation for choosing the nearest pharmacy to the customer
    lat = models.FloatField(blank=True, null=True)
    lng = models.FloatField(blank=True, null=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    categories = models.JSONField(default=list, blank=True)
    account_details = models.JSONField(default=dict, blank=True)
    # {"2026-10": "1250.00"}; written by the payout screens, never read by dispatch
    monthly_revenue = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Rider(models.Model):
    """
    Delivery agent profile for a RIDER user, plus the wallet.
    wallet_balance only changes together with a WalletTransaction row.
    """
    class Status(models.TextChoices):
        ONLINE = "online", "Online"
        OFFLINE = "offline", "Offline"

    class LicenseStatus(models.TextChoices):
        PENDING = "Pending", "Pending"
        APPROVED = "Approved", "Approved"
        REJECTED = "Rejected", "Rejected"

    id = models.CharField(primary_key=True, max_length=64, default=new_id, editable=False)
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True, related_name='rider_profile')
    name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=32, blank=True)

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OFFLINE)
    license_status = models.CharField(max_length=10, choices=LicenseStatus.choices, default=LicenseStatus.PENDING)
    license_image_url = models.URLField(blank=True, null=True)

    lat = models.FloatField(blank=True, null=True)
    lng = models.FloatField(blank=True, null=True)

    # Null means the platform default from settings.PRICING
    base_fare = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    wallet_balance = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name or self.id


class BankAccount(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=new_id, editable=False)
    rider = models.ForeignKey(Rider, on_delete=models.CASCADE, related_name='bank_accounts')
    account_holder_name = models.CharField(max_length=255)
    account_number = models.CharField(max_length=64)
    ifsc_code = models.CharField(max_length=20, blank=True)
    bank_name = models.CharField(max_length=255, blank=True)
    upi_id = models.CharField(max_length=255, blank=True, null=True)


class WalletTransaction(models.Model):
    """
    Append-only wallet ledger line.
    """
    class Type(models.TextChoices):
        CREDIT = "credit", "Credit"
        DEBIT = "debit", "Debit"

    rider = models.ForeignKey(Rider, on_delete=models.CASCADE, related_name='transactions')
    type = models.CharField(max_length=10, choices=Type.choices)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    reason = models.CharField(max_length=255, blank=True)
    order_id = models.CharField(max_length=64, blank=True, null=True)
    reference = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at', 'id']


class Order(models.Model):
    """
    Persistence for orders.models.Order. All lifecycle writes go through
    dispatch.Dispatcher via logistics.adapters.DjangoOrderRepository; `version`
    is the compare-and-swap token.
    """
    class Status(models.TextChoices):
        PLACED = "Placed", "Placed"
        PENDING_VENDOR_RESPONSE = "PendingVendorResponse", "Pending vendor response"
        VENDOR_ACCEPTED = "VendorAccepted", "Accepted by pharmacy"
        RIDER_ASSIGNMENT_PENDING = "RiderAssignmentPending", "Looking for a rider"
        RIDER_ASSIGNED = "RiderAssigned", "Rider assigned"
        RIDER_ACCEPTED = "RiderAccepted", "Rider accepted"
        PICKED_UP = "PickedUp", "Picked up"
        DELIVERED = "Delivered", "Delivered"
        REJECTED = "Rejected", "Rejected"
        CANCELLED = "Cancelled", "Cancelled"
        FAILED = "Failed", "Failed"
        REFUNDED = "Refunded", "Refunded"

    class PaymentMethod(models.TextChoices):
        COD = "cash_on_delivery", "Cash on Delivery"
        ONLINE = "online", "Online"

    class PaymentStatus(models.TextChoices):
        PENDING = "Pending", "Pending"
        PAID = "Paid", "Paid"
        REFUNDED = "Refunded", "Refunded"
        FAILED = "Failed", "Failed"

    class PlanType(models.TextChoices):
        WEEKLY = "Weekly", "Weekly"
        MONTHLY = "Monthly", "Monthly"

    class CodMode(models.TextChoices):
        CASH = "cash", "Cash"
        ONLINE = "online", "Online"

    id = models.CharField(primary_key=True, max_length=64, default=new_id, editable=False)

    # Relationships
    customer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='orders')
    pharmacy = models.ForeignKey(Pharmacy, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    rider = models.ForeignKey(Rider, on_delete=models.SET_NULL, null=True, blank=True, related_name='deliveries')
    rejected_rider_ids = models.JSONField(default=list, blank=True)
    rejected_pharmacy_ids = models.JSONField(default=list, blank=True)

    # Structure: [{"medicine_id": "m1", "name": "...", "quantity": 2, "unit_price": "10.00"}]
    items = models.JSONField(default=list)
    delivery_address = models.JSONField(default=dict, blank=True)
    # Coordinates where the rider needs to go
    delivery_lat = models.FloatField()
    delivery_lng = models.FloatField()

    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.COD)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    platform_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    delivery_charge = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    coupon_code = models.CharField(max_length=64, blank=True, null=True)

    is_prescription_order = models.BooleanField(default=False)
    is_reordered = models.BooleanField(default=False)
    plan_type = models.CharField(max_length=10, choices=PlanType.choices, blank=True, null=True)
    delivery_date = models.DateField(blank=True, null=True)
    notes = models.TextField(blank=True)

    status = models.CharField(max_length=32, choices=Status.choices, default=Status.PLACED, db_index=True)
    timeline = models.JSONField(default=list)
    pickup_proofs = models.JSONField(default=list, blank=True)
    delivery_proofs = models.JSONField(default=list, blank=True)
    cod_amount = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    cod_mode = models.CharField(max_length=10, choices=CodMode.choices, blank=True, null=True)

    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Order #{self.id} - {self.status}"


class Notification(models.Model):
    class TargetType(models.TextChoices):
        USER = "user", "User"
        RIDER = "rider", "Rider"
        VENDOR = "vendor", "Vendor"

    class Status(models.TextChoices):
        PENDING = "Pending", "Pending"
        SEEN = "Seen", "Seen"

    target_type = models.CharField(max_length=10, choices=TargetType.choices)
    target_id = models.CharField(max_length=64, db_index=True)
    message = models.TextField()
    reason = models.CharField(max_length=64, blank=True, null=True)
    order_id = models.CharField(max_length=64, blank=True, null=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at', '-id']


class WithdrawalRequest(models.Model):
    class Status(models.TextChoices):
        REQUESTED = "Requested", "Requested"
        APPROVED = "Approved", "Approved"
        REJECTED = "Rejected", "Rejected"

    id = models.CharField(primary_key=True, max_length=64, default=new_id, editable=False)
    rider = models.ForeignKey(Rider, on_delete=models.CASCADE, related_name='withdrawals')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    # Copied at request time; later edits to the bank account don't change a payout
    bank_detail = models.JSONField(default=dict)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.REQUESTED)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']


class Coupon(models.Model):
    code = models.CharField(max_length=64, unique=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    expiration_date = models.DateField(blank=True, null=True)

    def __str__(self):
        return self.code


class ScheduledRetry(models.Model):
    """
    Durable replacement for in-process timers. One row per order at most;
    drained by `manage.py run_dispatch_worker`.
    """
    order_id = models.CharField(primary_key=True, max_length=64)
    kind = models.CharField(max_length=32)
    due_at = models.DateTimeField(db_index=True)
    attempt = models.PositiveIntegerField(default=1)
    max_attempts = models.PositiveIntegerField(default=1)
    expected_status = models.CharField(max_length=32)


class DispatchLock(models.Model):
    """
    Row-level lock target for `lock_manager.lock(key)`.
    """
    key = models.CharField(primary_key=True, max_length=128)

"""
Wires the dispatch core to Django: policies from settings, adapters from
logistics.adapters.
"""

from decimal import Decimal

from django.conf import settings

from dispatch import Dispatcher, DispatchPolicy, FanOutNotificationSink, PushNotificationSink
from pricing import PricingPolicy
from riders.withdrawals import WithdrawalDesk

from .adapters import (
    DjangoCouponBook,
    DjangoLockManager,
    DjangoNotificationSink,
    DjangoOrderRepository,
    DjangoPharmacyDirectory,
    DjangoRetryScheduler,
    DjangoRiderDirectory,
    DjangoWithdrawalStore,
)


def pricing_policy_from_settings() -> PricingPolicy:
    conf = getattr(settings, "PRICING", {})
    defaults = PricingPolicy()
    policy = PricingPolicy(
        rate_per_km=Decimal(str(conf.get("RATE_PER_KM", defaults.rate_per_km))),
        default_base_fare=Decimal(str(conf.get("DEFAULT_BASE_FARE", defaults.default_base_fare))),
        platform_fee=Decimal(str(conf.get("PLATFORM_FEE", defaults.platform_fee))),
    )
    policy.validate()
    return policy


def dispatch_policy_from_settings() -> DispatchPolicy:
    conf = getattr(settings, "DISPATCH", {})
    defaults = DispatchPolicy()
    policy = DispatchPolicy(
        retry_delay_seconds=int(conf.get("RETRY_DELAY_SECONDS", defaults.retry_delay_seconds)),
        retry_backoff_multiplier=float(conf.get("RETRY_BACKOFF_MULTIPLIER", defaults.retry_backoff_multiplier)),
        max_retry_delay_seconds=int(conf.get("MAX_RETRY_DELAY_SECONDS", defaults.max_retry_delay_seconds)),
        max_assignment_attempts=int(conf.get("MAX_ASSIGNMENT_ATTEMPTS", defaults.max_assignment_attempts)),
        max_vendor_attempts=int(conf.get("MAX_VENDOR_ATTEMPTS", defaults.max_vendor_attempts)),
        rejection_retry_attempts=int(conf.get("REJECTION_RETRY_ATTEMPTS", defaults.rejection_retry_attempts)),
        pickup_proximity_m=float(conf.get("PICKUP_PROXIMITY_M", defaults.pickup_proximity_m)),
        require_pickup_proximity=bool(conf.get("REQUIRE_PICKUP_PROXIMITY", defaults.require_pickup_proximity)),
        average_speed_kmh=float(conf.get("AVERAGE_SPEED_KMH", defaults.average_speed_kmh)),
    )
    policy.validate()
    return policy


def build_notification_sink():
    sink = DjangoNotificationSink()
    push_url = getattr(settings, "PUSH_GATEWAY_URL", None)
    if not push_url:
        return sink
    push = PushNotificationSink(base_url=push_url, timeout=getattr(settings, "PUSH_GATEWAY_TIMEOUT", 5))
    return FanOutNotificationSink([sink, push])


def build_dispatcher() -> Dispatcher:
    return Dispatcher(
        orders=DjangoOrderRepository(),
        riders=DjangoRiderDirectory(),
        pharmacies=DjangoPharmacyDirectory(),
        scheduler=DjangoRetryScheduler(),
        notifications=build_notification_sink(),
        lock_manager=DjangoLockManager(),
        pricing_policy=pricing_policy_from_settings(),
        dispatch_policy=dispatch_policy_from_settings(),
        coupons=DjangoCouponBook(),
    )


def build_withdrawal_desk() -> WithdrawalDesk:
    return WithdrawalDesk(
        store=DjangoWithdrawalStore(),
        riders=DjangoRiderDirectory(),
        lock_manager=DjangoLockManager(),
    )

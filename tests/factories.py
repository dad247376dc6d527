from datetime import datetime, timedelta, timezone
from decimal import Decimal

from dispatch import (
    Dispatcher,
    InMemoryLockManager,
    InMemoryOrderRepository,
    InMemoryRetryScheduler,
    PlaceOrderRequest,
    RecordingNotificationSink,
)
from pricing import LineItem
from riders import InMemoryRiderDirectory, LicenseStatus, Rider, RiderStatus
from vendors import InMemoryPharmacyDirectory, Pharmacy, PharmacyStatus

# Bengaluru, MG Road (lon, lat)
CENTRE = (77.6070, 12.9755)


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


def offset(point, dlon=0.0, dlat=0.0):
    return (point[0] + dlon, point[1] + dlat)


def online_rider(rider_id, location, base_fare=None):
    return Rider.new(
        rider_id,
        lon=location[0],
        lat=location[1],
        status=RiderStatus.ONLINE,
        license_status=LicenseStatus.APPROVED,
        base_fare=base_fare,
    )


def active_pharmacy(pharmacy_id, location):
    return Pharmacy.new(pharmacy_id, lon=location[0], lat=location[1], status=PharmacyStatus.ACTIVE, name=pharmacy_id)


class World:
    """
    A Dispatcher over in-memory adapters plus handles on every collaborator.
    """

    def __init__(self, riders=(), pharmacies=(), **dispatcher_kwargs):
        self.clock = FakeClock()
        self.orders = InMemoryOrderRepository()
        self.riders = InMemoryRiderDirectory(riders, clock=self.clock)
        self.pharmacies = InMemoryPharmacyDirectory(pharmacies)
        self.scheduler = InMemoryRetryScheduler()
        self.sink = RecordingNotificationSink()
        self.locks = InMemoryLockManager()
        self.dispatcher = Dispatcher(
            orders=self.orders,
            riders=self.riders,
            pharmacies=self.pharmacies,
            scheduler=self.scheduler,
            notifications=self.sink,
            lock_manager=self.locks,
            clock=self.clock,
            **dispatcher_kwargs,
        )

    def place(self, user_id="user-1", location=CENTRE, **kwargs):
        items = kwargs.pop("items", None) or [LineItem.new("med-1", 2, Decimal("250.00"), name="Amoxicillin")]
        return self.dispatcher.place_order(
            PlaceOrderRequest(user_id=user_id, items=items, delivery_location=location, **kwargs)
        )

    def drain(self, seconds):
        self.clock.advance(seconds)
        return self.dispatcher.run_due_retries()

import argparse
import csv
import logging
import os
import random
import time
from collections import Counter
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
from orders import CodCollection, OrderStatus, PaymentMethod
from pricing import LineItem
from riders import InMemoryRiderDirectory, LicenseStatus, Rider, RiderStatus
from vendors import InMemoryPharmacyDirectory, Pharmacy, PharmacyStatus

# Bengaluru, MG Road (lon, lat)
CITY_CENTRE = (77.6070, 12.9755)

MEDICINES = [
    ("paracetamol-500", "Paracetamol 500mg", Decimal("25.00")),
    ("amoxicillin-250", "Amoxicillin 250mg", Decimal("110.00")),
    ("insulin-glargine", "Insulin glargine", Decimal("250.00")),
    ("ors-sachet", "ORS sachet", Decimal("20.00")),
    ("cetirizine-10", "Cetirizine 10mg", Decimal("35.00")),
]


class SimClock:
    """Simulated wall clock so retries fire without sleeping."""

    def __init__(self):
        self.now = datetime.now(timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def scatter(centre, radius_deg):
    # Uniform-ish spread in a square around the centre
    return (
        centre[0] + (random.random() - 0.5) * 2 * radius_deg,
        centre[1] + (random.random() - 0.5) * 2 * radius_deg,
    )


def seed_pharmacies(count, radius_deg):
    pharmacies = []
    for i in range(count):
        lon, lat = scatter(CITY_CENTRE, radius_deg)
        # one in eight is still waiting for admin review and never gets orders
        status = PharmacyStatus.ACTIVE if i % 8 else PharmacyStatus.PENDING
        pharmacies.append(Pharmacy.new(f"pharmacy_{i}", lon, lat, status, name=f"Pharmacy {i}"))
    return pharmacies


def seed_riders(count, radius_deg):
    riders = []
    for i in range(count):
        lon, lat = scatter(CITY_CENTRE, radius_deg)
        status = RiderStatus.ONLINE if i % 10 else RiderStatus.OFFLINE
        riders.append(
            Rider.new(
                f"rider_{i}",
                lon,
                lat,
                status=status,
                license_status=LicenseStatus.APPROVED,
                name=f"Rider {i}",
                base_fare=Decimal(random.choice(["25", "30", "35"])),
            )
        )
    return riders


def random_items():
    picks = random.sample(MEDICINES, k=random.randint(1, 3))
    return [LineItem.new(med_id, random.randint(1, 3), price, name=name) for med_id, name, price in picks]


def drive_order(dispatcher, clock, riders, pharmacies, order_id, accept_rate, max_rounds=20):
    """
    Plays the vendor and rider side of one order until it reaches a terminal status.
    Every refusal is followed by enough simulated time for the retry to fire.
    """
    for _ in range(max_rounds):
        order = dispatcher.get_order(order_id)

        if order.is_terminal:
            return order

        if order.status == OrderStatus.PENDING_VENDOR_RESPONSE and order.assigned_pharmacy_id:
            dispatcher.vendor_respond(order_id, order.assigned_pharmacy_id, accept=random.random() < accept_rate, reason="simulated")
            continue

        if order.status == OrderStatus.RIDER_ASSIGNED:
            dispatcher.rider_respond(order_id, order.assigned_rider_id, accept=random.random() < accept_rate, reason="simulated")
            continue

        if order.status == OrderStatus.RIDER_ACCEPTED:
            # Rider rides over to the pharmacy before uploading the pickup photo
            pharmacy = pharmacies.get(order.assigned_pharmacy_id)
            riders.update_location(order.assigned_rider_id, pharmacy.location)
            dispatcher.attach_pickup_proof(order_id, order.assigned_rider_id, f"https://img.example/{order_id}/pickup.jpg")
            dispatcher.mark_picked_up(order_id, order.assigned_rider_id)
            continue

        if order.status == OrderStatus.PICKED_UP:
            dispatcher.attach_delivery_proof(order_id, order.assigned_rider_id, f"https://img.example/{order_id}/door.jpg")
            cod = CodCollection.new(order.total, "cash") if order.payment_method == PaymentMethod.CASH_ON_DELIVERY else None
            dispatcher.mark_delivered(order_id, order.assigned_rider_id, cod=cod)
            riders.update_location(order.assigned_rider_id, order.delivery_location)
            continue

        # Placed / RiderAssignmentPending / vendor just rejected: wait for the retry
        clock.advance(dispatcher.dispatch_policy.max_retry_delay_seconds)
        dispatcher.run_due_retries()

    return dispatcher.get_order(order_id)


def run_simulation(args):
    print("=== STARTING END-TO-END DISPATCH SIMULATION ===")
    random.seed(args.seed)

    clock = SimClock()
    pharmacies = InMemoryPharmacyDirectory(seed_pharmacies(args.pharmacies, args.radius))
    riders = InMemoryRiderDirectory(seed_riders(args.riders, args.radius), clock=clock)
    sink = RecordingNotificationSink()
    dispatcher = Dispatcher(
        orders=InMemoryOrderRepository(),
        riders=riders,
        pharmacies=pharmacies,
        scheduler=InMemoryRetryScheduler(),
        notifications=sink,
        lock_manager=InMemoryLockManager(),
        clock=clock,
    )
    print(f"Seeded {args.pharmacies} pharmacies and {args.riders} riders around {CITY_CENTRE}.\n")

    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    output_path = os.path.join(base_dir, args.output)

    outcomes = Counter()
    start_time = time.time()

    with open(output_path, "w", newline='') as file:
        writer = csv.writer(file)
        writer.writerow(["order_id", "status", "pharmacy_id", "rider_id", "delivery_charge", "total", "timeline_entries"])

        for i in range(args.orders):
            placed = dispatcher.place_order(
                PlaceOrderRequest(
                    user_id=f"user_{i % 25}",
                    items=random_items(),
                    delivery_location=scatter(CITY_CENTRE, args.radius),
                    payment_method=random.choice(list(PaymentMethod)),
                )
            )
            order = drive_order(dispatcher, clock, riders, pharmacies, placed.order_id, args.accept_rate)
            outcomes[order.status.value] += 1

            writer.writerow([
                order.id,
                order.status.value,
                order.assigned_pharmacy_id or "",
                order.assigned_rider_id or "",
                order.delivery_charge,
                order.total,
                len(order.timeline),
            ])
            print(f"[{order.status.value:>9}] Order {order.id[:8]} -> pharmacy {order.assigned_pharmacy_id}, rider {order.assigned_rider_id}, total {order.total}")

    earnings = sum((r.wallet_balance for r in riders.all()), Decimal("0.00"))

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Processed {args.orders} orders in {time.time() - start_time:.2f}s.")
    for status, count in outcomes.most_common():
        print(f"  {status}: {count}")
    print(f"Rider earnings credited: {earnings}")
    print(f"Notifications sent: {len(sink.sent)}")
    print(f"Results written to '{args.output}'.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Drive random orders through the dispatch lifecycle with in-memory adapters.")
    parser.add_argument("--orders", type=int, default=30)
    parser.add_argument("--pharmacies", type=int, default=12)
    parser.add_argument("--riders", type=int, default=20)
    parser.add_argument("--radius", type=float, default=0.05, help="Spread around the city centre in degrees")
    parser.add_argument("--accept-rate", type=float, default=0.8, help="Chance a vendor or rider accepts an offer")
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--output", default="dispatch_results.csv")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    run_simulation(args)


if __name__ == "__main__":
    main()

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from django.core.management import call_command
from django.utils import timezone

from logistics.adapters import DjangoRiderDirectory
from logistics.models import Coupon, Notification, Order, Rider, ScheduledRetry, WalletTransaction, WithdrawalRequest
from users.models import User

from ..factories import CENTRE

CENTRE_LNG, CENTRE_LAT = CENTRE

pytestmark = pytest.mark.django_db


def place(api, customer, payload):
    response = api(customer).post("/api/v1/orders/", payload, format="json")
    assert response.status_code == 201, response.data
    return response.data


def test_order_lifecycle_over_http(api, customer, vendor, pharmacy, rider_user, rider, order_payload):
    created = place(api, customer, order_payload)
    assert created["status"] == "PendingVendorResponse"
    assert created["external_status"] == "Pending"
    assert created["pharmacy"] == pharmacy.id
    order_url = f"/api/v1/orders/{created['id']}/"

    accepted = api(vendor).post(order_url + "vendor-response/", {"accept": True}, format="json")
    assert accepted.status_code == 200, accepted.data
    assert accepted.data["status"] == "RiderAssigned"
    assert accepted.data["rider"] == rider.id
    assert [e["status"] for e in accepted.data["timeline_delta"]] == ["VendorAccepted", "RiderAssigned"]
    assert Decimal(accepted.data["delivery_charge"]) == Decimal("32.00")
    assert Decimal(accepted.data["total_amount"]) == Decimal("542.00")

    rider_api = api(rider_user)
    assert rider_api.post(order_url + "rider-response/", {"accept": True}, format="json").data["status"] == "RiderAccepted"

    proof = rider_api.post(
        order_url + "pickup-proof/",
        {"image_url": "https://img.example/pickup.jpg", "lng": CENTRE_LNG, "lat": CENTRE_LAT + 0.0012},
        format="json",
    )
    assert proof.status_code == 200, proof.data
    assert rider_api.post(order_url + "picked-up/").data["status"] == "PickedUp"
    assert rider_api.post(order_url + "delivery-proof/", {"image_url": "https://img.example/door.jpg"}, format="json").status_code == 200

    delivered = rider_api.post(order_url + "delivered/", {"cod_amount": "542.00", "cod_mode": "cash"}, format="json")
    assert delivered.status_code == 200, delivered.data
    assert delivered.data["status"] == "Delivered"
    assert delivered.data["payment_status"] == "Paid"

    rider.refresh_from_db()
    assert rider.wallet_balance == Decimal("32.00")
    credit = WalletTransaction.objects.get(rider=rider)
    assert credit.order_id == created["id"]
    assert credit.amount == Decimal("32.00")

    order = Order.objects.get(pk=created["id"])
    # one bump per successful write: 6 calls after placement
    assert order.version == 7
    stamps = [datetime.fromisoformat(e["timestamp"]) for e in order.timeline]
    assert stamps == sorted(stamps)

    mine = api(customer).get("/api/v1/notifications/")
    reasons = {n["reason"] for n in mine.data}
    assert {"vendor_accepted", "rider_accepted", "picked_up", "delivered"} <= reasons


def test_pickup_far_from_pharmacy_is_409_with_distance(api, customer, vendor, pharmacy, rider_user, rider, order_payload):
    created = place(api, customer, order_payload)
    order_url = f"/api/v1/orders/{created['id']}/"
    api(vendor).post(order_url + "vendor-response/", {"accept": True}, format="json")
    api(rider_user).post(order_url + "rider-response/", {"accept": True}, format="json")

    response = api(rider_user).post(
        order_url + "pickup-proof/",
        {"image_url": "https://img.example/p.jpg", "lng": CENTRE_LNG, "lat": CENTRE_LAT + 0.02},
        format="json",
    )

    assert response.status_code == 409
    assert response.data["error"] == "InvalidState"
    assert response.data["distance_m"] > 400
    assert response.data["radius_m"] == 400


def test_delivered_without_cod_is_400(api, customer, vendor, pharmacy, rider_user, rider, order_payload):
    created = place(api, customer, order_payload)
    order_url = f"/api/v1/orders/{created['id']}/"
    rider_api = api(rider_user)
    api(vendor).post(order_url + "vendor-response/", {"accept": True}, format="json")
    rider_api.post(order_url + "rider-response/", {"accept": True}, format="json")
    rider_api.post(order_url + "pickup-proof/", {"image_url": "https://img.example/p.jpg"}, format="json")
    rider_api.post(order_url + "picked-up/")
    rider_api.post(order_url + "delivery-proof/", {"image_url": "https://img.example/d.jpg"}, format="json")

    response = rider_api.post(order_url + "delivered/", {}, format="json")

    assert response.status_code == 400
    assert response.data["error"] == "InvalidCodCollection"
    assert Order.objects.get(pk=created["id"]).status == Order.Status.PICKED_UP


def test_rider_rejection_then_worker_cancels(api, customer, vendor, pharmacy, rider_user, rider, order_payload):
    created = place(api, customer, order_payload)
    order_url = f"/api/v1/orders/{created['id']}/"
    api(vendor).post(order_url + "vendor-response/", {"accept": True}, format="json")

    rejected = api(rider_user).post(order_url + "rider-response/", {"accept": False, "reason": "flat tyre"}, format="json")
    assert rejected.data["status"] == "RiderAssignmentPending"

    retry = ScheduledRetry.objects.get(order_id=created["id"])
    retry.due_at = timezone.now() - timedelta(seconds=1)
    retry.save()

    call_command("run_dispatch_worker", "--once")

    order = Order.objects.get(pk=created["id"])
    assert order.status == Order.Status.CANCELLED
    assert [e["status"] for e in order.timeline].count("Cancelled") == 1
    assert not ScheduledRetry.objects.filter(order_id=order.id).exists()
    assert Notification.objects.filter(
        target_type=Notification.TargetType.USER,
        target_id=str(customer.pk),
        reason="no_rider_available",
    ).count() == 1


def test_no_pharmacy_leaves_order_placed_with_retry(api, customer, order_payload):
    created = place(api, customer, order_payload)
    assert created["status"] == "Placed"
    retry = ScheduledRetry.objects.get(order_id=created["id"])
    assert retry.kind == "vendor_assignment"
    assert retry.attempt == 2


def test_coupon_and_bad_coordinates(api, customer, pharmacy, order_payload):
    Coupon.objects.create(code="WELCOME10", discount_percentage=Decimal("10"))
    created = place(api, customer, dict(order_payload, coupon_code="welcome10"))
    assert Decimal(created["discount"]) == Decimal("50.00")

    response = api(customer).post("/api/v1/orders/", dict(order_payload, delivery_lat=95.0), format="json")
    assert response.status_code == 400
    assert response.data["error"] == "InvalidCoordinate"


def test_orders_are_filtered_by_role(api, customer, vendor, pharmacy, order_payload):
    created = place(api, customer, order_payload)
    stranger = User.objects.create_user("other", password="pw", role=User.Roles.CUSTOMER)

    assert api(stranger).get(f"/api/v1/orders/{created['id']}/").status_code == 404
    assert [o["id"] for o in api(vendor).get("/api/v1/orders/").data] == [created["id"]]


def test_vendor_places_prescription_order_for_customer(api, customer, vendor, pharmacy, order_payload):
    payload = dict(order_payload, user_id=customer.pk, pharmacy_id=pharmacy.id)
    response = api(vendor).post("/api/v1/orders/", payload, format="json")

    assert response.status_code == 201, response.data
    assert response.data["customer"] == customer.pk
    assert response.data["is_prescription_order"] is True
    assert response.data["pharmacy"] == pharmacy.id


def test_only_customer_or_admin_can_cancel(api, customer, vendor, pharmacy, admin_user, order_payload):
    created = place(api, customer, order_payload)
    url = f"/api/v1/orders/{created['id']}/cancel/"

    assert api(vendor).post(url, {}, format="json").status_code == 403
    cancelled = api(customer).post(url, {"reason": "ordered twice"}, format="json")
    assert cancelled.data["status"] == "Cancelled"

    again = api(admin_user).post(url, {}, format="json")
    assert again.status_code == 409
    assert again.data["error"] == "InvalidState"


def test_rider_needs_approved_licence_to_go_online(api, rider_user, admin_user):
    rider_api = api(rider_user)
    signup = rider_api.post("/api/v1/riders/", {"name": "Ravi", "phone": "9876543210"}, format="json")
    assert signup.status_code == 201, signup.data
    assert signup.data["license_status"] == "Pending"
    url = f"/api/v1/riders/{signup.data['id']}/"

    refused = rider_api.post(url + "availability/", {"status": "online"}, format="json")
    assert refused.status_code == 409

    api(admin_user).post(url + "approve-license/", {"license_status": "Approved"}, format="json")
    assert rider_api.post(url + "availability/", {"status": "online"}, format="json").data["status"] == "online"

    moved = rider_api.post(url + "location/", {"lng": CENTRE_LNG, "lat": CENTRE_LAT}, format="json")
    assert moved.data["lat"] == CENTRE_LAT


def test_withdrawal_is_debited_once(api, rider_user, rider, admin_user):
    DjangoRiderDirectory().credit_wallet(rider.id, Decimal("300"), reason="delivery_earning", order_id="o-1")
    rider_api = api(rider_user)
    url = f"/api/v1/riders/{rider.id}/"

    account = rider_api.post(
        url + "bank-accounts/",
        {"account_holder_name": "Ravi K", "account_number": "123456789", "ifsc_code": "SBIN0001"},
        format="json",
    )
    assert account.status_code == 201, account.data

    too_much = rider_api.post(url + "withdrawals/", {"amount": "500.00", "bank_account_id": account.data["id"]}, format="json")
    assert too_much.status_code == 422
    assert too_much.data["error"] == "InsufficientFunds"

    requested = rider_api.post(url + "withdrawals/", {"amount": "120.00", "bank_account_id": account.data["id"]}, format="json")
    assert requested.status_code == 201, requested.data
    rider.refresh_from_db()
    assert rider.wallet_balance == Decimal("300.00")

    approve_url = f"/api/v1/withdrawals/{requested.data['id']}/approve/"
    assert api(rider_user).post(approve_url).status_code == 403
    assert api(admin_user).post(approve_url).data["status"] == "Approved"
    assert api(admin_user).post(approve_url).status_code == 409

    rider.refresh_from_db()
    assert rider.wallet_balance == Decimal("180.00")
    assert WalletTransaction.objects.filter(rider=rider, type="debit").count() == 1
    assert WithdrawalRequest.objects.get(pk=requested.data["id"]).bank_detail["account_number"] == "123456789"

    wallet = rider_api.get(url + "wallet/").data
    assert wallet["wallet_balance"] == "180.00"
    assert len(wallet["transactions"]) == 2


def test_admin_sets_platform_base_fare(api, admin_user, rider):
    response = api(admin_user).post("/api/v1/riders/base-fare/", {"base_fare": "25.00"}, format="json")
    assert response.status_code == 200
    assert response.data["riders_updated"] == 1
    assert Rider.objects.get(pk=rider.id).base_fare == Decimal("25.00")


def test_register_rejects_admin_role(client):
    response = client.post(
        "/api/v1/auth/register/",
        {"username": "sneaky", "password": "s3cret-pass", "role": "ADMIN"},
        content_type="application/json",
    )
    assert response.status_code == 400


def test_pharmacy_update_rejects_bad_coordinates(api, customer, vendor, pharmacy, order_payload):
    url = f"/api/v1/pharmacies/{pharmacy.id}/"

    response = api(vendor).patch(url, {"lat": 999.0}, format="json")
    assert response.status_code == 400
    assert response.data["error"] == "InvalidCoordinate"

    half = api(vendor).patch(url, {"lng": None}, format="json")
    assert half.status_code == 400

    pharmacy.refresh_from_db()
    assert pharmacy.lat == CENTRE_LAT + 0.001
    assert pharmacy.lng == CENTRE_LNG

    moved = api(vendor).patch(url, {"lat": CENTRE_LAT + 0.002, "lng": CENTRE_LNG}, format="json")
    assert moved.status_code == 200, moved.data

    created = place(api, customer, order_payload)
    assert created["pharmacy"] == pharmacy.id


def test_online_order_ignores_stray_cod_fields(api, customer, vendor, pharmacy, rider_user, rider, order_payload):
    created = place(api, customer, dict(order_payload, payment_method="online"))
    order_url = f"/api/v1/orders/{created['id']}/"
    rider_api = api(rider_user)
    api(vendor).post(order_url + "vendor-response/", {"accept": True}, format="json")
    rider_api.post(order_url + "rider-response/", {"accept": True}, format="json")
    rider_api.post(order_url + "pickup-proof/", {"image_url": "https://img.example/p.jpg"}, format="json")
    rider_api.post(order_url + "picked-up/")
    rider_api.post(order_url + "delivery-proof/", {"image_url": "https://img.example/d.jpg"}, format="json")

    response = rider_api.post(order_url + "delivered/", {"cod_amount": "542.00"}, format="json")

    assert response.status_code == 200, response.data
    assert response.data["status"] == "Delivered"
    assert Order.objects.get(pk=created["id"]).cod_amount is None

from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from logistics.models import Pharmacy, Rider
from users.models import User

from ..factories import CENTRE

CENTRE_LNG, CENTRE_LAT = CENTRE


@pytest.fixture(autouse=True)
def _no_push_gateway(settings):
    settings.PUSH_GATEWAY_URL = None


@pytest.fixture
def api():
    def client_for(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return client_for


@pytest.fixture
def customer(db):
    return User.objects.create_user("asha", password="pw", role=User.Roles.CUSTOMER)


@pytest.fixture
def vendor(db):
    return User.objects.create_user("medplus", password="pw", role=User.Roles.VENDOR)


@pytest.fixture
def admin_user(db):
    return User.objects.create_user("ops", password="pw", role=User.Roles.ADMIN)


@pytest.fixture
def pharmacy(vendor):
    return Pharmacy.objects.create(
        owner=vendor,
        name="MedPlus MG Road",
        lat=CENTRE_LAT + 0.001,
        lng=CENTRE_LNG,
        status=Pharmacy.Status.ACTIVE,
    )


@pytest.fixture
def rider_user(db):
    return User.objects.create_user("ravi", password="pw", role=User.Roles.RIDER)


@pytest.fixture
def rider(rider_user):
    return Rider.objects.create(
        user=rider_user,
        name="Ravi",
        status=Rider.Status.ONLINE,
        license_status=Rider.LicenseStatus.APPROVED,
        lat=CENTRE_LAT + 0.002,
        lng=CENTRE_LNG,
        wallet_balance=Decimal("0.00"),
    )


@pytest.fixture
def order_payload():
    return {
        "items": [{"medicine_id": "insulin", "name": "Insulin glargine", "quantity": 2, "unit_price": "250.00"}],
        "delivery_lng": CENTRE_LNG,
        "delivery_lat": CENTRE_LAT,
        "delivery_address": {"house": "12", "street": "MG Road", "city": "Bengaluru", "postal_code": "560001"},
    }

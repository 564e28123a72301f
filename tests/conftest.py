from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from bookings.models import Artist, Booking, Service
from payments.checksum import ChecksumSigner
from payments.conf import SadadConfig, get_config
from payments.models import PaymentTransaction
from shop.models import ProductOrder

VERIFY_URL = "https://api.sadadqa.com/api-v4/transactionstatus"
BOOKING_CALLBACK = "/api/payments/sadad/bookings/callback/"
PRODUCT_CALLBACK = "/api/payments/sadad/products/callback/"


@pytest.fixture(autouse=True)
def _fresh_gateway_config():
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def customer(db, django_user_model):
    return django_user_model.objects.create_user(
        email="layla@example.com", password="pass12345", phone="+974 5555-1234", first_name="Layla"
    )


@pytest.fixture
def artist_user(db, django_user_model):
    return django_user_model.objects.create_user(
        email="noor@example.com", password="pass12345", role="artist"
    )


@pytest.fixture
def artist(artist_user):
    return Artist.objects.create(user=artist_user, display_name="Noor Studio")


@pytest.fixture
def service(artist):
    return Service.objects.create(artist=artist, name="Bridal Makeup", price=Decimal("250.00"))


@pytest.fixture
def booking(customer, artist, service):
    return Booking.objects.create(customer=customer, artist=artist, service=service, total_price=Decimal("250.00"))


@pytest.fixture
def product_order(customer, artist):
    return ProductOrder.objects.create(
        customer=customer,
        artist=artist,
        items=[
            {"product_title": "Lip Gloss", "quantity": 2, "price": "45.50"},
            {"product_title": "Brush Set", "quantity": 1, "price": "120"},
        ],
        total_qar=Decimal("211.00"),
    )


@pytest.fixture
def booking_txn(booking):
    return PaymentTransaction.objects.create(
        booking=booking,
        gateway_order_id="1718000000123456",
        payment_id="SADAD-1718000000123456",
        amount=Decimal("250.00"),
        status="pending",
        metadata={"order_type": "booking"},
    )


@pytest.fixture
def product_txn(product_order):
    return PaymentTransaction.objects.create(
        product_order=product_order,
        gateway_order_id="PROD-1718000000999001",
        payment_id="SADAD-PROD-1718000000999001",
        amount=Decimal("211.00"),
        status="pending",
        metadata={"order_type": "product_order"},
    )


@pytest.fixture
def sadad_config():
    return SadadConfig.from_settings()


@pytest.fixture
def signer(sadad_config):
    return ChecksumSigner(sadad_config.merchant_id, sadad_config.secret_key, salt_factory=lambda n: "AbcD")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client

import json
from decimal import Decimal
from unittest import mock

import pytest
import requests
import responses
from django.http import QueryDict

from bookings.models import Booking
from notifications.models import Notification
from payments.callbacks import BookingCallbackAdapter, CallbackProcessor
from payments.checksum import ChecksumSigner
from payments.models import GatewayLog, PaymentTransaction
from shop.models import ProductOrder

from .conftest import BOOKING_CALLBACK, PRODUCT_CALLBACK, VERIFY_URL


def _verification(txn_status, status="success"):
    responses.add(
        responses.POST,
        VERIFY_URL,
        json={"status": status, "data": {"transactionstatus": txn_status}},
        status=200,
    )


# ===================== Bookings =====================
@responses.activate
def test_booking_success_callback(api_client, booking, booking_txn):
    _verification(3)

    resp = api_client.post(BOOKING_CALLBACK, {
        "ORDERID": booking_txn.gateway_order_id,
        "RESPCODE": "1",
        "RESPMSG": "Txn Success",
        "TXNAMOUNT": "250.00",
        "transaction_number": "SD998877",
    })

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["status"] == "completed"
    assert body["booking_id"] == booking.pk
    assert body["order_id"] == booking_txn.gateway_order_id

    booking_txn.refresh_from_db()
    assert booking_txn.status == "completed"
    assert booking_txn.transaction_number == "SD998877"
    assert booking_txn.verified_at is not None
    assert booking_txn.payment_date is not None

    booking.refresh_from_db()
    assert booking.status == Booking.STATUS_CONFIRMED
    assert booking.payment_status == "completed"
    assert booking.sadad_transaction_id == "SD998877"

    titles = set(Notification.objects.values_list("title", flat=True))
    assert titles == {"تم الدفع بنجاح", "حجز جديد مؤكد"}
    assert Notification.objects.get(user=booking.customer).data == {"booking_id": booking.pk, "amount": "250.00"}

    assert len(responses.calls) == 1
    sent = json.loads(responses.calls[0].request.body)
    assert sent == {"sadadId": "7654321", "secretKey": "Kx9/aB&cD+eF=gH1", "transactionNumber": "SD998877"}

    outbound = GatewayLog.objects.get(direction="out")
    assert outbound.request_payload["secretKey"] == "***"
    assert outbound.transaction_id == booking_txn.pk
    assert GatewayLog.objects.filter(direction="in", gateway_order_id=booking_txn.gateway_order_id).exists()


@responses.activate
def test_replayed_success_is_idempotent(api_client, booking, booking_txn):
    _verification(3)
    payload = {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1", "transaction_number": "SD998877"}

    first = api_client.post(BOOKING_CALLBACK, payload)
    second = api_client.post(BOOKING_CALLBACK, payload)

    assert first.status_code == second.status_code == 200
    assert second.json()["status"] == "completed"
    assert Notification.objects.count() == 2
    assert len(responses.calls) == 1

    booking_txn.refresh_from_db()
    assert len(booking_txn.metadata["callbacks"]) == 2


def test_legacy_status_fields_via_get(api_client, booking, booking_txn):
    resp = api_client.get(BOOKING_CALLBACK, {
        "order_id": booking_txn.gateway_order_id,
        "status": "failed",
        "error_message": "2002",
    })

    assert resp.status_code == 200
    assert resp.json()["status"] == "failed"
    booking_txn.refresh_from_db()
    assert booking_txn.error_message == "Insufficient funds"
    booking.refresh_from_db()
    assert booking.status == Booking.STATUS_PENDING
    assert booking.payment_status == "failed"


def test_terminal_status_is_final(api_client, booking, booking_txn):
    booking_txn.status = "failed"
    booking_txn.save()

    resp = api_client.post(BOOKING_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1"})

    assert resp.status_code == 200
    assert resp.json()["status"] == "failed"
    booking_txn.refresh_from_db()
    assert booking_txn.status == "failed"
    assert not Notification.objects.exists()


def test_pending_then_failed_is_allowed(api_client, booking, booking_txn):
    api_client.post(BOOKING_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "400"})
    booking_txn.refresh_from_db()
    assert booking_txn.status == "pending"

    api_client.post(BOOKING_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "810"})
    booking_txn.refresh_from_db()
    assert booking_txn.status == "failed"


@pytest.mark.django_db
def test_booking_callback_for_unknown_order(api_client):
    resp = api_client.post(BOOKING_CALLBACK, {"order_id": "404404", "status": "success"})
    assert resp.status_code == 200
    assert resp.json()["booking_id"] is None


@pytest.mark.django_db
@pytest.mark.parametrize("url", [BOOKING_CALLBACK, PRODUCT_CALLBACK])
def test_missing_order_id(api_client, url):
    resp = api_client.post(url, {"RESPCODE": "1"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing order_id/ORDERID"}


@pytest.mark.django_db
def test_unparsable_json_body(api_client):
    resp = api_client.post(BOOKING_CALLBACK, data="{not json", content_type="application/json")
    assert resp.status_code == 400


# ===================== Products =====================
def test_product_failed_callback(api_client, product_order, product_txn):
    with responses.RequestsMock() as rsps:
        resp = api_client.post(PRODUCT_CALLBACK, {
            "ORDERID": product_txn.gateway_order_id,
            "RESPCODE": "810",
            "RESPMSG": "Card declined",
        })
        assert len(rsps.calls) == 0

    assert resp.status_code == 200
    assert resp.json()["status"] == "failed"
    assert resp.json()["product_order_id"] == product_order.pk

    product_txn.refresh_from_db()
    assert product_txn.status == "failed"
    assert product_txn.error_message == "Card declined"
    assert product_txn.response_code == "810"

    product_order.refresh_from_db()
    assert product_order.status == ProductOrder.STATUS_CANCELLED
    assert not Notification.objects.exists()


@responses.activate
def test_product_success_notifies_in_english(api_client, product_order, product_txn):
    _verification(3)

    api_client.post(PRODUCT_CALLBACK, {
        "ORDERID": product_txn.gateway_order_id, "RESPCODE": "1", "transaction_number": "SD5500",
    })

    product_order.refresh_from_db()
    assert product_order.status == ProductOrder.STATUS_CONFIRMED
    assert product_order.payment_transaction_id == "SD5500"
    customer_note = Notification.objects.get(user=product_order.customer)
    assert customer_note.title == "Payment Successful"
    assert customer_note.data == {"order_id": product_order.pk, "amount": "211.00"}
    assert Notification.objects.get(user=product_order.artist.user).title == "New Product Order"


@pytest.mark.django_db
def test_product_callback_for_unknown_order(api_client):
    resp = api_client.post(PRODUCT_CALLBACK, {"ORDERID": "PROD-0", "RESPCODE": "1"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Payment transaction not found"}


def test_booking_order_id_is_not_found_on_product_callback(api_client, booking_txn):
    resp = api_client.post(PRODUCT_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "810"})
    assert resp.status_code == 404


# ===================== Verification =====================
@responses.activate
def test_booking_rejected_verification_downgrades(api_client, booking, booking_txn):
    _verification(2)

    resp = api_client.post(BOOKING_CALLBACK, {
        "ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1", "transaction_number": "SD1",
    })

    assert resp.json()["status"] == "failed"
    booking_txn.refresh_from_db()
    assert booking_txn.error_message == "Transaction verification failed with SADAD"
    assert booking_txn.verified_at is None
    assert not Notification.objects.exists()


@responses.activate
def test_pending_verification_only_accepted_for_products(api_client, booking_txn, product_txn):
    _verification(1)

    booking_resp = api_client.post(BOOKING_CALLBACK, {
        "ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1", "transaction_number": "SD1",
    })
    product_resp = api_client.post(PRODUCT_CALLBACK, {
        "ORDERID": product_txn.gateway_order_id, "RESPCODE": "1", "transaction_number": "SD2",
    })

    assert booking_resp.json()["status"] == "failed"
    assert product_resp.json()["status"] == "completed"


@responses.activate
@pytest.mark.parametrize("stub", [
    {"body": requests.exceptions.ConnectionError("gateway down")},
    {"status": 503, "json": {"status": "error"}},
    {"status": 200, "body": "<html>maintenance</html>"},
])
def test_unreachable_verification_keeps_callback_status(api_client, booking_txn, stub):
    responses.add(responses.POST, VERIFY_URL, **stub)

    resp = api_client.post(BOOKING_CALLBACK, {
        "ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1", "transaction_number": "SD1",
    })

    assert resp.json()["status"] == "completed"
    booking_txn.refresh_from_db()
    assert booking_txn.status == "completed"
    assert booking_txn.verified_at is None


def test_completed_without_transaction_number_skips_verification(api_client, booking_txn):
    with responses.RequestsMock() as rsps:
        resp = api_client.post(BOOKING_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1"})
        assert len(rsps.calls) == 0
    assert resp.json()["status"] == "completed"


# ===================== IP allow-list =====================
def test_unlisted_ip_rejected_when_enforced(api_client, settings, booking_txn):
    settings.SADAD_VERIFY_IP = True

    resp = api_client.post(BOOKING_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "400"})

    assert resp.status_code == 403
    booking_txn.refresh_from_db()
    assert booking_txn.metadata.get("callbacks") is None


def test_listed_ip_from_forwarded_header(api_client, settings, booking_txn):
    settings.SADAD_VERIFY_IP = True

    resp = api_client.post(
        BOOKING_CALLBACK,
        {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "400"},
        HTTP_X_FORWARDED_FOR="52.51.150.11, 10.0.0.7",
    )
    assert resp.status_code == 200


def test_skip_flag_lets_unlisted_ip_through(api_client, settings, booking_txn, caplog):
    settings.SADAD_VERIFY_IP = True
    settings.SADAD_SKIP_IP_VERIFICATION = True

    with caplog.at_level("WARNING", logger="payments.security"):
        resp = api_client.post(BOOKING_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "400"})

    assert resp.status_code == 200
    assert "IP verification skipped" in caplog.text


# ===================== Checksum =====================
def _signed_product_callback(order_id, **overrides):
    fields = {"ORDERID": order_id, "RESPCODE": "400", "RESPMSG": "Pending", "TXNAMOUNT": "211.00"}
    checksum = ChecksumSigner("7654321", "Kx9/aB&cD+eF=gH1").sign(fields, urlencode_secret=True)
    return {**fields, **overrides, "checksumhash": checksum}


def test_valid_callback_checksum_recorded(api_client, product_txn):
    resp = api_client.post(PRODUCT_CALLBACK, _signed_product_callback(product_txn.gateway_order_id))

    assert resp.status_code == 200
    product_txn.refresh_from_db()
    assert product_txn.metadata["checksum_valid"] is True


def test_bad_checksum_logged_in_lenient_mode(api_client, product_txn, caplog):
    payload = _signed_product_callback(product_txn.gateway_order_id, TXNAMOUNT="1.00")

    with caplog.at_level("WARNING", logger="payments.security"):
        resp = api_client.post(PRODUCT_CALLBACK, payload)

    assert resp.status_code == 200
    assert "checksum mismatch" in caplog.text
    product_txn.refresh_from_db()
    assert product_txn.metadata["checksum_valid"] is False


def test_bad_checksum_rejected_in_strict_mode(api_client, settings, product_txn):
    settings.SADAD_STRICT_CHECKSUM = True
    payload = _signed_product_callback(product_txn.gateway_order_id, TXNAMOUNT="1.00")

    resp = api_client.post(PRODUCT_CALLBACK, payload)

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid checksum"}
    product_txn.refresh_from_db()
    assert product_txn.status == "pending"


# ===================== Failure surface =====================
def test_unexpected_error_does_not_leak(api_client, booking_txn):
    with mock.patch.object(CallbackProcessor, "process", side_effect=RuntimeError("db exploded at 10.0.0.3")):
        resp = api_client.post(BOOKING_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to process callback"}


def test_callback_history_masks_contact_data(api_client, booking_txn):
    api_client.post(BOOKING_CALLBACK, {
        "ORDERID": booking_txn.gateway_order_id, "RESPCODE": "400", "EMAIL": "layla@example.com",
    })
    booking_txn.refresh_from_db()
    assert booking_txn.metadata["callback_data"]["EMAIL"] == "la***@example.com"
    assert booking_txn.metadata["order_type"] == "booking"


# ===================== Form and query payloads =====================
def test_query_dict_values_are_scalars():
    record = BookingCallbackAdapter().normalize(QueryDict("order_id=1718000000123456&status=failed&checksum=abc"))

    assert record.order_id == "1718000000123456"
    assert record.status_code == "failed"
    assert record.signed_fields == {"order_id": "1718000000123456", "status": "failed"}


def test_multipart_product_callback_finds_transaction(api_client, product_txn):
    resp = api_client.post(
        PRODUCT_CALLBACK, {"ORDERID": product_txn.gateway_order_id, "RESPCODE": "810"}, format="multipart"
    )

    assert resp.status_code == 200
    assert resp.json()["order_id"] == product_txn.gateway_order_id
    product_txn.refresh_from_db()
    assert product_txn.status == "failed"
    assert product_txn.response_code == "810"


# ===================== Paid records =====================
def _second_attempt(booking=None, product_order=None, order_id="1718000000777001"):
    return PaymentTransaction.objects.create(
        booking=booking,
        product_order=product_order,
        gateway_order_id=order_id,
        payment_id=f"SADAD-{order_id}",
        amount=Decimal("250.00"),
        status="pending",
    )


def test_failed_later_attempt_keeps_booking_paid(api_client, booking, booking_txn):
    api_client.post(BOOKING_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1"})
    retry = _second_attempt(booking=booking)

    resp = api_client.post(BOOKING_CALLBACK, {"ORDERID": retry.gateway_order_id, "RESPCODE": "810"})

    assert resp.json()["status"] == "failed"
    booking.refresh_from_db()
    assert booking.status == Booking.STATUS_CONFIRMED
    assert booking.payment_status == "completed"


def test_failed_later_attempt_keeps_order_confirmed(api_client, product_order, product_txn):
    api_client.post(PRODUCT_CALLBACK, {"ORDERID": product_txn.gateway_order_id, "RESPCODE": "1"})
    retry = _second_attempt(product_order=product_order, order_id="PROD-1718000000777002")

    api_client.post(PRODUCT_CALLBACK, {"ORDERID": retry.gateway_order_id, "RESPCODE": "810"})

    product_order.refresh_from_db()
    assert product_order.status == ProductOrder.STATUS_CONFIRMED


# ===================== Terminal transactions =====================
def test_long_gateway_text_fits_columns(api_client, product_txn):
    api_client.post(PRODUCT_CALLBACK, {
        "ORDERID": product_txn.gateway_order_id, "RESPCODE": "810", "RESPMSG": "x" * 300,
    })

    product_txn.refresh_from_db()
    assert product_txn.status == "failed"
    assert len(product_txn.error_message) == 255
    assert len(product_txn.response_message) == 255


def test_long_textual_status_fits_response_code(api_client, booking_txn):
    api_client.post(BOOKING_CALLBACK, {"order_id": booking_txn.gateway_order_id, "status": "s" * 40})

    booking_txn.refresh_from_db()
    assert booking_txn.status == "failed"
    assert booking_txn.response_code == "s" * 16


def test_no_verification_for_failed_transaction(api_client, booking_txn):
    booking_txn.status = "failed"
    booking_txn.save()

    with responses.RequestsMock() as rsps:
        resp = api_client.post(BOOKING_CALLBACK, {
            "ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1", "transaction_number": "SD1",
        })
        assert len(rsps.calls) == 0

    assert resp.json()["status"] == "failed"
    assert not GatewayLog.objects.filter(direction="out").exists()


def test_completed_retry_sends_missing_notifications(api_client, booking, booking_txn):
    # committed as completed, but the process died before notifying
    booking_txn.status = "completed"
    booking_txn.save()

    api_client.post(BOOKING_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1"})
    api_client.post(BOOKING_CALLBACK, {"ORDERID": booking_txn.gateway_order_id, "RESPCODE": "1"})

    assert Notification.objects.count() == 2

# payments/sources.py
"""
The two records a checkout can pay for. Initiation and callback handling
are shared; everything that differs between a booking and a product order
lives on these adapters.
"""
from __future__ import annotations

import logging
import random
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Tuple

from bookings.models import Booking
from shop.models import ProductOrder

from .constants import (
    LINE_ITEM_TYPE,
    PAYMENT_METHOD,
    PRODUCT_ORDER_PREFIX,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PROCESSING,
    TXN_STATUS_PENDING,
    TXN_STATUS_SUCCESS,
)
from .exceptions import SourceNotFound, SourceUpdateFailed
from .models import PaymentTransaction

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def format_amount(value) -> str:
    return str(Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def _time_reference() -> str:
    # epoch millis + 3 random digits
    return f"{int(time.time() * 1000)}{random.randint(0, 999):03d}"


class PaymentSource:
    name = ""
    id_field = ""
    response_id_key = ""
    transaction_field = ""
    not_found_message = "Source record not found"
    accepted_verification_statuses: Tuple[int, ...] = (TXN_STATUS_SUCCESS,)
    # True: a callback for an unknown gateway order id is a 404
    strict_lookup = False

    model = None
    select_related: Tuple[str, ...] = ()

    def fetch(self, source_id):
        try:
            return self.model.objects.select_related(*self.select_related).get(pk=source_id)
        except self.model.DoesNotExist:
            raise SourceNotFound(self.not_found_message)

    def transaction_filter(self) -> Dict:
        return {f"{self.transaction_field}__isnull": False}

    def source_id(self, txn) -> Optional[int]:
        return getattr(txn, f"{self.transaction_field}_id")

    def make_gateway_order_id(self) -> str:
        return _time_reference()

    def has_completed_payment(self, source_id, exclude_pk=None) -> bool:
        qs = PaymentTransaction.objects.filter(
            **{self.transaction_field: source_id}, status=STATUS_COMPLETED
        )
        if exclude_pk is not None:
            qs = qs.exclude(pk=exclude_pk)
        return qs.exists()

    def apply_outcome(self, source_id, status: str, txn) -> None:
        # a paid record never falls back because a later attempt did not complete
        if status != STATUS_COMPLETED and self.has_completed_payment(source_id, exclude_pk=txn.pk):
            logger.warning("Keeping paid %s %s; order %s ended %s",
                           self.name, source_id, txn.gateway_order_id, status)
            return
        self.write_outcome(source_id, status, txn)

    # per flavour
    def amount(self, record) -> Decimal:
        raise NotImplementedError

    def line_items(self, record, gateway_order_id: str, amount: str) -> List[Dict]:
        raise NotImplementedError

    def mark_processing(self, record, txn) -> None:
        raise NotImplementedError

    def write_outcome(self, source_id, status: str, txn) -> None:
        raise NotImplementedError

    def notifications(self, record, txn) -> List[Dict]:
        raise NotImplementedError


class BookingSource(PaymentSource):
    name = "booking"
    id_field = "booking_id"
    response_id_key = "booking_id"
    transaction_field = "booking"
    not_found_message = "Booking not found"
    accepted_verification_statuses = (TXN_STATUS_SUCCESS,)
    strict_lookup = False

    model = Booking
    select_related = ("customer", "artist", "artist__user", "service")

    def amount(self, record) -> Decimal:
        return Decimal(str(record.total_price))

    def line_items(self, record, gateway_order_id, amount):
        item_name = record.service.name if record.service_id else f"Booking #{record.pk}"
        return [{
            "order_id": gateway_order_id,
            "itemname": item_name,
            "amount": amount,
            "quantity": "1",
            "type": LINE_ITEM_TYPE,
        }]

    def mark_processing(self, record, txn):
        updated = Booking.objects.filter(pk=record.pk).update(
            payment_method=PAYMENT_METHOD,
            payment_status=STATUS_PROCESSING,
            sadad_order_id=txn.gateway_order_id,
        )
        if not updated:
            raise SourceUpdateFailed("Failed to update booking")

    def write_outcome(self, source_id, status, txn):
        booking_status = Booking.STATUS_CONFIRMED if status == STATUS_COMPLETED else Booking.STATUS_PENDING
        fields = {
            "payment_status": status,
            "status": booking_status,
        }
        if txn.transaction_number:
            fields["sadad_transaction_id"] = txn.transaction_number
        Booking.objects.filter(pk=source_id).update(**fields)

    def notifications(self, record, txn):
        data = {"booking_id": record.pk, "amount": format_amount(txn.amount)}
        return [
            {
                "user_id": record.customer_id,
                "audience": "customer",
                "type": "payment",
                "title": "تم الدفع بنجاح",
                "body": "تم تأكيد دفعتك وحجزك بنجاح",
                "data": data,
            },
            {
                "user_id": record.artist.user_id,
                "audience": "artist",
                "type": "booking",
                "title": "حجز جديد مؤكد",
                "body": "تم استلام حجز جديد مع دفع إلكتروني",
                "data": data,
            },
        ]


class ProductOrderSource(PaymentSource):
    name = "product_order"
    id_field = "order_id"
    response_id_key = "product_order_id"
    transaction_field = "product_order"
    not_found_message = "Order not found"
    # product checkouts also accept "pending" from the verification API
    accepted_verification_statuses = (TXN_STATUS_PENDING, TXN_STATUS_SUCCESS)
    strict_lookup = True

    model = ProductOrder
    select_related = ("customer", "artist", "artist__user")

    def amount(self, record) -> Decimal:
        return Decimal(str(record.total_qar))

    def make_gateway_order_id(self) -> str:
        return f"{PRODUCT_ORDER_PREFIX}{_time_reference()}"

    def line_items(self, record, gateway_order_id, amount):
        items = [i for i in (record.items or []) if isinstance(i, dict)]
        if not items:
            return [{
                "order_id": gateway_order_id,
                "itemname": f"Order #{record.pk}",
                "amount": amount,
                "quantity": "1",
                "type": LINE_ITEM_TYPE,
            }]
        return [
            {
                "order_id": gateway_order_id,
                "itemname": item.get("product_title") or "Product",
                "amount": format_amount(item.get("price") or 0),
                "quantity": str(item.get("quantity") or 1),
                "type": LINE_ITEM_TYPE,
            }
            for item in items
        ]

    def mark_processing(self, record, txn):
        updated = ProductOrder.objects.filter(pk=record.pk).update(
            payment_method=PAYMENT_METHOD,
            payment_transaction_id=txn.payment_id,
            status=ProductOrder.STATUS_PROCESSING,
        )
        if not updated:
            raise SourceUpdateFailed("Failed to update product order")

    def write_outcome(self, source_id, status, txn):
        if status == STATUS_COMPLETED:
            order_status = ProductOrder.STATUS_CONFIRMED
        elif status in (STATUS_FAILED, STATUS_CANCELLED):
            order_status = ProductOrder.STATUS_CANCELLED
        else:
            order_status = ProductOrder.STATUS_PENDING
        ProductOrder.objects.filter(pk=source_id).update(
            status=order_status,
            payment_method=PAYMENT_METHOD,
            payment_transaction_id=txn.transaction_number or txn.payment_id,
        )

    def notifications(self, record, txn):
        data = {"order_id": record.pk, "amount": format_amount(txn.amount)}
        return [
            {
                "user_id": record.customer_id,
                "audience": "customer",
                "type": "payment",
                "title": "Payment Successful",
                "body": "Your product order payment has been confirmed and will be shipped soon",
                "data": data,
            },
            {
                "user_id": record.artist.user_id,
                "audience": "artist",
                "type": "order",
                "title": "New Product Order",
                "body": "You have a new confirmed product order with payment",
                "data": data,
            },
        ]


SOURCES = {
    BookingSource.name: BookingSource,
    ProductOrderSource.name: ProductOrderSource,
}

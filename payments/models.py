# payments/models.py
from django.db import models
from django.db.models import Q

from .constants import (
    CURRENCY,
    PAYMENT_METHOD,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    TERMINAL_STATUSES,
)


class PaymentTransaction(models.Model):
    """
    One checkout attempt at the gateway. Created by initiation, mutated only
    by the callback handler, never deleted.
    """

    STATUS = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # exactly one source record
    booking = models.ForeignKey(
        "bookings.Booking", on_delete=models.PROTECT, null=True, blank=True, related_name="payment_transactions"
    )
    product_order = models.ForeignKey(
        "shop.ProductOrder", on_delete=models.PROTECT, null=True, blank=True, related_name="payment_transactions"
    )

    gateway_order_id = models.CharField(max_length=64, unique=True, db_index=True)
    payment_id = models.CharField(max_length=80, unique=True, db_index=True)
    transaction_number = models.CharField(max_length=100, blank=True, null=True, db_index=True)

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=8, default=CURRENCY)
    payment_method = models.CharField(max_length=32, default=PAYMENT_METHOD)
    status = models.CharField(max_length=16, choices=STATUS, default=STATUS_PENDING)

    response_code = models.CharField(max_length=16, blank=True, null=True)
    response_message = models.CharField(max_length=255, blank=True, null=True)
    error_message = models.CharField(max_length=255, blank=True, null=True)

    # contact echo, order type, callback history
    metadata = models.JSONField(default=dict, blank=True)

    payment_date = models.DateTimeField(blank=True, null=True)
    verified_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(booking__isnull=False, product_order__isnull=True)
                    | Q(booking__isnull=True, product_order__isnull=False)
                ),
                name="payment_txn_single_source",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="payment_txn_status_idx"),
        ]

    def __str__(self):
        return f"{self.gateway_order_id} | {self.amount} {self.currency} | {self.status}"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def source_type(self) -> str:
        return "booking" if self.booking_id else "product_order"


class GatewayLog(models.Model):
    """Gateway I/O audit with masked payloads."""

    transaction = models.ForeignKey(
        PaymentTransaction, on_delete=models.SET_NULL, null=True, blank=True, related_name="gateway_logs"
    )
    gateway_order_id = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    endpoint = models.CharField(max_length=255)
    direction = models.CharField(max_length=8, choices=[("out", "Outbound"), ("in", "Inbound")], default="out")
    request_payload = models.JSONField(default=dict, blank=True)
    response_payload = models.JSONField(default=dict, blank=True)
    status_code = models.CharField(max_length=10, blank=True)
    response_time_ms = models.IntegerField(blank=True, null=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-timestamp",)

    def __str__(self):
        return f"{self.direction} {self.endpoint} | {self.gateway_order_id or '-'} | {self.status_code}"

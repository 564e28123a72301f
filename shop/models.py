# shop/models.py
from __future__ import annotations

from django.conf import settings
from django.db import models


class ProductOrder(models.Model):
    """
    A customer's product purchase from one artist's store.

    items is a list of {"product_title", "quantity", "price"} snapshots taken at checkout.
    """

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_CONFIRMED = "confirmed"
    STATUS_SHIPPED = "shipped"
    STATUS_DELIVERED = "delivered"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_SHIPPED, "Shipped"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="product_orders"
    )
    artist = models.ForeignKey(
        "bookings.Artist", on_delete=models.CASCADE, related_name="product_orders"
    )
    items = models.JSONField(default=list, blank=True)
    total_qar = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)

    payment_method = models.CharField(max_length=32, blank=True, null=True)
    payment_transaction_id = models.CharField(max_length=100, blank=True, null=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self) -> str:
        return f"ProductOrder<{self.pk}> {self.total_qar} QAR [{self.status}]"

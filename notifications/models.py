from django.conf import settings
from django.db import models


class Notification(models.Model):
    TYPE_PAYMENT = "payment"
    TYPE_BOOKING = "booking"
    TYPE_ORDER = "order"

    TYPE_CHOICES = [
        (TYPE_PAYMENT, "Payment"),
        (TYPE_BOOKING, "Booking"),
        (TYPE_ORDER, "Order"),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications")
    type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    title = models.CharField(max_length=200)
    body = models.TextField(blank=True)
    data = models.JSONField(default=dict, blank=True)
    # e.g. "sadad:PROD-1718000000123:customer"; one row per key
    dedupe_key = models.CharField(max_length=128, unique=True, null=True, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [models.Index(fields=["user", "created_at"], name="notif_user_created_idx")]

    def __str__(self):
        return f"{self.user_id} [{self.type}] {self.title}"

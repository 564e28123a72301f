# payments/admin.py
from __future__ import annotations

import json

from django.contrib import admin, messages
from django.utils import timezone

from .audit import make_gateway_logger
from .conf import get_config
from .constants import STATUS_COMPLETED
from .models import GatewayLog, PaymentTransaction
from .sadad import STATE_CONFIRMED, STATE_REJECTED, SadadClient
from .sources import SOURCES


# -----------------------------
# Helpers
# -----------------------------
def _short(obj, n=120) -> str:
    try:
        s = json.dumps(obj, ensure_ascii=False) if not isinstance(obj, str) else obj
    except Exception:
        s = str(obj)
    return (s[:n] + "…") if len(s) > n else s


# -----------------------------
# Transactions
# -----------------------------
@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = (
        "gateway_order_id",
        "source_type",
        "amount",
        "currency",
        "status",
        "transaction_number",
        "response_code",
        "verified_at",
        "created_at",
    )
    search_fields = (
        "gateway_order_id",
        "payment_id",
        "transaction_number",
        "booking__customer__email",
        "product_order__customer__email",
    )
    list_filter = ("status", "currency", "created_at")
    date_hierarchy = "created_at"
    ordering = ("-created_at",)

    readonly_fields = (
        "booking",
        "product_order",
        "gateway_order_id",
        "payment_id",
        "transaction_number",
        "amount",
        "currency",
        "payment_method",
        "status",
        "response_code",
        "response_message",
        "error_message",
        "metadata",
        "payment_date",
        "verified_at",
        "created_at",
        "updated_at",
    )

    actions = ("admin_reverify",)

    @admin.action(description="Re-verify completed transactions with SADAD")
    def admin_reverify(self, request, queryset):
        config = get_config()
        checked = 0
        rejected = []
        for tx in queryset.filter(status=STATUS_COMPLETED).exclude(transaction_number__isnull=True):
            source = SOURCES[tx.source_type]()
            client = SadadClient(config, log_fn=make_gateway_logger(transaction=tx))
            try:
                res = client.verify_transaction(
                    tx.transaction_number, accepted_statuses=source.accepted_verification_statuses
                )
            except Exception as e:  # pragma: no cover
                self.message_user(request, f"Error on {tx.gateway_order_id}: {e}", level=messages.ERROR)
                continue
            checked += 1
            if res["state"] == STATE_CONFIRMED and not tx.verified_at:
                tx.verified_at = timezone.now()
                tx.save(update_fields=["verified_at", "updated_at"])
            elif res["state"] == STATE_REJECTED:
                # completed is final; flag for manual review only
                rejected.append(tx.gateway_order_id)
        if rejected:
            self.message_user(
                request,
                f"SADAD did not confirm: {', '.join(rejected)}",
                level=messages.WARNING,
            )
        self.message_user(request, f"Re-verify complete. Checked {checked} transaction(s).", level=messages.INFO)


# -----------------------------
# Gateway logs
# -----------------------------
@admin.register(GatewayLog)
class GatewayLogAdmin(admin.ModelAdmin):
    list_display = (
        "direction",
        "gateway_order_id",
        "endpoint",
        "status_code",
        "response_time_ms",
        "timestamp",
        "response_preview",
    )
    list_filter = ("direction", "status_code", "timestamp")
    search_fields = ("gateway_order_id", "endpoint", "status_code")
    date_hierarchy = "timestamp"
    ordering = ("-timestamp",)

    readonly_fields = (
        "transaction",
        "gateway_order_id",
        "endpoint",
        "direction",
        "request_payload",
        "response_payload",
        "status_code",
        "response_time_ms",
        "timestamp",
    )

    @admin.display(description="Response (first 120 chars)")
    def response_preview(self, obj: GatewayLog):
        return _short(obj.response_payload, 120)

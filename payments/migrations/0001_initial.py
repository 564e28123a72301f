import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
        ("shop", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("gateway_order_id", models.CharField(db_index=True, max_length=64, unique=True)),
                ("payment_id", models.CharField(db_index=True, max_length=80, unique=True)),
                ("transaction_number", models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="QAR", max_length=8)),
                ("payment_method", models.CharField(default="sadad", max_length=32)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("response_code", models.CharField(blank=True, max_length=16, null=True)),
                ("response_message", models.CharField(blank=True, max_length=255, null=True)),
                ("error_message", models.CharField(blank=True, max_length=255, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("payment_date", models.DateTimeField(blank=True, null=True)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "booking",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_transactions",
                        to="bookings.booking",
                    ),
                ),
                (
                    "product_order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_transactions",
                        to="shop.productorder",
                    ),
                ),
            ],
            options={
                "ordering": ("-created_at",),
                "indexes": [models.Index(fields=["status", "created_at"], name="payment_txn_status_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(booking__isnull=False, product_order__isnull=True)
                            | models.Q(booking__isnull=True, product_order__isnull=False)
                        ),
                        name="payment_txn_single_source",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="GatewayLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("gateway_order_id", models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ("endpoint", models.CharField(max_length=255)),
                (
                    "direction",
                    models.CharField(choices=[("out", "Outbound"), ("in", "Inbound")], default="out", max_length=8),
                ),
                ("request_payload", models.JSONField(blank=True, default=dict)),
                ("response_payload", models.JSONField(blank=True, default=dict)),
                ("status_code", models.CharField(blank=True, max_length=10)),
                ("response_time_ms", models.IntegerField(blank=True, null=True)),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                (
                    "transaction",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="gateway_logs",
                        to="payments.paymenttransaction",
                    ),
                ),
            ],
            options={
                "ordering": ("-timestamp",),
            },
        ),
    ]

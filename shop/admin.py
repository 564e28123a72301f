from django.contrib import admin

from .models import ProductOrder


@admin.register(ProductOrder)
class ProductOrderAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "artist", "total_qar", "status", "payment_transaction_id", "created_at")
    list_filter = ("status", "payment_method")
    search_fields = ("payment_transaction_id", "customer__email")
    date_hierarchy = "created_at"

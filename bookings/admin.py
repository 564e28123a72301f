from django.contrib import admin

from .models import Artist, Booking, Service


@admin.register(Artist)
class ArtistAdmin(admin.ModelAdmin):
    list_display = ("id", "display_name", "user", "created_at")
    search_fields = ("display_name", "user__email")


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "artist", "price")
    search_fields = ("name", "artist__display_name")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id", "customer", "artist", "total_price", "status",
        "payment_status", "sadad_order_id", "created_at",
    )
    list_filter = ("status", "payment_status")
    search_fields = ("sadad_order_id", "sadad_transaction_id", "customer__email")
    date_hierarchy = "created_at"

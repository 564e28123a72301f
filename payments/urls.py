# payments/urls.py
from django.urls import path

from .views import (
    BookingCallbackView,
    BookingPaymentInitView,
    PaymentTransactionDetailView,
    ProductCallbackView,
    ProductPaymentInitView,
)

urlpatterns = [
    path("sadad/bookings/initiate/", BookingPaymentInitView.as_view(), name="sadad_booking_initiate"),
    path("sadad/products/initiate/", ProductPaymentInitView.as_view(), name="sadad_product_initiate"),
    path("sadad/bookings/callback/", BookingCallbackView.as_view(), name="sadad_booking_callback"),
    path("sadad/products/callback/", ProductCallbackView.as_view(), name="sadad_product_callback"),
    path("sadad/transactions/<str:order_id>/", PaymentTransactionDetailView.as_view(), name="sadad_transaction_detail"),
]

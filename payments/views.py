# payments/views.py
import json
import logging
from typing import Any, Dict, Optional

from django.db.models import Q
from django.urls import reverse
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .callbacks import BookingCallbackAdapter, CallbackProcessor, ProductCallbackAdapter
from .conf import get_config
from .exceptions import PaymentError
from .initiation import PaymentInitiator
from .models import PaymentTransaction
from .serializers import (
    BookingPaymentInitSerializer,
    CallbackResponseSerializer,
    PaymentInitEnvelopeSerializer,
    PaymentTransactionSerializer,
    ProductPaymentInitSerializer,
)
from .sources import BookingSource, ProductOrderSource

logger = logging.getLogger(__name__)


# ===================== Helpers =====================
def _to_plain_dict(maybe_mapping: Any) -> Dict:
    # QueryDict is a dict subclass holding lists; flatten it first
    if hasattr(maybe_mapping, "lists"):
        return {k: (v[0] if v else "") for k, v in maybe_mapping.lists()}
    if isinstance(maybe_mapping, dict):
        return maybe_mapping
    if hasattr(maybe_mapping, "items"):
        return {k: (v[0] if isinstance(v, (list, tuple)) else v) for k, v in maybe_mapping.items()}
    if isinstance(maybe_mapping, (bytes, bytearray)):
        maybe_mapping = maybe_mapping.decode("utf-8", errors="replace")
    if isinstance(maybe_mapping, str):
        try:
            parsed = json.loads(maybe_mapping)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def _client_ip(request) -> Optional[str]:
    # Prefer first IP from X-Forwarded-For when behind a proxy
    fwd = request.META.get("HTTP_X_FORWARDED_FOR")
    if fwd:
        return fwd.split(",")[0].strip()
    real = request.META.get("HTTP_X_REAL_IP")
    if real:
        return real.strip()
    return request.META.get("REMOTE_ADDR")


def _callback_url(request, config, url_name: str) -> str:
    path = reverse(url_name)
    if config.callback_base_url:
        return f"{config.callback_base_url}{path}"
    return request.build_absolute_uri(path)


def _error_response(exc: PaymentError) -> Response:
    return Response(exc.as_body(), status=exc.status_code)


# ===================== Initiation =====================
class _PaymentInitView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = None
    source_class = None
    callback_url_name = ""

    def post(self, request):
        serializer = self.serializer_class(data=_to_plain_dict(request.data))
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        source = self.source_class()
        config = get_config()
        try:
            result = PaymentInitiator(config, source).initiate(
                data.get(source.id_field),
                callback_url=_callback_url(request, config, self.callback_url_name),
                customer_email=data.get("customer_email"),
                customer_phone=data.get("customer_phone"),
                customer_name=data.get("customer_name"),
                return_url=data.get("return_url"),
            )
        except PaymentError as e:
            if e.status_code >= 500:
                logger.error("SADAD initiation failed for %s: %s", source.name, e.message)
            return _error_response(e)

        return Response({"success": True, "data": result}, status=status.HTTP_200_OK)


@extend_schema(
    description="Start a SADAD web checkout for a booking. Returns the signed form fields and the gateway URL.",
    request=BookingPaymentInitSerializer,
    responses={
        200: PaymentInitEnvelopeSerializer,
        400: OpenApiResponse(description="booking_id is required"),
        404: OpenApiResponse(description="Booking not found"),
        409: OpenApiResponse(description="Payment already completed"),
        500: OpenApiResponse(description="Gateway not configured or persistence failure"),
    },
)
class BookingPaymentInitView(_PaymentInitView):
    serializer_class = BookingPaymentInitSerializer
    source_class = BookingSource
    callback_url_name = "sadad_booking_callback"


@extend_schema(
    description="Start a SADAD web checkout for a product order.",
    request=ProductPaymentInitSerializer,
    responses={
        200: PaymentInitEnvelopeSerializer,
        400: OpenApiResponse(description="order_id is required"),
        404: OpenApiResponse(description="Order not found"),
        409: OpenApiResponse(description="Payment already completed"),
        500: OpenApiResponse(description="Gateway not configured or persistence failure"),
    },
)
class ProductPaymentInitView(_PaymentInitView):
    serializer_class = ProductPaymentInitSerializer
    source_class = ProductOrderSource
    callback_url_name = "sadad_product_callback"


# ===================== Callbacks =====================
@method_decorator(csrf_exempt, name="dispatch")
class _GatewayCallbackView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    source_class = None
    adapter_class = None

    def _payload(self, request) -> Dict:
        if request.method == "GET":
            return _to_plain_dict(request.query_params)
        try:
            return _to_plain_dict(request.data)
        except (ParseError, UnsupportedMediaType):
            logger.warning("Unparsable SADAD callback body (%s)", request.content_type)
            return {}

    def _handle(self, request):
        payload = self._payload(request)
        processor = CallbackProcessor(get_config(), self.source_class(), self.adapter_class())
        try:
            result = processor.process(payload, client_ip=_client_ip(request))
        except PaymentError as e:
            return _error_response(e)
        except Exception:
            logger.exception("SADAD %s callback failed", processor.source.name)
            return Response({"error": "Failed to process callback"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(result, status=status.HTTP_200_OK)

    def get(self, request):
        return self._handle(request)

    def post(self, request):
        return self._handle(request)


@extend_schema(
    description="SADAD redirect/callback for booking checkouts (form, JSON or query string).",
    request=None,
    responses={
        200: CallbackResponseSerializer,
        400: OpenApiResponse(description="Missing order id or invalid checksum"),
        403: OpenApiResponse(description="Callback source IP not allowed"),
    },
)
class BookingCallbackView(_GatewayCallbackView):
    source_class = BookingSource
    adapter_class = BookingCallbackAdapter


@extend_schema(
    description="SADAD redirect/callback for product order checkouts.",
    request=None,
    responses={
        200: CallbackResponseSerializer,
        400: OpenApiResponse(description="Missing order id or invalid checksum"),
        403: OpenApiResponse(description="Callback source IP not allowed"),
        404: OpenApiResponse(description="Payment transaction not found"),
    },
)
class ProductCallbackView(_GatewayCallbackView):
    source_class = ProductOrderSource
    adapter_class = ProductCallbackAdapter


# ===================== Status lookup =====================
@extend_schema(
    description="Current state of a checkout, for the payment result pages.",
    responses={200: PaymentTransactionSerializer, 404: OpenApiResponse(description="Unknown order id")},
)
class PaymentTransactionDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, order_id: str):
        qs = PaymentTransaction.objects.select_related("booking", "product_order")
        if not request.user.is_staff:
            qs = qs.filter(Q(booking__customer=request.user) | Q(product_order__customer=request.user))
        txn = qs.filter(gateway_order_id=order_id).first()
        if txn is None:
            return Response({"error": "Payment transaction not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(PaymentTransactionSerializer(txn).data)

# payments/serializers.py
from rest_framework import serializers

from .constants import ERROR_USER_MESSAGES, STATUS_FAILED
from .models import PaymentTransaction


class _CustomerContactSerializer(serializers.Serializer):
    customer_email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    customer_phone = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=32)
    customer_name = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=150)
    return_url = serializers.URLField(required=False, allow_blank=True, allow_null=True, max_length=500)


class BookingPaymentInitSerializer(_CustomerContactSerializer):
    # presence is checked by the initiator so the error body stays {"error": ...}
    booking_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class ProductPaymentInitSerializer(_CustomerContactSerializer):
    order_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class PaymentInitResponseSerializer(serializers.Serializer):
    merchant_id = serializers.CharField()
    ORDER_ID = serializers.CharField()
    WEBSITE = serializers.CharField()
    TXN_AMOUNT = serializers.CharField()
    CUST_ID = serializers.CharField()
    EMAIL = serializers.CharField(allow_blank=True)
    MOBILE_NO = serializers.CharField()
    SADAD_WEBCHECKOUT_PAGE_LANGUAGE = serializers.CharField()
    CALLBACK_URL = serializers.CharField()
    RETURN_URL = serializers.CharField(required=False)
    txnDate = serializers.CharField()
    VERSION = serializers.CharField()
    productdetail = serializers.ListField(child=serializers.DictField())
    checksumhash = serializers.CharField()
    transaction_id = serializers.IntegerField()
    payment_url = serializers.URLField()


class PaymentInitEnvelopeSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    data = PaymentInitResponseSerializer()


class CallbackResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    status = serializers.CharField()
    order_id = serializers.CharField()
    booking_id = serializers.IntegerField(required=False, allow_null=True)
    product_order_id = serializers.IntegerField(required=False, allow_null=True)
    message = serializers.CharField()


class PaymentTransactionSerializer(serializers.ModelSerializer):
    source_type = serializers.CharField(read_only=True)
    user_message = serializers.SerializerMethodField()
    retryable = serializers.SerializerMethodField()

    class Meta:
        model = PaymentTransaction
        fields = [
            "id", "gateway_order_id", "payment_id", "transaction_number",
            "source_type", "booking", "product_order",
            "amount", "currency", "status", "response_code", "error_message",
            "user_message", "retryable",
            "payment_date", "verified_at", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def _user_entry(self, obj):
        if obj.status != STATUS_FAILED:
            return None
        return ERROR_USER_MESSAGES.get(obj.response_code or "")

    def get_user_message(self, obj):
        entry = self._user_entry(obj)
        if entry:
            return entry[0]
        return obj.error_message if obj.status == STATUS_FAILED else None

    def get_retryable(self, obj) -> bool:
        entry = self._user_entry(obj)
        if entry:
            return entry[1]
        return obj.status == STATUS_FAILED



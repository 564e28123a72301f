# payments/initiation.py
from __future__ import annotations

import logging
import re
from datetime import timezone as dt_timezone
from typing import Callable, Dict, List, Optional

from django.db import DatabaseError
from django.utils import timezone

from .checksum import ChecksumSigner
from .conf import SadadConfig
from .constants import (
    CURRENCY,
    PAYMENT_ID_PREFIX,
    PAYMENT_METHOD,
    PLACEHOLDER_MOBILE,
    PROTOCOL_VERSION,
    STATUS_PENDING,
)
from .exceptions import (
    MissingSourceId,
    PaymentAlreadyCompleted,
    SourceUpdateFailed,
    TransactionCreateFailed,
)
from .models import PaymentTransaction
from .sources import PaymentSource, format_amount

logger = logging.getLogger(__name__)

TXN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_NON_DIGITS = re.compile(r"\D+")


def normalize_mobile(phone: Optional[str]) -> str:
    digits = _NON_DIGITS.sub("", phone or "")
    return digits or PLACEHOLDER_MOBILE


class PaymentInitiator:
    """
    Starts a web checkout: records a pending PaymentTransaction, flags the
    source record as processing and returns the signed form fields the
    browser posts to the gateway.
    """

    def __init__(
        self,
        config: SadadConfig,
        source: PaymentSource,
        signer: Optional[ChecksumSigner] = None,
        clock: Callable = timezone.now,
    ):
        self.config = config
        self.source = source
        self.signer = signer or ChecksumSigner(config.merchant_id, config.secret_key)
        self.clock = clock

    def initiate(
        self,
        source_id,
        *,
        callback_url: str,
        customer_email: Optional[str] = None,
        customer_phone: Optional[str] = None,
        customer_name: Optional[str] = None,
        return_url: Optional[str] = None,
    ) -> Dict:
        if not source_id:
            raise MissingSourceId(f"{self.source.id_field} is required")

        self.config.require_credentials()
        record = self.source.fetch(source_id)
        if self.source.has_completed_payment(record.pk):
            raise PaymentAlreadyCompleted()
        customer = record.customer

        gateway_order_id = self.source.make_gateway_order_id()
        amount = format_amount(self.source.amount(record))
        email = customer_email or customer.email or ""
        mobile = normalize_mobile(customer_phone or getattr(customer, "phone", None))

        logger.info("Initiating SADAD payment for %s %s (order %s, %s %s)",
                    self.source.name, record.pk, gateway_order_id, amount, CURRENCY)

        try:
            txn = PaymentTransaction.objects.create(
                **{self.source.transaction_field: record},
                gateway_order_id=gateway_order_id,
                payment_id=f"{PAYMENT_ID_PREFIX}{gateway_order_id}",
                amount=amount,
                currency=CURRENCY,
                payment_method=PAYMENT_METHOD,
                status=STATUS_PENDING,
                metadata={
                    "order_type": self.source.name,
                    "customer_email": email,
                    "customer_phone": mobile,
                    "customer_name": customer_name or customer.get_full_name() or "",
                    "sadad_order_id": gateway_order_id,
                },
            )
        except DatabaseError:
            logger.exception("Failed to create payment transaction for %s %s", self.source.name, record.pk)
            raise TransactionCreateFailed()

        try:
            self.source.mark_processing(record, txn)
        except DatabaseError:
            logger.exception("Failed to flag %s %s as processing", self.source.name, record.pk)
            raise SourceUpdateFailed()

        payload = self.build_payload(
            gateway_order_id=gateway_order_id,
            amount=amount,
            cust_id=email or str(customer.pk),
            email=email,
            mobile=mobile,
            callback_url=callback_url,
            return_url=return_url,
            product_detail=self.source.line_items(record, gateway_order_id, amount),
        )
        checksum = self.signer.sign(payload)

        return {
            **payload,
            "checksumhash": checksum,
            "transaction_id": txn.pk,
            "payment_url": self.config.payment_url,
        }

    def build_payload(
        self,
        *,
        gateway_order_id: str,
        amount: str,
        cust_id: str,
        email: str,
        mobile: str,
        callback_url: str,
        return_url: Optional[str],
        product_detail: List[Dict],
    ) -> Dict:
        # key order is the order the browser posts the fields in
        payload = {
            "merchant_id": self.config.merchant_id,
            "ORDER_ID": gateway_order_id,
            "WEBSITE": self.config.website_domain,
            "TXN_AMOUNT": amount,
            "CUST_ID": cust_id,
            "EMAIL": email,
            "MOBILE_NO": mobile,
            "SADAD_WEBCHECKOUT_PAGE_LANGUAGE": self.config.language,
            "CALLBACK_URL": callback_url,
        }
        if return_url:
            payload["RETURN_URL"] = return_url
        payload["txnDate"] = self.clock().astimezone(dt_timezone.utc).strftime(TXN_DATE_FORMAT)
        payload["VERSION"] = PROTOCOL_VERSION
        payload["productdetail"] = product_detail
        return payload

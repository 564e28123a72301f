# payments/callbacks.py
"""
Gateway callback handling.

SADAD posts the checkout result back to the CALLBACK_URL (form fields, JSON
or a GET query string). Two integrations exist with different field names;
adapters fold both into one CallbackRecord, and a single processor runs the
same state machine for bookings and product orders:

    ip check -> checksum -> status mapping -> verification -> persist -> notify

Persisted transitions are monotone. A terminal status (completed, failed,
cancelled) is never overwritten, so a replayed or out-of-order callback is a
no-op apart from the history entry it leaves in metadata.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from django.db import transaction as db_transaction
from django.utils import timezone

from notifications.utils import notify_once

from .audit import make_gateway_logger
from .checksum import ChecksumSigner
from .conf import SadadConfig
from .constants import (
    ERR_SERVER_ERROR,
    ERROR_MESSAGES,
    GENERIC_FAILURE_MESSAGE,
    RESP_FAILED,
    RESPONSE_CODE_MAP,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FAILED,
    TERMINAL_STATUSES,
    TEXT_STATUS_MAP,
    TRANSACTION_STATUS_MAP,
    VERIFICATION_FAILED_MESSAGE,
)
from .exceptions import InvalidChecksum, IPNotAllowed, MissingOrderId, TransactionNotFound
from .models import PaymentTransaction
from .sadad import STATE_CONFIRMED, STATE_REJECTED, SadadClient, mask_payload
from .sources import PaymentSource

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("payments.security")

SCHEME_RESPCODE = "respcode"
SCHEME_STATUS = "status"

CHECKSUM_VALID = "valid"
CHECKSUM_INVALID = "invalid"
CHECKSUM_ABSENT = "absent"

MAX_CALLBACK_HISTORY = 20


def _clip(value: Optional[str], length: int) -> Optional[str]:
    return (value or "")[:length] or None


# ============================================================================
# Normalisation
# ============================================================================

@dataclass
class CallbackRecord:
    order_id: Optional[str]
    status_code: Optional[str]
    scheme: str
    message: Optional[str]
    amount: Optional[str]
    transaction_number: Optional[str]
    checksum: Optional[str]
    checksum_field: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def signed_fields(self) -> Dict[str, Any]:
        # everything the gateway sent except the checksum itself
        return {k: v for k, v in self.raw.items() if k != self.checksum_field}


def _first(raw: Mapping[str, Any], fields) -> Tuple[Optional[str], Optional[str]]:
    for name in fields:
        value = raw.get(name)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return name, value
    return None, None


class CallbackAdapter:
    order_id_fields: Tuple[str, ...] = ()
    code_fields: Tuple[Tuple[str, str], ...] = ()
    message_fields: Tuple[str, ...] = ()
    amount_fields: Tuple[str, ...] = ()
    transaction_fields: Tuple[str, ...] = ("transaction_number", "transactionNumber")
    checksum_fields: Tuple[str, ...] = ()
    # scheme assumed when no status field was sent at all
    default_scheme = SCHEME_RESPCODE

    def normalize(self, raw: Mapping[str, Any]) -> CallbackRecord:
        # items() so a MultiValueDict yields values, not its internal lists
        raw = dict(raw.items()) if raw else {}
        _, order_id = _first(raw, self.order_id_fields)

        status_code, scheme = None, self.default_scheme
        for name, name_scheme in self.code_fields:
            _, value = _first(raw, (name,))
            if value is not None:
                status_code, scheme = value, name_scheme
                break

        checksum_field, checksum = _first(raw, self.checksum_fields)
        return CallbackRecord(
            order_id=order_id,
            status_code=status_code,
            scheme=scheme,
            message=_first(raw, self.message_fields)[1],
            amount=_first(raw, self.amount_fields)[1],
            transaction_number=_first(raw, self.transaction_fields)[1],
            checksum=checksum,
            checksum_field=checksum_field,
            raw=raw,
        )


class BookingCallbackAdapter(CallbackAdapter):
    order_id_fields = ("order_id", "ORDERID")
    code_fields = (("status", SCHEME_STATUS), ("RESPCODE", SCHEME_RESPCODE))
    message_fields = ("error_message", "RESPMSG")
    amount_fields = ("amount", "TXNAMOUNT")
    checksum_fields = ("checksum", "checksumhash")
    default_scheme = SCHEME_STATUS


class ProductCallbackAdapter(CallbackAdapter):
    order_id_fields = ("ORDERID", "order_id")
    code_fields = (("RESPCODE", SCHEME_RESPCODE), ("status", SCHEME_STATUS))
    message_fields = ("RESPMSG", "error_message")
    amount_fields = ("TXNAMOUNT", "amount")
    checksum_fields = ("checksumhash", "checksum")
    default_scheme = SCHEME_RESPCODE


# ============================================================================
# Status mapping
# ============================================================================

@dataclass(frozen=True)
class StatusOutcome:
    status: str
    error_message: Optional[str] = None
    recognized: bool = True


def _translate(message: Optional[str]) -> Optional[str]:
    # the gateway sometimes sends a bare error code as the message
    if message and message in ERROR_MESSAGES:
        return ERROR_MESSAGES[message]
    return message


def _failed(code: Optional[str], message: Optional[str]) -> StatusOutcome:
    return StatusOutcome(
        STATUS_FAILED,
        _translate(message) or ERROR_MESSAGES.get(code or "") or GENERIC_FAILURE_MESSAGE,
    )


def _unrecognized() -> StatusOutcome:
    # gateway text stays in response_message only
    return StatusOutcome(
        STATUS_FAILED,
        ERROR_MESSAGES[ERR_SERVER_ERROR],
        recognized=False,
    )


def map_status(code: Optional[str], scheme: str = SCHEME_RESPCODE, message: Optional[str] = None) -> StatusOutcome:
    """
    Gateway code -> internal status. Anything not in the tables fails closed.

    respcode: RESPCODE values (1, 400, 402, 810); a missing code counts as 810.
    status:   numeric transactionstatus (0-3) or a textual status.
    """
    code = (code or "").strip()
    status = None

    if scheme == SCHEME_RESPCODE:
        if not code:
            code = str(RESP_FAILED)
        if code.lstrip("-").isdigit():
            status = RESPONSE_CODE_MAP.get(int(code))
    else:
        if code.isdigit():
            status = TRANSACTION_STATUS_MAP.get(int(code))
        else:
            status = TEXT_STATUS_MAP.get(code.lower())

    if status is None:
        if code in ERROR_MESSAGES:
            return _failed(code, message)
        return _unrecognized()
    if status == STATUS_FAILED:
        return _failed(code, message)
    if status == STATUS_CANCELLED:
        return StatusOutcome(STATUS_CANCELLED, _translate(message))
    return StatusOutcome(status)


# ============================================================================
# Processor
# ============================================================================

class CallbackProcessor:
    def __init__(
        self,
        config: SadadConfig,
        source: PaymentSource,
        adapter: CallbackAdapter,
        *,
        signer: Optional[ChecksumSigner] = None,
        client: Optional[SadadClient] = None,
    ):
        self.config = config
        self.source = source
        self.adapter = adapter
        self.signer = signer or ChecksumSigner(config.merchant_id, config.secret_key)
        self.client = client

    # ---------------- steps ----------------

    def check_ip(self, client_ip: Optional[str]) -> None:
        if client_ip and client_ip in self.config.allowed_ips:
            return
        if not self.config.verify_ip:
            logger.debug("callback from %s (IP verification disabled)", client_ip or "unknown")
            return
        if self.config.skip_ip_verification:
            security_logger.warning(
                "SADAD callback from unlisted IP %s accepted (IP verification skipped)", client_ip or "unknown"
            )
            return
        security_logger.warning("SADAD callback from unlisted IP %s rejected", client_ip or "unknown")
        raise IPNotAllowed()

    def check_checksum(self, record: CallbackRecord) -> str:
        if not record.checksum:
            return CHECKSUM_ABSENT
        if self.signer.verify(record.signed_fields, record.checksum):
            return CHECKSUM_VALID
        security_logger.warning("SADAD callback checksum mismatch for order %s", record.order_id)
        if self.config.strict_checksum:
            raise InvalidChecksum()
        return CHECKSUM_INVALID

    def verify_with_gateway(self, txn, record: CallbackRecord, outcome: StatusOutcome) -> Tuple[StatusOutcome, bool]:
        """Only a completed status with a transaction number is re-checked."""
        if outcome.status != STATUS_COMPLETED or not record.transaction_number:
            return outcome, False

        client = self.client or SadadClient(self.config, log_fn=make_gateway_logger(transaction=txn))
        result = client.verify_transaction(
            record.transaction_number,
            accepted_statuses=self.source.accepted_verification_statuses,
        )
        if result["state"] == STATE_CONFIRMED:
            return outcome, True
        if result["state"] == STATE_REJECTED:
            logger.error("SADAD verification rejected order %s", record.order_id)
            return StatusOutcome(STATUS_FAILED, VERIFICATION_FAILED_MESSAGE), False
        # unreachable: keep what the callback said
        logger.warning("SADAD verification unavailable for order %s, keeping %s", record.order_id, outcome.status)
        return outcome, False

    def _log_inbound(self, txn, record: CallbackRecord, status: str) -> None:
        log_fn = make_gateway_logger(transaction=txn, gateway_order_id=record.order_id, direction="in")
        log_fn({
            "endpoint": f"callback:{self.source.name}",
            "status_code": record.status_code or "",
            "request": mask_payload(record.raw),
            "response": {"status": status},
        })

    # ---------------- main ----------------

    def process(self, raw: Mapping[str, Any], client_ip: Optional[str] = None) -> Dict:
        self.check_ip(client_ip)

        record = self.adapter.normalize(raw)
        if not record.order_id:
            raise MissingOrderId()

        logger.info("SADAD %s callback for order %s (%s=%s)",
                    self.source.name, record.order_id, record.scheme, record.status_code)

        checksum_state = self.check_checksum(record)
        outcome = map_status(record.status_code, record.scheme, record.message)
        if not outcome.recognized:
            logger.warning("Unrecognized SADAD status %r for order %s", record.status_code, record.order_id)

        txn = (
            PaymentTransaction.objects
            .filter(gateway_order_id=record.order_id, **self.source.transaction_filter())
            .first()
        )
        if txn is None:
            logger.error("No payment transaction for SADAD order %s", record.order_id)
            if self.source.strict_lookup:
                raise TransactionNotFound()
            return self._envelope(record.order_id, None, outcome.status)

        if txn.status in TERMINAL_STATUSES:
            # the result could not change a final status
            verified = False
        else:
            outcome, verified = self.verify_with_gateway(txn, record, outcome)

        txn, effective = self._persist(txn.pk, record, outcome, verified, checksum_state)
        self._log_inbound(txn, record, effective)

        if effective == STATUS_COMPLETED:
            # notify_once dedupes, so a retried callback re-sends what a crash lost
            self._notify(txn)

        return self._envelope(record.order_id, self.source.source_id(txn), effective)

    def _persist(self, txn_pk, record: CallbackRecord, outcome: StatusOutcome, verified: bool, checksum_state: str):
        now = timezone.now()
        with db_transaction.atomic():
            txn = PaymentTransaction.objects.select_for_update().get(pk=txn_pk)
            previous = txn.status

            metadata = dict(txn.metadata or {})
            history = list(metadata.get("callbacks") or [])
            history.append({
                "received_at": now.isoformat(),
                "payload": mask_payload(record.raw),
                "mapped_status": outcome.status,
                "checksum": checksum_state,
            })
            metadata["callbacks"] = history[-MAX_CALLBACK_HISTORY:]
            metadata["callback_data"] = mask_payload(record.raw)
            if checksum_state != CHECKSUM_ABSENT:
                metadata["checksum_valid"] = checksum_state == CHECKSUM_VALID
            txn.metadata = metadata

            if previous in TERMINAL_STATUSES:
                if previous != outcome.status:
                    logger.warning("Ignoring %s callback for order %s already %s",
                                   outcome.status, record.order_id, previous)
                txn.save(update_fields=["metadata", "updated_at"])
                return txn, previous

            txn.status = outcome.status
            # column limits: gateway text is unbounded
            txn.error_message = _clip(outcome.error_message, 255)
            txn.response_code = _clip(record.status_code, 16)
            txn.response_message = _clip(record.message, 255)
            if record.transaction_number:
                txn.transaction_number = _clip(record.transaction_number, 100)
            if outcome.status == STATUS_COMPLETED:
                txn.payment_date = now
            if verified:
                txn.verified_at = now
            txn.save()

            self.source.apply_outcome(self.source.source_id(txn), outcome.status, txn)

        logger.info("SADAD order %s: %s -> %s", record.order_id, previous, outcome.status)
        return txn, outcome.status

    def _notify(self, txn) -> None:
        try:
            record = self.source.fetch(self.source.source_id(txn))
            notes = self.source.notifications(record, txn)
        except Exception:
            logger.exception("Could not build notifications for order %s", txn.gateway_order_id)
            return

        for note in notes:
            notify_once(
                note["user_id"],
                type=note["type"],
                title=note["title"],
                body=note["body"],
                data=note["data"],
                dedupe_key=f"sadad:{txn.gateway_order_id}:{note['audience']}",
            )

    def _envelope(self, order_id: str, source_id, status: str) -> Dict:
        message = "Payment processed successfully" if status == STATUS_COMPLETED else f"Payment {status}"
        return {
            "success": True,
            "status": status,
            "order_id": order_id,
            self.source.response_id_key: source_id,
            "message": message,
        }

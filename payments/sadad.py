# payments/sadad.py
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Iterable, Optional, Tuple

import requests

from .conf import SadadConfig

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 5

STATE_CONFIRMED = "confirmed"
STATE_REJECTED = "rejected"
STATE_UNREACHABLE = "unreachable"

Session = requests.Session()

SENSITIVE_KEYS = (
    "secretKey", "secret_key", "EMAIL", "email", "customer_email",
    "MOBILE_NO", "mobile", "phone", "customer_phone", "CUST_ID",
)


# ============================================================================
# Helpers
# ============================================================================

def mask_value(val: Optional[str]) -> str:
    if not val:
        return ""
    s = str(val)
    if "@" in s:
        name, _, domain = s.partition("@")
        return (name[:2] + "***@" + domain) if name else "***@" + domain
    if s.isdigit() and len(s) >= 7:
        return f"{s[:3]}***{s[-4:]}"
    if len(s) > 6:
        return s[:3] + "***" + s[-3:]
    return "***"


def mask_payload(payload: Dict, keys: Iterable[str] = SENSITIVE_KEYS) -> Dict:
    if not payload:
        return {}
    masked = dict(payload)
    for k in keys:
        if k in masked:
            masked[k] = "***" if k in ("secretKey", "secret_key") else mask_value(masked[k])
    return masked


def _safe_json(resp: requests.Response) -> Tuple[bool, Dict]:
    try:
        body = resp.json()
    except ValueError:
        return False, {"raw": getattr(resp, "text", "")[:500], "http_status": resp.status_code}
    if not isinstance(body, dict):
        return False, {"raw": body, "http_status": resp.status_code}
    return True, body


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# ============================================================================
# Client
# ============================================================================

class SadadClient:
    """
    Server-to-server calls to the gateway. Only the transaction status
    lookup exists; checkout itself is a browser form POST.
    """

    def __init__(
        self,
        config: SadadConfig,
        *,
        session: Optional[requests.Session] = None,
        log_fn: Optional[Callable[[Dict], None]] = None,
    ):
        self.config = config
        self.session = session or Session
        self.log_fn = log_fn

    def _log(self, entry: Dict) -> None:
        if not self.log_fn:
            return
        try:
            self.log_fn(entry)
        except Exception:
            logger.warning("gateway log write failed", exc_info=True)

    def verify_transaction(self, transaction_number: str, *, accepted_statuses: Iterable[int] = (3,)) -> Dict:
        """
        Ask the gateway for the authoritative status of a transaction.

        state:
          confirmed   - gateway says success and transactionstatus is accepted
          rejected    - gateway answered but did not confirm success
          unreachable - network error, 5xx or unparsable body; caller keeps its own status
        """
        url = self.config.verification_url
        payload = {
            "sadadId": self.config.merchant_id,
            "secretKey": self.config.secret_key,
            "transactionNumber": transaction_number,
        }
        started = time.monotonic()

        try:
            resp = self.session.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=(CONNECT_TIMEOUT, self.config.verify_timeout),
            )
        except requests.exceptions.RequestException as e:
            logger.error("SADAD verification unreachable for %s: %s", transaction_number, e)
            self._log({
                "endpoint": url,
                "status_code": "0",
                "request": mask_payload(payload),
                "response": {"error": str(e)},
                "response_time_ms": int((time.monotonic() - started) * 1000),
            })
            return {"ok": False, "state": STATE_UNREACHABLE, "provider": {"error": str(e)},
                    "http_status": 0, "transaction_status": None}

        parsed_ok, body = _safe_json(resp)
        self._log({
            "endpoint": url,
            "status_code": str(resp.status_code),
            "request": mask_payload(payload),
            "response": body,
            "response_time_ms": int((time.monotonic() - started) * 1000),
        })

        if not parsed_ok or resp.status_code >= 500:
            logger.error("SADAD verification returned unusable response (HTTP %s) for %s",
                         resp.status_code, transaction_number)
            return {"ok": False, "state": STATE_UNREACHABLE, "provider": body,
                    "http_status": resp.status_code, "transaction_status": None}

        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        txn_status = _as_int(data.get("transactionstatus"))
        confirmed = body.get("status") == "success" and txn_status in set(accepted_statuses)

        if not confirmed:
            logger.error("SADAD verification did not confirm %s: status=%s transactionstatus=%s",
                         transaction_number, body.get("status"), txn_status)

        return {
            "ok": confirmed,
            "state": STATE_CONFIRMED if confirmed else STATE_REJECTED,
            "provider": body,
            "http_status": resp.status_code,
            "transaction_status": txn_status,
        }

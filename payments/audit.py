# payments/audit.py
import logging

from .models import GatewayLog

logger = logging.getLogger(__name__)


def make_gateway_logger(*, transaction=None, gateway_order_id=None, direction="out"):
    """Returns a log_fn for SadadClient / the callback processor bound to one transaction."""

    def _save(entry):
        try:
            GatewayLog.objects.create(
                transaction=transaction,
                gateway_order_id=gateway_order_id or getattr(transaction, "gateway_order_id", None),
                endpoint=entry.get("endpoint", "")[:255],
                direction=entry.get("direction", direction),
                request_payload=entry.get("request") or {},
                response_payload=entry.get("response") or {},
                status_code=str(entry.get("status_code", ""))[:10],
                response_time_ms=entry.get("response_time_ms"),
            )
        except Exception:
            logger.warning("GatewayLog write failed for %s", gateway_order_id, exc_info=True)

    return _save

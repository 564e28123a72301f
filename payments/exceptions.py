# payments/exceptions.py


class PaymentError(Exception):
    """Base for errors the payment views turn into an HTTP response."""

    status_code = 500
    default_message = "Payment processing failed"

    def __init__(self, message: str | None = None, *, details: str | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_body(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class MissingSourceId(PaymentError):
    status_code = 400
    default_message = "Source id is required"


class SourceNotFound(PaymentError):
    status_code = 404
    default_message = "Source record not found"


class GatewayNotConfigured(PaymentError):
    # never include credential values in the message
    status_code = 500
    default_message = "Payment gateway not configured"


class PaymentAlreadyCompleted(PaymentError):
    status_code = 409
    default_message = "Payment already completed"


class TransactionCreateFailed(PaymentError):
    status_code = 500
    default_message = "Failed to create payment transaction"


class SourceUpdateFailed(PaymentError):
    status_code = 500
    default_message = "Failed to update payment state on the source record"


class MissingOrderId(PaymentError):
    status_code = 400
    default_message = "Missing order_id/ORDERID"


class IPNotAllowed(PaymentError):
    status_code = 403
    default_message = "Callback source not allowed"


class InvalidChecksum(PaymentError):
    status_code = 400
    default_message = "Invalid checksum"


class TransactionNotFound(PaymentError):
    status_code = 404
    default_message = "Payment transaction not found"

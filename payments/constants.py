# payments/constants.py
"""
SADAD gateway protocol tables.

Everything here is read-only: mappings are wrapped in MappingProxyType and
lists are tuples so no caller can mutate a shared table at runtime.
"""
from __future__ import annotations

from types import MappingProxyType

# ---------------------------------------------------------------------------
# Internal payment statuses
# ---------------------------------------------------------------------------
STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"

MAPPED_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED, STATUS_PENDING, STATUS_CANCELLED})
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED, STATUS_CANCELLED})

# ---------------------------------------------------------------------------
# Gateway code tables
# ---------------------------------------------------------------------------
# transactionstatus (verification API and numeric booking callbacks)
TXN_STATUS_CANCELLED = 0
TXN_STATUS_PENDING = 1
TXN_STATUS_FAILED = 2
TXN_STATUS_SUCCESS = 3

TRANSACTION_STATUS_MAP = MappingProxyType({
    TXN_STATUS_SUCCESS: STATUS_COMPLETED,
    TXN_STATUS_FAILED: STATUS_FAILED,
    TXN_STATUS_PENDING: STATUS_PENDING,
    TXN_STATUS_CANCELLED: STATUS_CANCELLED,
})

# RESPCODE (web checkout callbacks)
RESP_SUCCESS = 1
RESP_PENDING = 400
RESP_PENDING_CONFIRMATION = 402  # waiting on the issuing bank
RESP_FAILED = 810

RESPONSE_CODE_MAP = MappingProxyType({
    RESP_SUCCESS: STATUS_COMPLETED,
    RESP_PENDING: STATUS_PENDING,
    RESP_PENDING_CONFIRMATION: STATUS_PENDING,
    RESP_FAILED: STATUS_FAILED,
})

# textual "status" values some callback integrations send
TEXT_STATUS_MAP = MappingProxyType({
    "success": STATUS_COMPLETED,
    "completed": STATUS_COMPLETED,
    "failed": STATUS_FAILED,
    "error": STATUS_FAILED,
    "cancelled": STATUS_CANCELLED,
    "canceled": STATUS_CANCELLED,
    "pending": STATUS_PENDING,
})

# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------
ERR_INVALID_MERCHANT = "1001"
ERR_INVALID_CHECKSUM = "1002"
ERR_INVALID_AMOUNT = "1003"
ERR_INVALID_ORDER_ID = "1004"
ERR_TRANSACTION_FAILED = "2001"
ERR_INSUFFICIENT_FUNDS = "2002"
ERR_CARD_DECLINED = "2003"
ERR_INVALID_CARD = "2004"
ERR_EXPIRED_CARD = "2005"
ERR_TIMEOUT = "3001"
ERR_SERVER_ERROR = "3002"
ERR_DOMAIN_MISMATCH = "ERR"
ERR_WRONG_URL = "404"

ERROR_MESSAGES = MappingProxyType({
    ERR_INVALID_MERCHANT: "Invalid merchant credentials",
    ERR_INVALID_CHECKSUM: "Invalid checksum hash",
    ERR_INVALID_AMOUNT: "Invalid transaction amount",
    ERR_INVALID_ORDER_ID: "Invalid order ID",
    ERR_TRANSACTION_FAILED: "Transaction failed",
    ERR_INSUFFICIENT_FUNDS: "Insufficient funds",
    ERR_CARD_DECLINED: "Card declined by bank",
    ERR_INVALID_CARD: "Invalid card details",
    ERR_EXPIRED_CARD: "Card has expired",
    ERR_TIMEOUT: "Transaction timeout",
    ERR_SERVER_ERROR: "Server error, please try again",
    ERR_DOMAIN_MISMATCH: "Domain mismatch or checksum error",
    ERR_WRONG_URL: "Wrong format or wrong URL",
})

# (user-facing message, retryable) for the checkout result pages
ERROR_USER_MESSAGES = MappingProxyType({
    ERR_INVALID_MERCHANT: ("Payment gateway configuration error. Please contact support.", False),
    ERR_INVALID_CHECKSUM: ("Payment security verification failed. Please try again.", True),
    ERR_INVALID_AMOUNT: ("Invalid payment amount. Please check your order.", False),
    ERR_INVALID_ORDER_ID: ("Order not found. Please try again.", False),
    ERR_TRANSACTION_FAILED: ("Payment failed. Please try again or use a different payment method.", True),
    ERR_INSUFFICIENT_FUNDS: ("Insufficient funds in your account. Please use a different payment method.", False),
    ERR_CARD_DECLINED: ("Your card was declined. Please try a different card or payment method.", True),
    ERR_INVALID_CARD: ("Invalid card details. Please check and try again.", True),
    ERR_EXPIRED_CARD: ("Your card has expired. Please use a different card.", False),
    ERR_TIMEOUT: ("Payment timed out. Please try again.", True),
    ERR_SERVER_ERROR: ("Payment server error. Please try again later.", True),
    ERR_DOMAIN_MISMATCH: ("Payment verification failed. Please try again.", True),
    ERR_WRONG_URL: ("Payment configuration error. Please contact support.", False),
})

GENERIC_FAILURE_MESSAGE = "Transaction failed"
VERIFICATION_FAILED_MESSAGE = "Transaction verification failed with SADAD"

# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------
ENV_TEST = "TEST"
ENV_PRODUCTION = "PRODUCTION"

GATEWAY_IPS = MappingProxyType({
    ENV_TEST: ("52.51.150.11", "52.51.150.12"),
    ENV_PRODUCTION: ("52.51.150.1", "52.51.150.2"),
})

PAYMENT_ENDPOINTS = MappingProxyType({
    ENV_TEST: "https://sadadqa.com/webpurchase",
    ENV_PRODUCTION: "https://sadad.com/webpurchase",
})

VERIFICATION_ENDPOINTS = MappingProxyType({
    ENV_TEST: "https://api.sadadqa.com/api-v4/transactionstatus",
    ENV_PRODUCTION: "https://api.sadad.com/api-v4/transactionstatus",
})

# ---------------------------------------------------------------------------
# Web checkout protocol
# ---------------------------------------------------------------------------
PAYMENT_METHOD = "sadad"
CURRENCY = "QAR"
PROTOCOL_VERSION = "1.1"
LANGUAGES = ("ENG", "ARA")
DEFAULT_LANGUAGE = "ENG"
PLACEHOLDER_MOBILE = "00000000"
LINE_ITEM_TYPE = "line_item"
PAYMENT_ID_PREFIX = "SADAD-"
PRODUCT_ORDER_PREFIX = "PROD-"

# payments/checksum.py
"""
SADAD Web Checkout 2.1 checksumhash.

    salt      = 4 chars from SALT_ALPHABET
    digest    = sha256(json + "|" + salt)
    checksum  = AES-128-CBC(digest + salt, key = secret + merchant_id)

The JSON must match PHP's json_encode() output, the gateway recomputes it
on its side from the posted fields.
"""
from __future__ import annotations

import hmac
import json
import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote_plus

from .crypto import decrypt_aes, encrypt_aes, generate_salt, sha256_hex

logger = logging.getLogger(__name__)

SALT_LENGTH = 4

SaltFactory = Callable[[int], str]


def php_json_encode(value: Any) -> str:
    # json_encode() escapes "/" by default; JSON.stringify / json.dumps don't.
    return json.dumps(value, ensure_ascii=False, separators=(",", ":")).replace("/", "\\/")


def php_urlencode(value: str) -> str:
    return quote_plus(value or "")


def checksum_key(secret_key: str, merchant_id: str) -> str:
    return f"{secret_key}{merchant_id}"


def checksum_envelope(post_data: Dict[str, Any], secret_key: str, *, urlencode_secret: bool = False) -> Dict[str, Any]:
    return {
        "postData": post_data,
        "secretKey": php_urlencode(secret_key) if urlencode_secret else secret_key,
    }


def generate_checksum(
    json_str: str,
    key: str,
    *,
    salt: Optional[str] = None,
    salt_factory: SaltFactory = generate_salt,
) -> str:
    salt = salt if salt is not None else salt_factory(SALT_LENGTH)
    digest = sha256_hex(f"{json_str}|{salt}")
    return encrypt_aes(digest + salt, key)


def verify_checksum(json_str: str, received: str, key: str) -> bool:
    if not received:
        return False
    try:
        decrypted = decrypt_aes(received, key)
    except ValueError:
        logger.debug("checksum could not be decrypted", exc_info=True)
        return False

    if len(decrypted) <= SALT_LENGTH:
        return False
    salt = decrypted[-SALT_LENGTH:]
    expected = decrypted[:-SALT_LENGTH]
    actual = sha256_hex(f"{json_str}|{salt}")
    return hmac.compare_digest(actual.encode("utf-8"), expected.encode("utf-8"))


class ChecksumSigner:
    """
    Signs outgoing checkout payloads and verifies callback payloads for one
    merchant. The salt factory is injectable so tests can pin the salt.

    The reference pair is asymmetric: checkout signing wraps the raw secret,
    callback verification wraps the urlencoded secret, and the AES key is
    built from the same (raw or urlencoded) secret plus the merchant id.
    """

    def __init__(self, merchant_id: str, secret_key: str, salt_factory: SaltFactory = generate_salt):
        self.merchant_id = merchant_id
        self.secret_key = secret_key
        self.salt_factory = salt_factory

    def _secret(self, urlencode_secret: bool) -> str:
        return php_urlencode(self.secret_key) if urlencode_secret else self.secret_key

    def canonical_json(self, post_data: Dict[str, Any], *, urlencode_secret: bool = False) -> str:
        return php_json_encode(
            checksum_envelope(post_data, self.secret_key, urlencode_secret=urlencode_secret)
        )

    def key(self, *, urlencode_secret: bool = False) -> str:
        return checksum_key(self._secret(urlencode_secret), self.merchant_id)

    def sign(self, post_data: Dict[str, Any], *, urlencode_secret: bool = False) -> str:
        return generate_checksum(
            self.canonical_json(post_data, urlencode_secret=urlencode_secret),
            self.key(urlencode_secret=urlencode_secret),
            salt_factory=self.salt_factory,
        )

    def verify(self, post_data: Dict[str, Any], received: str, *, urlencode_secret: bool = True) -> bool:
        return verify_checksum(
            self.canonical_json(post_data, urlencode_secret=urlencode_secret),
            received,
            self.key(urlencode_secret=urlencode_secret),
        )

# payments/crypto.py
"""
Low-level primitives for the SADAD checksum.

These reproduce the gateway's PHP reference kit byte for byte, including
its weaknesses: the salt is not cryptographically random and AES-CBC runs
with a fixed IV. Both are protocol requirements of the gateway's own
verifier; changing either here breaks every checksum we exchange.
"""
from __future__ import annotations

import base64
import hashlib
import html
import random

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

# Alphabet from the PHP kit, duplicates included; indexing must not change.
SALT_ALPHABET = "AbcDE123IJKLMN67QRSTUVWXYZaBCdefghijklmn123opq45rs67tuv89wxyz0FGH45OP89"

LEGACY_IV = b"@@@@&&&&####$$$$"
BLOCK_SIZE = 16
KEY_SIZE = 16


def generate_salt(length: int, rng: random.Random | None = None) -> str:
    """Protocol filler, not key material."""
    rng = rng or random
    return "".join(SALT_ALPHABET[rng.randrange(len(SALT_ALPHABET))] for _ in range(length))


def pkcs7_pad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    pad = block_size - (len(data) % block_size)
    return data + bytes([pad]) * pad


def pkcs7_unpad(data: bytes) -> bytes:
    # Lax like openssl_decrypt in the kit: trust the last byte, no consistency check.
    if not data:
        return data
    return data[: len(data) - data[-1]]


def derive_aes_key(key: str) -> bytes:
    """html_entity_decode, first 16 chars, UTF-8, then cut/zero-fill to 16 bytes."""
    decoded = html.unescape(key or "")
    return decoded[:KEY_SIZE].encode("utf-8")[:KEY_SIZE].ljust(KEY_SIZE, b"\0")


def _cipher(key: str) -> Cipher:
    return Cipher(algorithms.AES(derive_aes_key(key)), modes.CBC(LEGACY_IV))


def encrypt_aes(plaintext: str, key: str) -> str:
    encryptor = _cipher(key).encryptor()
    raw = encryptor.update(pkcs7_pad(plaintext.encode("utf-8"))) + encryptor.finalize()
    return base64.b64encode(raw).decode("ascii")


def decrypt_aes(ciphertext_b64: str, key: str) -> str:
    """
    Raises ValueError (binascii.Error included) on malformed base64 or a
    ciphertext that is not a whole number of blocks.
    """
    raw = base64.b64decode(ciphertext_b64, validate=False)
    decryptor = _cipher(key).decryptor()
    plain = decryptor.update(raw) + decryptor.finalize()
    return pkcs7_unpad(plain).decode("utf-8", errors="replace")


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()

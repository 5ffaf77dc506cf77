"""Cryptographic primitives shared by the webhook providers.

Byte codecs, HMAC computation and constant-time comparison. Decoders never
raise on attacker-controlled input; they return None instead so providers
can map the failure to a verification result.

Usage:
    from hookverify.webhooks.crypto import HashAlgorithm, compute_hmac, from_hex

    expected = compute_hmac(HashAlgorithm.SHA256, secret, body)
    received = from_hex(header_value)
    if received is not None and timing_safe_equal(expected, received):
        ...
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re
from enum import Enum

_HEX_RE = re.compile(r"[0-9a-fA-F]*")


class HashAlgorithm(Enum):
    """Hash functions available for HMAC computation."""

    SHA256 = "SHA-256"
    SHA1 = "SHA-1"

    @property
    def digest(self):
        return hashlib.sha256 if self is HashAlgorithm.SHA256 else hashlib.sha1


def to_hex(data: bytes) -> str:
    """Encode bytes as a lowercase hex string."""
    return data.hex()


def from_hex(text: str) -> bytes | None:
    """Decode a hex string (either case).

    Returns:
        The decoded bytes, or None for odd length or non-hex characters.
    """
    if len(text) % 2 != 0 or not _HEX_RE.fullmatch(text):
        return None
    return bytes.fromhex(text)


def to_base64(data: bytes) -> str:
    """Encode bytes as padded standard base64."""
    return base64.b64encode(data).decode("ascii")


def from_base64(text: str) -> bytes | None:
    """Decode padded standard base64.

    Returns:
        The decoded bytes, or None if the strict decoder rejects the input.
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None


def compute_hmac(
    algorithm: HashAlgorithm,
    key: str | bytes,
    message: str | bytes,
) -> bytes:
    """Compute a raw HMAC digest.

    Args:
        algorithm: Hash function to use.
        key: Text secret (UTF-8 encoded) or raw key bytes.
        message: Text (UTF-8 encoded) or bytes to authenticate.

    Returns:
        The raw digest bytes.
    """
    if isinstance(key, str):
        key = key.encode("utf-8")
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(key, message, algorithm.digest).digest()


def _xor_equal(a: bytes, b: bytes) -> bool:
    # Caller guarantees equal length.
    diff = 0
    for x, y in zip(a, b):
        diff |= x ^ y
    return diff == 0


def timing_safe_equal(a: bytes, b: bytes) -> bool:
    """Compare two byte strings without leaking the first mismatch position.

    Length is not treated as secret: unequal lengths return False at once.
    Uses hmac.compare_digest, or a full-length XOR scan on interpreters
    built without it.
    """
    if len(a) != len(b):
        return False
    compare = getattr(hmac, "compare_digest", None)
    if compare is not None:
        return compare(a, b)
    return _xor_equal(a, b)

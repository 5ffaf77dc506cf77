"""Signing helpers that produce headers the way each sender does."""

from __future__ import annotations

import base64
import hashlib
import hmac
import time
from urllib.parse import urlencode

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

GITHUB_SECRET = "gh_webhook_secret"
STRIPE_SECRET = "whsec_stripe_test_secret"
SLACK_SECRET = "slack_signing_secret"
SHOPIFY_SECRET = "shopify_app_secret"
TWILIO_TOKEN = "twilio_auth_token"
LINE_SECRET = "line_channel_secret"
STANDARD_SECRET = "whsec_" + base64.b64encode(bytes(32)).decode()

JSON_BODY = b'{"action":"opened","number":1}'
TWILIO_URL = "https://example.com/twilio/sms"


def now() -> int:
    return int(time.time())


def hmac_hex(secret: str | bytes, message: bytes) -> str:
    key = secret.encode() if isinstance(secret, str) else secret
    return hmac.new(key, message, hashlib.sha256).hexdigest()


def hmac_b64(secret: str | bytes, message: bytes, digest=hashlib.sha256) -> str:
    key = secret.encode() if isinstance(secret, str) else secret
    return base64.b64encode(hmac.new(key, message, digest).digest()).decode()


def github_headers(body: bytes, secret: str = GITHUB_SECRET) -> dict[str, str]:
    return {"X-Hub-Signature-256": "sha256=" + hmac_hex(secret, body)}


def stripe_headers(
    body: bytes,
    secret: str = STRIPE_SECRET,
    timestamp: int | str | None = None,
) -> dict[str, str]:
    ts = str(now() if timestamp is None else timestamp)
    signature = hmac_hex(secret, f"{ts}.".encode() + body)
    return {"Stripe-Signature": f"t={ts},v1={signature}"}


def slack_headers(
    body: bytes,
    secret: str = SLACK_SECRET,
    timestamp: int | str | None = None,
) -> dict[str, str]:
    ts = str(now() if timestamp is None else timestamp)
    signature = hmac_hex(secret, f"v0:{ts}:".encode() + body)
    return {
        "X-Slack-Signature": f"v0={signature}",
        "X-Slack-Request-Timestamp": ts,
    }


def shopify_headers(body: bytes, secret: str = SHOPIFY_SECRET) -> dict[str, str]:
    return {"X-Shopify-Hmac-Sha256": hmac_b64(secret, body)}


def line_headers(body: bytes, secret: str = LINE_SECRET) -> dict[str, str]:
    return {"X-Line-Signature": hmac_b64(secret, body)}


def twilio_signature(
    params: list[tuple[str, str]],
    url: str = TWILIO_URL,
    token: str = TWILIO_TOKEN,
) -> str:
    ordered = sorted(params, key=lambda p: p[0].encode("utf-16-be"))
    data = url + "".join(k + v for k, v in ordered)
    return hmac_b64(token, data.encode(), hashlib.sha1)


def twilio_request(
    params: list[tuple[str, str]],
    url: str = TWILIO_URL,
    token: str = TWILIO_TOKEN,
) -> tuple[bytes, dict[str, str]]:
    body = urlencode(params).encode()
    return body, {"X-Twilio-Signature": twilio_signature(params, url, token)}


def discord_keypair() -> tuple[Ed25519PrivateKey, str]:
    private_key = Ed25519PrivateKey.generate()
    return private_key, private_key.public_key().public_bytes_raw().hex()


def discord_headers(
    private_key: Ed25519PrivateKey,
    body: bytes,
    timestamp: int | str | None = None,
) -> dict[str, str]:
    ts = str(now() if timestamp is None else timestamp)
    signature = private_key.sign(ts.encode() + body)
    return {"X-Signature-Ed25519": signature.hex(), "X-Signature-Timestamp": ts}


def standard_headers(
    body: bytes,
    secret: str = STANDARD_SECRET,
    msg_id: str = "msg_2KWPBgLlAfxdpx2AI54pPJ85f4W",
    timestamp: int | str | None = None,
) -> dict[str, str]:
    ts = str(now() if timestamp is None else timestamp)
    key = base64.b64decode(secret.removeprefix("whsec_"))
    signature = hmac_b64(key, f"{msg_id}.{ts}.".encode("utf-8", "surrogateescape") + body)
    return {
        "webhook-id": msg_id,
        "webhook-timestamp": ts,
        "webhook-signature": f"v1,{signature}",
    }


def flip_byte(body: bytes, index: int = 0) -> bytes:
    """Return body with one byte altered."""
    data = bytearray(body)
    data[index] ^= 0x01
    return bytes(data)

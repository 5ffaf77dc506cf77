"""Hookverify Webhook Providers.

Provider-specific webhook signature verification for the services below.
Every provider validates its key material at construction and raises
ConfigurationError for anything unusable; verification itself never raises.

Supported Providers:
- Stripe: Stripe-Signature, HMAC-SHA256 hex with timestamp validation
- GitHub: X-Hub-Signature-256, HMAC-SHA256 hex
- Slack: X-Slack-Signature, HMAC-SHA256 hex with timestamp validation
- Shopify: X-Shopify-Hmac-Sha256, HMAC-SHA256 base64
- Twilio: X-Twilio-Signature, HMAC-SHA1 base64 over URL and form params
- LINE: X-Line-Signature, HMAC-SHA256 base64
- Discord: X-Signature-Ed25519 with Ed25519 verification
- Standard Webhooks: webhook-signature, HMAC-SHA256 base64 with key rotation

Usage:
    from hookverify.webhooks.providers import GitHubWebhookProvider

    provider = GitHubWebhookProvider(secret="github-webhook-secret")
    result = provider.verify(VerificationContext(raw_body=body, headers=headers))

    if result.valid:
        # Process webhook
        pass
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl

import structlog
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from hookverify.webhooks.crypto import (
    HashAlgorithm,
    compute_hmac,
    from_base64,
    from_hex,
    timing_safe_equal,
)
from hookverify.webhooks.errors import ConfigurationError
from hookverify.webhooks.verifier import (
    FailureReason,
    VerificationContext,
    VerifyResult,
    WebhookProvider,
    check_timestamp,
    parse_signature_header,
    parse_stripe_signature,
)

logger = structlog.get_logger()

DEFAULT_TOLERANCE = 300
"""Default timestamp tolerance in seconds (5 minutes)."""

ED25519_PUBLIC_KEY_LENGTH = 32

_MISSING = VerifyResult.fail(FailureReason.MISSING_SIGNATURE)
_INVALID = VerifyResult.fail(FailureReason.INVALID_SIGNATURE)
_VALID = VerifyResult.ok()


def _require_secret(provider: str, field_name: str, value: Any) -> None:
    # An empty secret yields a digest anyone can compute.
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"{provider}: {field_name} must not be empty")


def _require_tolerance(provider: str, tolerance: int | None) -> None:
    if tolerance is not None and tolerance < 0:
        raise ConfigurationError(f"{provider}: tolerance must not be negative")


def _matches(expected: bytes, received: bytes | None) -> bool:
    return received is not None and timing_safe_equal(expected, received)


def _wire_bytes(text: str) -> bytes:
    """Encode header text back to bytes.

    aiohttp decodes undecodable header bytes as lone surrogates; those are
    restored rather than raising.
    """
    return text.encode("utf-8", "surrogateescape")


@dataclass(frozen=True)
class StripeWebhookProvider(WebhookProvider):
    """Stripe webhook signature verification.

    Stripe sends: Stripe-Signature: t=<timestamp>,v1=<signature>[,v1=...]

    Several v1 entries appear while a secret is being rolled; any one
    matching is enough.
    """

    secret: str = field(repr=False)
    """Webhook signing secret from Stripe dashboard."""

    tolerance: int = DEFAULT_TOLERANCE
    """Maximum age of timestamp in seconds."""

    signature_header: str = "Stripe-Signature"

    def __post_init__(self) -> None:
        _require_secret(self.name, "secret", self.secret)
        _require_tolerance(self.name, self.tolerance)

    @property
    def name(self) -> str:
        return "stripe"

    def verify(self, ctx: VerificationContext) -> VerifyResult:
        header = ctx.header(self.signature_header)
        if not header:
            return _MISSING

        pairs = parse_stripe_signature(header)
        timestamps = pairs.get("t")
        signatures = pairs.get("v1", [])
        if not timestamps or not timestamps[0] or not signatures:
            return _MISSING

        timestamp = timestamps[0]
        reason = check_timestamp(timestamp, self.tolerance)
        if reason is not None:
            return VerifyResult.fail(reason)

        # signed_payload = timestamp + "." + payload
        signed_payload = _wire_bytes(f"{timestamp}.") + ctx.raw_body
        expected = compute_hmac(HashAlgorithm.SHA256, self.secret, signed_payload)

        if any(_matches(expected, from_hex(sig)) for sig in signatures):
            return _VALID
        return _INVALID


@dataclass(frozen=True)
class GitHubWebhookProvider(WebhookProvider):
    """GitHub webhook signature verification.

    GitHub sends: X-Hub-Signature-256: sha256=<signature>

    A header without the sha256= prefix is malformed rather than missing.
    """

    secret: str = field(repr=False)
    """Webhook secret configured in GitHub."""

    signature_header: str = "X-Hub-Signature-256"

    def __post_init__(self) -> None:
        _require_secret(self.name, "secret", self.secret)

    @property
    def name(self) -> str:
        return "github"

    def verify(self, ctx: VerificationContext) -> VerifyResult:
        header = ctx.header(self.signature_header)
        if not header:
            return _MISSING

        signature = parse_signature_header(header, "sha256=")
        if signature is None:
            return _INVALID

        expected = compute_hmac(HashAlgorithm.SHA256, self.secret, ctx.raw_body)
        if _matches(expected, from_hex(signature)):
            return _VALID
        return _INVALID


@dataclass(frozen=True)
class SlackWebhookProvider(WebhookProvider):
    """Slack webhook signature verification.

    Slack sends:
    - X-Slack-Signature: v0=<signature>
    - X-Slack-Request-Timestamp: <timestamp>

    Signature is computed over: v0:{timestamp}:{body}
    """

    signing_secret: str = field(repr=False)
    """Slack signing secret."""

    tolerance: int = DEFAULT_TOLERANCE

    signature_header: str = "X-Slack-Signature"
    timestamp_header: str = "X-Slack-Request-Timestamp"

    def __post_init__(self) -> None:
        _require_secret(self.name, "signing_secret", self.signing_secret)
        _require_tolerance(self.name, self.tolerance)

    @property
    def name(self) -> str:
        return "slack"

    def verify(self, ctx: VerificationContext) -> VerifyResult:
        signature = ctx.header(self.signature_header)
        timestamp = ctx.header(self.timestamp_header)
        if not signature or not timestamp:
            return _MISSING

        reason = check_timestamp(timestamp, self.tolerance)
        if reason is not None:
            return VerifyResult.fail(reason)

        received_hex = parse_signature_header(signature, "v0=")
        if received_hex is None:
            return _INVALID

        sig_basestring = _wire_bytes(f"v0:{timestamp}:") + ctx.raw_body
        expected = compute_hmac(HashAlgorithm.SHA256, self.signing_secret, sig_basestring)
        if _matches(expected, from_hex(received_hex)):
            return _VALID
        return _INVALID


@dataclass(frozen=True)
class ShopifyWebhookProvider(WebhookProvider):
    """Shopify webhook signature verification.

    Shopify sends: X-Shopify-Hmac-Sha256: <base64 signature>
    """

    secret: str = field(repr=False)
    """App client secret."""

    signature_header: str = "X-Shopify-Hmac-Sha256"

    def __post_init__(self) -> None:
        _require_secret(self.name, "secret", self.secret)

    @property
    def name(self) -> str:
        return "shopify"

    def verify(self, ctx: VerificationContext) -> VerifyResult:
        header = ctx.header(self.signature_header)
        if not header:
            return _MISSING

        expected = compute_hmac(HashAlgorithm.SHA256, self.secret, ctx.raw_body)
        if _matches(expected, from_base64(header)):
            return _VALID
        return _INVALID


@dataclass(frozen=True)
class TwilioWebhookProvider(WebhookProvider):
    """Twilio webhook signature verification.

    Twilio sends: X-Twilio-Signature: <base64 signature>

    The signed string is the full request URL followed by every POST
    parameter's name and value, ordered by name. HMAC-SHA1.
    """

    auth_token: str = field(repr=False)
    """Twilio account auth token."""

    signature_header: str = "X-Twilio-Signature"

    def __post_init__(self) -> None:
        _require_secret(self.name, "auth_token", self.auth_token)

    @property
    def name(self) -> str:
        return "twilio"

    def verify(self, ctx: VerificationContext) -> VerifyResult:
        signature = ctx.header(self.signature_header)
        if not signature:
            return _MISSING

        # Without the URL the signed string cannot be rebuilt.
        if not ctx.url:
            return _INVALID

        expected = compute_hmac(
            HashAlgorithm.SHA1,
            self.auth_token,
            build_twilio_payload(ctx.url, ctx.raw_body),
        )
        if _matches(expected, from_base64(signature)):
            return _VALID
        return _INVALID


def build_twilio_payload(url: str, body: bytes) -> str:
    """Rebuild the string Twilio signs for a form-encoded POST.

    Parameters are sorted by name in UTF-16 code unit order, which differs
    from code point order for astral characters. The sort is stable so
    repeated names keep their order from the body.
    """
    text = body.decode("utf-8", errors="replace")
    if text.startswith("?"):
        text = text[1:]
    params = parse_qsl(text, keep_blank_values=True)
    params.sort(key=lambda pair: pair[0].encode("utf-16-be", "surrogatepass"))
    return url + "".join(key + value for key, value in params)


@dataclass(frozen=True)
class LineWebhookProvider(WebhookProvider):
    """LINE Messaging API webhook signature verification.

    LINE sends: X-Line-Signature: <base64 signature>
    """

    channel_secret: str = field(repr=False)
    """Channel secret from the LINE developers console."""

    signature_header: str = "X-Line-Signature"

    def __post_init__(self) -> None:
        _require_secret(self.name, "channel_secret", self.channel_secret)

    @property
    def name(self) -> str:
        return "line"

    def verify(self, ctx: VerificationContext) -> VerifyResult:
        header = ctx.header(self.signature_header)
        if not header:
            return _MISSING

        expected = compute_hmac(HashAlgorithm.SHA256, self.channel_secret, ctx.raw_body)
        if _matches(expected, from_base64(header)):
            return _VALID
        return _INVALID


@dataclass(frozen=True)
class DiscordWebhookProvider(WebhookProvider):
    """Discord interaction signature verification.

    Discord sends:
    - X-Signature-Ed25519: <hex signature>
    - X-Signature-Timestamp: <timestamp>

    Uses Ed25519 over timestamp + body (not HMAC). The public key is loaded
    once at construction and shared by every verify call.
    """

    public_key: str
    """Discord application public key (64 hex characters)."""

    tolerance: int | None = None
    """Optional timestamp tolerance in seconds. None skips the check."""

    signature_header: str = "X-Signature-Ed25519"
    timestamp_header: str = "X-Signature-Timestamp"

    _key: Ed25519PublicKey = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        raw_key = from_hex(self.public_key) if isinstance(self.public_key, str) else None
        if raw_key is None:
            raise ConfigurationError("discord: public_key must be a valid hex string")
        if len(raw_key) != ED25519_PUBLIC_KEY_LENGTH:
            raise ConfigurationError(
                "discord: public_key must be 32 bytes (64 hex characters)"
            )
        _require_tolerance(self.name, self.tolerance)
        object.__setattr__(self, "_key", Ed25519PublicKey.from_public_bytes(raw_key))

    @property
    def name(self) -> str:
        return "discord"

    def verify(self, ctx: VerificationContext) -> VerifyResult:
        signature = ctx.header(self.signature_header)
        timestamp = ctx.header(self.timestamp_header)
        if not signature or not timestamp:
            return _MISSING

        if self.tolerance is not None:
            reason = check_timestamp(timestamp, self.tolerance)
            if reason is not None:
                return VerifyResult.fail(reason)

        signature_bytes = from_hex(signature)
        if signature_bytes is None:
            return _INVALID

        message = _wire_bytes(timestamp) + ctx.raw_body
        try:
            self._key.verify(signature_bytes, message)
        except (InvalidSignature, ValueError, TypeError):
            return _INVALID
        return _VALID


@dataclass(frozen=True)
class StandardWebhooksProvider(WebhookProvider):
    """Standard Webhooks (standardwebhooks.com) signature verification.

    Senders include:
    - webhook-id: <message id>
    - webhook-timestamp: <timestamp>
    - webhook-signature: v1,<base64> [v1,<base64> ...]

    Signature is HMAC-SHA256 over {id}.{timestamp}.{body} keyed with the
    base64-decoded secret. Multiple space-separated signatures support key
    rotation.
    """

    secret: str = field(repr=False)
    """Base64 signing secret, optionally prefixed with whsec_."""

    tolerance: int = DEFAULT_TOLERANCE

    _key: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        _require_secret(self.name, "secret", self.secret)
        _require_tolerance(self.name, self.tolerance)

        encoded = self.secret.removeprefix("whsec_")
        key = from_base64(encoded)
        if not key:
            raise ConfigurationError(
                "standard-webhooks: secret must be valid base64 (with optional whsec_ prefix)"
            )
        object.__setattr__(self, "_key", key)

    @property
    def name(self) -> str:
        return "standard-webhooks"

    def verify(self, ctx: VerificationContext) -> VerifyResult:
        msg_id = ctx.header("webhook-id")
        timestamp = ctx.header("webhook-timestamp")
        signature_header = ctx.header("webhook-signature")
        if not msg_id or not timestamp or not signature_header:
            return _MISSING

        reason = check_timestamp(timestamp, self.tolerance)
        if reason is not None:
            return VerifyResult.fail(reason)

        signed_content = _wire_bytes(f"{msg_id}.{timestamp}.") + ctx.raw_body
        expected = compute_hmac(HashAlgorithm.SHA256, self._key, signed_content)

        for token in signature_header.split(" "):
            version, sep, encoded = token.partition(",")
            if version != "v1" or not sep:
                continue
            if _matches(expected, from_base64(encoded)):
                return _VALID
        return _INVALID


@dataclass(frozen=True)
class CallableWebhookProvider(WebhookProvider):
    """Provider backed by a plain verify function."""

    provider_name: str
    verify_fn: Callable[[VerificationContext], VerifyResult] = field(repr=False)

    def __post_init__(self) -> None:
        if not self.provider_name:
            raise ConfigurationError("custom provider name must not be empty")

    @property
    def name(self) -> str:
        return self.provider_name

    def verify(self, ctx: VerificationContext) -> VerifyResult:
        return self.verify_fn(ctx)


def define_provider(
    name: str,
    verify: Callable[[VerificationContext], VerifyResult],
) -> WebhookProvider:
    """Wrap a verify function as a provider usable anywhere a built-in one is.

    Example:
        def verify(ctx):
            token = ctx.header("X-Token")
            if not token:
                return VerifyResult.fail(FailureReason.MISSING_SIGNATURE)
            ...

        provider = define_provider("internal", verify)
    """
    return CallableWebhookProvider(provider_name=name, verify_fn=verify)


# Provider registry
WEBHOOK_PROVIDERS: dict[str, type[WebhookProvider]] = {
    "stripe": StripeWebhookProvider,
    "github": GitHubWebhookProvider,
    "slack": SlackWebhookProvider,
    "shopify": ShopifyWebhookProvider,
    "twilio": TwilioWebhookProvider,
    "line": LineWebhookProvider,
    "discord": DiscordWebhookProvider,
    "standard-webhooks": StandardWebhooksProvider,
}


def get_provider(
    provider_name: str,
    **kwargs: Any,
) -> WebhookProvider:
    """Get a webhook provider by name.

    Args:
        provider_name: Name of the provider.
        **kwargs: Provider-specific configuration.

    Returns:
        Configured WebhookProvider instance.

    Raises:
        ConfigurationError: If the provider is unknown or misconfigured.
    """
    provider_class = WEBHOOK_PROVIDERS.get(provider_name.lower())
    if not provider_class:
        raise ConfigurationError(f"Unknown webhook provider: {provider_name}")
    try:
        provider = provider_class(**kwargs)
    except TypeError as e:
        raise ConfigurationError(f"{provider_name}: {e}") from e
    logger.debug("Webhook provider created", provider=provider.name)
    return provider

"""Hookverify Webhook Verification Module.

Provides secure webhook signature verification for popular services
with constant-time comparison to prevent timing attacks.

Supported Providers:
- Stripe: Stripe-Signature with timestamp validation
- GitHub: X-Hub-Signature-256 with HMAC-SHA256
- Slack: X-Slack-Signature with timestamp validation
- Shopify: X-Shopify-Hmac-Sha256 with HMAC-SHA256
- Twilio: X-Twilio-Signature with HMAC-SHA1
- LINE: X-Line-Signature with HMAC-SHA256
- Discord: X-Signature-Ed25519 with Ed25519 verification
- Standard Webhooks: webhook-signature with key rotation
- Custom: any WebhookProvider subclass or define_provider()

Security Features:
- Constant-time signature comparison
- Timestamp validation (replay attack prevention)
- Key material validated when a provider is created
- Verification never raises on request content

Usage:
    from hookverify.webhooks import GitHubWebhookProvider, VerificationContext

    # Create provider with your secret
    provider = GitHubWebhookProvider(secret="your-webhook-secret")

    # Verify incoming webhook
    result = provider.verify(
        VerificationContext(raw_body=body, headers=request.headers)
    )

    if result.valid:
        print("Webhook verified!")
    else:
        print(f"Verification failed: {result.reason.value}")

Configuration example:
    from hookverify.webhooks import detect_provider, get_provider

    # Get provider by name
    github = get_provider("github", secret="secret")
    stripe = get_provider("stripe", secret="whsec_...")

    # Or guess it from the headers first
    name = detect_provider(request.headers)
"""

from hookverify.webhooks.crypto import (
    HashAlgorithm,
    compute_hmac,
    from_base64,
    from_hex,
    timing_safe_equal,
    to_base64,
    to_hex,
)
from hookverify.webhooks.detect import MARKER_HEADERS, ProviderName, detect_provider
from hookverify.webhooks.errors import (
    ConfigurationError,
    WebhookVerifyError,
    body_read_failed,
    error_for_result,
    invalid_signature,
    missing_signature,
    timestamp_expired,
)
from hookverify.webhooks.middleware import problem_response, webhook_middleware
from hookverify.webhooks.providers import (
    WEBHOOK_PROVIDERS,
    CallableWebhookProvider,
    DiscordWebhookProvider,
    GitHubWebhookProvider,
    LineWebhookProvider,
    ShopifyWebhookProvider,
    SlackWebhookProvider,
    StandardWebhooksProvider,
    StripeWebhookProvider,
    TwilioWebhookProvider,
    define_provider,
    get_provider,
)
from hookverify.webhooks.verifier import (
    FailureReason,
    VerificationContext,
    VerifyResult,
    WebhookProvider,
    check_timestamp,
)

__all__ = [
    # Core types
    "VerificationContext",
    "VerifyResult",
    "FailureReason",
    "WebhookProvider",
    "check_timestamp",
    # Providers
    "StripeWebhookProvider",
    "GitHubWebhookProvider",
    "SlackWebhookProvider",
    "ShopifyWebhookProvider",
    "TwilioWebhookProvider",
    "LineWebhookProvider",
    "DiscordWebhookProvider",
    "StandardWebhooksProvider",
    "CallableWebhookProvider",
    "define_provider",
    # Registry and detection
    "WEBHOOK_PROVIDERS",
    "get_provider",
    "MARKER_HEADERS",
    "ProviderName",
    "detect_provider",
    # Errors
    "ConfigurationError",
    "WebhookVerifyError",
    "missing_signature",
    "invalid_signature",
    "timestamp_expired",
    "body_read_failed",
    "error_for_result",
    # HTTP glue
    "webhook_middleware",
    "problem_response",
    # Primitives
    "HashAlgorithm",
    "compute_hmac",
    "timing_safe_equal",
    "to_hex",
    "from_hex",
    "to_base64",
    "from_base64",
]

"""Guess the webhook sender from its marker header.

Detection is a convenience for routing a shared endpoint; it proves
nothing. Always verify with the chosen provider afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from multidict import CIMultiDict, CIMultiDictProxy

ProviderName = Literal[
    "stripe",
    "github",
    "slack",
    "shopify",
    "twilio",
    "line",
    "discord",
    "standard-webhooks",
]

# Checked in order; the first present header wins.
MARKER_HEADERS: tuple[tuple[ProviderName, str], ...] = (
    ("stripe", "Stripe-Signature"),
    ("github", "X-Hub-Signature-256"),
    ("slack", "X-Slack-Signature"),
    ("shopify", "X-Shopify-Hmac-Sha256"),
    ("twilio", "X-Twilio-Signature"),
    ("line", "X-Line-Signature"),
    ("discord", "X-Signature-Ed25519"),
    ("standard-webhooks", "webhook-signature"),
)


def detect_provider(headers: Mapping[str, str]) -> ProviderName | None:
    """Return the provider whose marker header is present, or None."""
    lookup = headers
    if not isinstance(headers, (CIMultiDict, CIMultiDictProxy)):
        lookup = CIMultiDict(headers)
    for name, header in MARKER_HEADERS:
        if header in lookup:
            return name
    return None

"""Errors raised and reported by the webhook verification engine.

Two kinds exist:
- ConfigurationError: raised at provider construction for unusable key
  material. Never raised while verifying a request.
- WebhookVerifyError: an RFC 7807 problem document describing why a
  request was rejected, built from a failed VerifyResult.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from hookverify.webhooks.verifier import FailureReason, VerifyResult

ERROR_BASE_URL = "https://hookverify.dev/errors"


class ConfigurationError(ValueError):
    """Provider configured with a missing, empty or malformed secret."""


@dataclass(frozen=True)
class WebhookVerifyError:
    """Problem details for a rejected webhook."""

    type: str
    title: str
    status: int
    detail: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def missing_signature(detail: str) -> WebhookVerifyError:
    return WebhookVerifyError(
        type=f"{ERROR_BASE_URL}/missing-signature",
        title="Missing webhook signature",
        status=401,
        detail=detail,
    )


def invalid_signature(detail: str) -> WebhookVerifyError:
    return WebhookVerifyError(
        type=f"{ERROR_BASE_URL}/invalid-signature",
        title="Webhook signature verification failed",
        status=401,
        detail=detail,
    )


def timestamp_expired(detail: str) -> WebhookVerifyError:
    return WebhookVerifyError(
        type=f"{ERROR_BASE_URL}/timestamp-expired",
        title="Webhook timestamp expired",
        status=401,
        detail=detail,
    )


def body_read_failed(detail: str) -> WebhookVerifyError:
    return WebhookVerifyError(
        type=f"{ERROR_BASE_URL}/body-read-failed",
        title="Failed to read request body",
        status=400,
        detail=detail,
    )


_ERRORS_BY_REASON = {
    FailureReason.MISSING_SIGNATURE: missing_signature,
    FailureReason.INVALID_SIGNATURE: invalid_signature,
    FailureReason.TIMESTAMP_EXPIRED: timestamp_expired,
}


def error_for_result(result: VerifyResult) -> WebhookVerifyError:
    """Map a failed verification result to its problem document.

    A result without a reason is treated as an invalid signature.
    """
    reason = result.reason or FailureReason.INVALID_SIGNATURE
    return _ERRORS_BY_REASON[reason](reason.value)

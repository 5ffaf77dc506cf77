"""Hookverify Webhook Verification Core.

Shared vocabulary for all webhook providers: the per-request verification
context, the verification result and its failure reasons, and the provider
base class.

Security Features:
- Failure reasons are returned as data, never raised on request content
- Case-insensitive header lookup over the raw request headers
- Shared timestamp tolerance check (replay attack prevention)

Usage:
    from hookverify.webhooks import VerificationContext

    ctx = VerificationContext(raw_body=body, headers=request.headers)
    result = provider.verify(ctx)
    if not result.valid:
        print(f"Rejected: {result.reason.value}")
"""

from __future__ import annotations

import math
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from multidict import CIMultiDict, CIMultiDictProxy

if TYPE_CHECKING:
    from aiohttp import web

HeadersInput = Mapping[str, str] | Iterable[tuple[str, str]]

# ASCII decimal or exponent form only; float() alone also takes "1_000" and
# non-ASCII digits.
TIMESTAMP_PATTERN = re.compile(r"\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*", re.ASCII)


class FailureReason(Enum):
    """Why a webhook failed verification."""

    MISSING_SIGNATURE = "missing-signature"
    INVALID_SIGNATURE = "invalid-signature"
    TIMESTAMP_EXPIRED = "timestamp-expired"


@dataclass(frozen=True)
class VerifyResult:
    """Result of webhook signature verification."""

    valid: bool
    """Whether the signature is valid."""

    reason: FailureReason | None = None
    """Failure reason, set only when valid is False."""

    def __post_init__(self) -> None:
        if self.valid and self.reason is not None:
            raise ValueError("A valid result cannot carry a failure reason")

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.valid

    @classmethod
    def ok(cls) -> VerifyResult:
        return _VALID

    @classmethod
    def fail(cls, reason: FailureReason) -> VerifyResult:
        return _FAILURES[reason]


_VALID = VerifyResult(valid=True)
_FAILURES = {reason: VerifyResult(valid=False, reason=reason) for reason in FailureReason}


def _freeze_headers(headers: HeadersInput) -> CIMultiDictProxy[str]:
    if isinstance(headers, CIMultiDictProxy):
        return headers
    items = headers.items() if isinstance(headers, Mapping) else headers
    return CIMultiDictProxy(CIMultiDict(items))


@dataclass(frozen=True)
class VerificationContext:
    """Everything a provider needs to verify one inbound delivery.

    The body must be the literal bytes received; signatures cover those
    bytes and any re-serialization breaks them.
    """

    raw_body: bytes
    """Exact request body bytes."""

    headers: CIMultiDictProxy[str] = field(default_factory=lambda: _freeze_headers({}))
    """Case-insensitive request headers."""

    url: str | None = None
    """Full request URL. Only Twilio signs it."""

    def __post_init__(self) -> None:
        if isinstance(self.raw_body, str):
            object.__setattr__(self, "raw_body", self.raw_body.encode("utf-8"))
        object.__setattr__(self, "headers", _freeze_headers(self.headers))

    def header(self, name: str) -> str | None:
        """Return a header value, joining repeated headers with ", "."""
        values = self.headers.getall(name, None)
        if values is None:
            return None
        return ", ".join(values)

    @classmethod
    def from_request(cls, request: web.Request, body: bytes) -> VerificationContext:
        """Build a context from an aiohttp request and its already-read body."""
        return cls(raw_body=body, headers=request.headers, url=str(request.url))


class WebhookProvider(ABC):
    """Base class for webhook providers.

    Each provider implements its specific signature verification logic.
    Implementations must not raise on request content.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        ...

    @abstractmethod
    def verify(self, ctx: VerificationContext) -> VerifyResult:
        """Verify webhook signature.

        Args:
            ctx: The inbound delivery.

        Returns:
            VerifyResult with the outcome.
        """
        ...


def check_timestamp(timestamp: str, tolerance: int) -> FailureReason | None:
    """Validate a signed Unix timestamp against the current time.

    A value that is not a finite positive number cannot be trusted and is
    reported as a missing signature. A well-formed value more than
    ``tolerance`` seconds away from now is expired; the boundary passes.

    Returns:
        None if the timestamp is acceptable, else the failure reason.
    """
    if not TIMESTAMP_PATTERN.fullmatch(timestamp):
        return FailureReason.MISSING_SIGNATURE
    ts = float(timestamp)
    if not math.isfinite(ts) or ts <= 0:
        return FailureReason.MISSING_SIGNATURE

    now = int(time.time())
    if abs(now - ts) > tolerance:
        return FailureReason.TIMESTAMP_EXPIRED
    return None


def parse_signature_header(header_value: str, prefix: str) -> str | None:
    """Strip a required scheme prefix such as ``sha256=``.

    Returns:
        The remainder, or None if the prefix is absent.
    """
    if not header_value.startswith(prefix):
        return None
    return header_value[len(prefix) :]


def parse_stripe_signature(header_value: str) -> dict[str, list[str]]:
    """Parse a ``t=...,v1=...,v1=...`` header into repeated key/value lists.

    Parts without ``=`` are skipped; keys and values are trimmed.
    """
    pairs: dict[str, list[str]] = {}
    for part in header_value.split(","):
        key, sep, value = part.partition("=")
        if not sep:
            continue
        pairs.setdefault(key.strip(), []).append(value.strip())
    return pairs


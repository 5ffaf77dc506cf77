"""aiohttp middleware that rejects unverified webhook deliveries.

Usage:
    from aiohttp import web
    from hookverify.webhooks import GitHubWebhookProvider, webhook_middleware

    provider = GitHubWebhookProvider(secret="...")
    app = web.Application(middlewares=[webhook_middleware(provider)])

    async def handle(request: web.Request) -> web.Response:
        payload = request["webhook_payload"]
        ...
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Iterable

import structlog
from aiohttp import web

from hookverify.webhooks.errors import WebhookVerifyError, body_read_failed, error_for_result
from hookverify.webhooks.verifier import VerificationContext, WebhookProvider

logger = structlog.get_logger()

PROBLEM_CONTENT_TYPE = "application/problem+json"

ErrorHandler = Callable[[WebhookVerifyError, web.Request], Awaitable[web.StreamResponse]]
Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def problem_response(error: WebhookVerifyError) -> web.Response:
    """Render a problem document as an aiohttp response."""
    return web.json_response(
        error.to_dict(),
        status=error.status,
        content_type=PROBLEM_CONTENT_TYPE,
    )


def webhook_middleware(
    provider: WebhookProvider,
    on_error: ErrorHandler | None = None,
    paths: Iterable[str] | None = None,
):
    """Create a middleware verifying requests against one provider.

    Args:
        provider: Provider used to verify every request.
        on_error: Optional coroutine building the rejection response.
        paths: If given, only requests to these paths are verified.

    On success the handler finds ``webhook_raw_body``, ``webhook_provider``
    and ``webhook_payload`` (parsed JSON, or None) on the request.
    """
    only_paths = frozenset(paths) if paths is not None else None

    async def reject(error: WebhookVerifyError, request: web.Request) -> web.StreamResponse:
        if on_error is not None:
            return await on_error(error, request)
        return problem_response(error)

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        if only_paths is not None and request.path not in only_paths:
            return await handler(request)

        try:
            body = await request.read()
        except (OSError, web.HTTPException) as e:
            logger.warning(
                "Failed to read webhook body",
                provider=provider.name,
                path=request.path,
                error=str(e),
            )
            return await reject(body_read_failed("Could not read the request body"), request)

        result = provider.verify(VerificationContext.from_request(request, body))
        if not result.valid:
            error = error_for_result(result)
            logger.warning(
                "Webhook rejected",
                provider=provider.name,
                reason=result.reason.value if result.reason else None,
                path=request.path,
            )
            return await reject(error, request)

        logger.debug("Webhook verified", provider=provider.name, path=request.path)
        request["webhook_raw_body"] = body
        request["webhook_provider"] = provider.name
        try:
            request["webhook_payload"] = json.loads(body)
        except ValueError:
            request["webhook_payload"] = None

        return await handler(request)

    return middleware

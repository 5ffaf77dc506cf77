"""Tests for the aiohttp webhook middleware."""

from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer
from helpers import (
    GITHUB_SECRET,
    JSON_BODY,
    TWILIO_TOKEN,
    discord_keypair,
    github_headers,
    now,
    slack_headers,
    twilio_signature,
)

from hookverify.webhooks import (
    DiscordWebhookProvider,
    GitHubWebhookProvider,
    SlackWebhookProvider,
    TwilioWebhookProvider,
    webhook_middleware,
)
from hookverify.webhooks.middleware import PROBLEM_CONTENT_TYPE


async def echo(request: web.Request) -> web.Response:
    return web.json_response(
        {
            "provider": request["webhook_provider"],
            "payload": request["webhook_payload"],
            "raw": request["webhook_raw_body"].decode(),
        }
    )


def make_app(middleware) -> web.Application:
    app = web.Application(middlewares=[middleware])
    app.router.add_post("/hook", echo)
    app.router.add_get("/health", health)
    return app


async def health(request: web.Request) -> web.Response:
    return web.Response(text="ok")


class TestWebhookMiddleware:
    """Tests for webhook_middleware."""

    @pytest.mark.asyncio
    async def test_valid_request_reaches_handler(self):
        app = make_app(webhook_middleware(GitHubWebhookProvider(secret=GITHUB_SECRET)))
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/hook", data=JSON_BODY, headers=github_headers(JSON_BODY))
            assert resp.status == 200
            data = await resp.json()
            assert data["provider"] == "github"
            assert data["payload"] == {"action": "opened", "number": 1}
            assert data["raw"] == JSON_BODY.decode()

    @pytest.mark.asyncio
    async def test_non_json_body_payload_is_none(self):
        body = b"not json"
        app = make_app(webhook_middleware(GitHubWebhookProvider(secret=GITHUB_SECRET)))
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/hook", data=body, headers=github_headers(body))
            assert resp.status == 200
            assert (await resp.json())["payload"] is None

    @pytest.mark.asyncio
    async def test_missing_signature_problem(self):
        app = make_app(webhook_middleware(GitHubWebhookProvider(secret=GITHUB_SECRET)))
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/hook", data=JSON_BODY)
            assert resp.status == 401
            assert resp.content_type == PROBLEM_CONTENT_TYPE
            problem = await resp.json(content_type=None)
            assert problem["type"].endswith("/missing-signature")
            assert problem["title"] == "Missing webhook signature"
            assert problem["status"] == 401

    @pytest.mark.asyncio
    async def test_invalid_signature_problem(self):
        app = make_app(webhook_middleware(GitHubWebhookProvider(secret=GITHUB_SECRET)))
        headers = github_headers(JSON_BODY, secret="wrong")
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/hook", data=JSON_BODY, headers=headers)
            assert resp.status == 401
            problem = await resp.json(content_type=None)
            assert problem["type"].endswith("/invalid-signature")

    @pytest.mark.asyncio
    async def test_expired_timestamp_problem(self):
        provider = SlackWebhookProvider(signing_secret="slack_signing_secret")
        headers = slack_headers(JSON_BODY, timestamp=now() - 600)
        app = make_app(webhook_middleware(provider))
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/hook", data=JSON_BODY, headers=headers)
            assert resp.status == 401
            problem = await resp.json(content_type=None)
            assert problem["type"].endswith("/timestamp-expired")

    @pytest.mark.asyncio
    async def test_custom_error_handler(self):
        seen = []

        async def on_error(error, request):
            seen.append(error)
            return web.json_response({"rejected": error.detail}, status=403)

        provider = GitHubWebhookProvider(secret=GITHUB_SECRET)
        app = make_app(webhook_middleware(provider, on_error=on_error))
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/hook", data=JSON_BODY)
            assert resp.status == 403
            assert await resp.json() == {"rejected": "missing-signature"}
            assert seen[0].status == 401

    @pytest.mark.asyncio
    async def test_paths_limit_verification(self):
        provider = GitHubWebhookProvider(secret=GITHUB_SECRET)
        app = make_app(webhook_middleware(provider, paths=["/hook"]))
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/health")
            assert resp.status == 200
            resp = await client.post("/hook", data=JSON_BODY)
            assert resp.status == 401

    @pytest.mark.asyncio
    async def test_twilio_uses_request_url(self):
        params = [("Body", "Hello"), ("From", "+15551234567")]
        provider = TwilioWebhookProvider(auth_token=TWILIO_TOKEN)
        app = make_app(webhook_middleware(provider))
        async with TestClient(TestServer(app)) as client:
            url = str(client.make_url("/hook"))
            headers = {
                "X-Twilio-Signature": twilio_signature(params, url=url),
                "Content-Type": "application/x-www-form-urlencoded",
            }
            resp = await client.post("/hook", data="Body=Hello&From=%2B15551234567", headers=headers)
            assert resp.status == 200
            assert (await resp.json())["provider"] == "twilio"

    @pytest.mark.asyncio
    async def test_undecodable_header_bytes_rejected(self):
        """Test a non-UTF-8 header byte yields a problem document, not a 500."""
        _, public_hex = discord_keypair()
        app = make_app(webhook_middleware(DiscordWebhookProvider(public_key=public_hex)))
        async with TestServer(app) as server:
            reader, writer = await asyncio.open_connection(server.host, server.port)
            writer.write(
                b"POST /hook HTTP/1.1\r\n"
                b"Host: localhost\r\n"
                b"X-Signature-Ed25519: " + b"ab" * 64 + b"\r\n"
                b"X-Signature-Timestamp: 12\xff\r\n"
                b"Content-Length: 2\r\n"
                b"Connection: close\r\n"
                b"\r\n"
                b"{}"
            )
            await writer.drain()
            response = await reader.read()
            writer.close()
            await writer.wait_closed()

        assert response.startswith(b"HTTP/1.1 401")
        assert PROBLEM_CONTENT_TYPE.encode() in response
        assert b"invalid-signature" in response

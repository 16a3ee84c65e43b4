"""Tests for the httpx-backed GET transports."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from remotecache.client import AsyncHttpxTransport, HttpxTransport, TransportOutcome
from remotecache.client.sync_client import request_kwargs
from remotecache.models import RequestConfig


URL = "https://api.example.com/items"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _transport(handler) -> HttpxTransport:
    return HttpxTransport(RequestConfig(), transport=httpx.MockTransport(handler))


def _broken_gzip(request: httpx.Request) -> httpx.Response:
    """200 response whose gzip body fails to decode while it is read."""
    return httpx.Response(
        200,
        headers={"Content-Encoding": "gzip"},
        stream=httpx.ByteStream(b"definitely not gzip"),
    )


# ---------------------------------------------------------------------------
# request_kwargs
# ---------------------------------------------------------------------------


class TestRequestKwargs:
    def test_supported_options_pass_through(self) -> None:
        kwargs = request_kwargs({"timeout": 5, "headers": {"X-A": "1"}, "follow_redirects": False})
        assert kwargs == {"timeout": 5, "headers": {"X-A": "1"}, "follow_redirects": False}

    def test_unknown_options_dropped(self) -> None:
        assert request_kwargs({"timeout": 5, "sslverify": False, "blocking": True}) == {"timeout": 5}


# ---------------------------------------------------------------------------
# HttpxTransport
# ---------------------------------------------------------------------------


class TestContextManager:
    def test_enter_creates_client(self) -> None:
        transport = _transport(lambda request: httpx.Response(200))
        assert transport._client is None
        with transport:
            assert transport._client is not None
        assert transport._client is None

    def test_close_is_idempotent(self) -> None:
        transport = _transport(lambda request: httpx.Response(200))
        transport.close()
        transport.close()


class TestFetchGet:
    def test_success_outcome(self) -> None:
        with _transport(lambda request: httpx.Response(200, json={"id": 1})) as transport:
            outcome = transport.fetch_get(URL, {"timeout": 60})
        assert outcome.status_code == 200
        assert outcome.reason == "OK"
        assert json.loads(outcome.body) == {"id": 1}
        assert outcome.transport_error is None
        assert outcome.body_error is None

    def test_sends_get_with_default_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        with _transport(handler) as transport:
            transport.fetch_get(URL, {"headers": {"X-Trace": "abc"}})

        assert seen[0].method == "GET"
        assert str(seen[0].url) == URL
        assert seen[0].headers["Accept"] == "application/json"
        assert seen[0].headers["User-Agent"].startswith("remotecache/")
        assert seen[0].headers["X-Trace"] == "abc"

    def test_timeout_option_applied_per_request(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        with _transport(handler) as transport:
            transport.fetch_get(URL, {"timeout": 7})

        assert seen[0].extensions["timeout"]["read"] == 7

    def test_non_200_is_reported_not_raised(self) -> None:
        with _transport(lambda request: httpx.Response(404, text="missing")) as transport:
            outcome = transport.fetch_get(URL, {})
        assert outcome.status_code == 404
        assert outcome.status_line == "HTTP 404 Not Found"
        assert outcome.text == "missing"

    def test_connection_failure_sets_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _transport(handler) as transport:
            outcome = transport.fetch_get(URL, {})
        assert outcome.transport_error == "connection refused"
        assert outcome.status_code == 0
        assert outcome.body == b""

    def test_timeout_sets_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with _transport(handler) as transport:
            outcome = transport.fetch_get(URL, {})
        assert outcome.transport_error == "timed out"

    def test_undecodable_body_sets_body_error(self) -> None:
        with _transport(_broken_gzip) as transport:
            outcome = transport.fetch_get(URL, {})
        assert outcome.status_code == 200
        assert outcome.transport_error is None
        assert outcome.body_error

    @pytest.mark.parametrize("options", [{"headers": 5}, {"cookies": 7}])
    def test_malformed_option_sets_transport_error(self, options: dict) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        with _transport(handler) as transport:
            outcome = transport.fetch_get(URL, options)
        assert outcome.transport_error.startswith("Invalid transport options")
        assert outcome.status_code == 0
        assert calls == []

    def test_follow_redirects_option_applied_per_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/items":
                return httpx.Response(302, headers={"Location": "/moved"})
            return httpx.Response(200, json={"moved": True})

        with _transport(handler) as transport:
            assert transport.fetch_get(URL, {"follow_redirects": False}).status_code == 302
            assert transport.fetch_get(URL, {"follow_redirects": True}).status_code == 200


# ---------------------------------------------------------------------------
# AsyncHttpxTransport
# ---------------------------------------------------------------------------


class TestAsyncTransport:
    def _run(self, handler, options=None) -> TransportOutcome:
        async def go() -> TransportOutcome:
            async with AsyncHttpxTransport(transport=httpx.MockTransport(handler)) as transport:
                return await transport.fetch_get(URL, options or {})

        return asyncio.run(go())

    def test_success_outcome(self) -> None:
        outcome = self._run(lambda request: httpx.Response(200, json={"ok": True}))
        assert outcome.status_code == 200
        assert outcome.body_error is None

    def test_connection_failure_sets_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        assert self._run(handler).transport_error == "unreachable"

    def test_undecodable_body_sets_body_error(self) -> None:
        outcome = self._run(_broken_gzip)
        assert outcome.status_code == 200
        assert outcome.body_error

    @pytest.mark.parametrize("options", [{"headers": 5}, {"cookies": 7}])
    def test_malformed_option_sets_transport_error(self, options: dict) -> None:
        outcome = self._run(lambda request: httpx.Response(200), options)
        assert outcome.transport_error.startswith("Invalid transport options")
        assert outcome.status_code == 0

    def test_aclose_releases_client(self) -> None:
        transport = AsyncHttpxTransport(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        async def go() -> None:
            await transport.fetch_get(URL, {})
            assert transport.is_open
            await transport.aclose()

        asyncio.run(go())
        assert transport.is_open is False
        assert transport._client is None


@pytest.mark.parametrize("status", [201, 204, 301, 500])
def test_status_code_preserved(status: int) -> None:
    with _transport(lambda request: httpx.Response(status)) as transport:
        assert transport.fetch_get(URL, {}).status_code == status

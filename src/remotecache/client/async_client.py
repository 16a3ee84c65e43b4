"""Asynchronous GET transport over :class:`httpx.AsyncClient`.

Mirrors :class:`~remotecache.client.sync_client.HttpxTransport` for
callers running inside an event loop; used by
:meth:`~remotecache.requester.RemoteRequester.afetch`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from remotecache.client.outcome import TransportOutcome
from remotecache.client.sync_client import (
    DEFAULT_HEADERS,
    build_get,
    failed_outcome,
    response_outcome,
)
from remotecache.models import RequestConfig

logger = logging.getLogger(__name__)


class AsyncHttpxTransport:
    """Non-blocking transport for GET requests.

    Can be used as an async context manager; otherwise the client is created
    on first use and released by :meth:`aclose`.

    Args:
        config: Client-level settings (SSL verification, redirects,
            default timeout).
        transport: Optional :class:`httpx.AsyncBaseTransport`, e.g. an
            :class:`httpx.MockTransport` in tests.

    Example::

        async with AsyncHttpxTransport() as transport:
            outcome = await transport.fetch_get("https://api.example.com/items", {})
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> AsyncHttpxTransport:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    @property
    def is_open(self) -> bool:
        """True while an :class:`httpx.AsyncClient` is held."""
        return self._client is not None

    async def aclose(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        client, self._client = self._client, None
        if client is not None:
            logger.debug("Closing async HTTP client")
            await client.aclose()

    async def fetch_get(self, url: str, options: Mapping[str, Any]) -> TransportOutcome:
        """Send one GET to *url* and report the outcome."""
        client = self._ensure_client()
        try:
            request, send_kwargs = build_get(client, url, options)
            response = await client.send(request, stream=True, **send_kwargs)
        except (TypeError, ValueError, httpx.HTTPError, httpx.InvalidURL) as exc:
            return failed_outcome(url, exc)

        try:
            outcome = response_outcome(response)
            try:
                outcome.body = await response.aread()
            except httpx.DecodingError as exc:
                outcome.body_error = str(exc) or type(exc).__name__
            except httpx.HTTPError as exc:
                return failed_outcome(url, exc)
            return outcome
        finally:
            await response.aclose()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=DEFAULT_HEADERS,
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                follow_redirects=self._config.follow_redirects,
                transport=self._transport,
            )
        return self._client

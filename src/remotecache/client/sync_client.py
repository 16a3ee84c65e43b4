"""Synchronous GET transport over :class:`httpx.Client`.

:class:`HttpxTransport` is the default transport used by
:class:`~remotecache.requester.RemoteRequester`.  It sends a single GET per
call and never raises for network or HTTP failures; everything is reported
through a :class:`~remotecache.client.outcome.TransportOutcome`:

- **Network failures** (DNS, connect, timeout, unsupported scheme, invalid
  URL) set ``transport_error``.  So do transport option values httpx
  rejects while building the request (``headers=5``).
- **Body failures** (content-encoding that cannot be decoded while
  reading) set ``body_error`` and keep the status code.
- **Any status code** is returned as-is; deciding what counts as success
  is left to :func:`~remotecache.client.response.normalize_outcome`.

No retries are made.

See Also:
    :class:`~remotecache.client.async_client.AsyncHttpxTransport` for the
    equivalent non-blocking implementation.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from remotecache import __version__
from remotecache.client.outcome import TransportOutcome
from remotecache.models import RequestConfig

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": f"remotecache/{__version__}",
}

_PER_REQUEST_OPTIONS = ("timeout", "headers", "cookies", "follow_redirects")


def request_kwargs(options: Mapping[str, Any]) -> dict[str, Any]:
    """Translate descriptor transport options into httpx per-request kwargs.

    Keys httpx cannot apply per request are ignored here; they still take
    part in the fingerprint.
    """
    kwargs: dict[str, Any] = {}
    for key, value in options.items():
        if key in _PER_REQUEST_OPTIONS:
            kwargs[key] = value
        else:
            logger.debug("Ignoring unsupported transport option '%s'", key)
    return kwargs


def build_get(
    client: httpx.Client | httpx.AsyncClient, url: str, options: Mapping[str, Any]
) -> tuple[httpx.Request, dict[str, Any]]:
    """Build the GET for *url* and the kwargs :meth:`send` still needs.

    Raises:
        TypeError, ValueError: A transport option has a value httpx cannot
            apply (e.g. ``headers=5``).
        httpx.InvalidURL: *url* cannot be parsed.
    """
    kwargs = request_kwargs(options)
    send_kwargs: dict[str, Any] = {}
    if "follow_redirects" in kwargs:
        send_kwargs["follow_redirects"] = kwargs.pop("follow_redirects")
    return client.build_request("GET", url, **kwargs), send_kwargs


def failed_outcome(url: str, exc: Exception) -> TransportOutcome:
    """Report a request that never produced a response."""
    logger.debug("GET %s failed: %r", url, exc)
    if isinstance(exc, (TypeError, ValueError)):
        return TransportOutcome(transport_error=f"Invalid transport options: {exc}")
    return TransportOutcome(transport_error=str(exc) or type(exc).__name__)


def response_outcome(response: httpx.Response) -> TransportOutcome:
    """Outcome carrying status and headers; the body is filled in by the caller."""
    return TransportOutcome(
        status_code=response.status_code,
        reason=response.reason_phrase,
        headers=dict(response.headers),
    )


class HttpxTransport:
    """Blocking transport for GET requests.

    Can be used as a context manager; otherwise the underlying client is
    created on first use and released by :meth:`close`.

    Args:
        config: Client-level settings (SSL verification, redirects,
            default timeout).
        transport: Optional :class:`httpx.BaseTransport`, e.g. an
            :class:`httpx.MockTransport` in tests.

    Example::

        with HttpxTransport() as transport:
            outcome = transport.fetch_get("https://api.example.com/items", {"timeout": 10})
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> HttpxTransport:
        self._ensure_client()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying :class:`httpx.Client`."""
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Transport contract
    # ------------------------------------------------------------------ #

    def fetch_get(self, url: str, options: Mapping[str, Any]) -> TransportOutcome:
        """Send one GET to *url* and report the outcome."""
        client = self._ensure_client()
        try:
            request, send_kwargs = build_get(client, url, options)
            response = client.send(request, stream=True, **send_kwargs)
        except (TypeError, ValueError, httpx.HTTPError, httpx.InvalidURL) as exc:
            return failed_outcome(url, exc)

        try:
            outcome = response_outcome(response)
            try:
                outcome.body = response.read()
            except httpx.DecodingError as exc:
                outcome.body_error = str(exc) or type(exc).__name__
            except httpx.HTTPError as exc:
                return failed_outcome(url, exc)
            return outcome
        finally:
            response.close()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _ensure_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                headers=DEFAULT_HEADERS,
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                follow_redirects=self._config.follow_redirects,
                transport=self._transport,
            )
        return self._client

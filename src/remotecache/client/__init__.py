"""HTTP transport module for remotecache.

Provides synchronous and asynchronous GET transports that wrap :mod:`httpx`
and report every outcome as data, plus the normalizer that turns those
outcomes into uniform results.

Classes:
    :class:`HttpxTransport` -- blocking transport backed by :class:`httpx.Client`.
    :class:`AsyncHttpxTransport` -- non-blocking transport backed by :class:`httpx.AsyncClient`.
    :class:`TransportOutcome` -- status, body and error flags of one GET.

Example::

    from remotecache.client import HttpxTransport, normalize_outcome

    with HttpxTransport() as transport:
        result = normalize_outcome(transport.fetch_get("https://api.example.com/items", {}))
"""

from remotecache.client.async_client import AsyncHttpxTransport
from remotecache.client.outcome import AsyncTransport, Transport, TransportOutcome
from remotecache.client.response import decode_body, normalize_outcome
from remotecache.client.sync_client import HttpxTransport

__all__ = [
    "AsyncHttpxTransport",
    "AsyncTransport",
    "HttpxTransport",
    "Transport",
    "TransportOutcome",
    "decode_body",
    "normalize_outcome",
]

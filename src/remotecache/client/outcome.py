"""Raw transport outcome and the transport contracts.

A transport performs exactly one GET and reports what happened as a
:class:`TransportOutcome` instead of raising, so the request orchestrator
can normalize every outcome the same way.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol


@dataclass
class TransportOutcome:
    """What a single GET produced.

    Attributes:
        status_code: HTTP status, ``0`` when no response was received.
        reason: HTTP reason phrase (e.g. ``"Not Found"``).
        body: Raw response body.
        headers: Response headers.
        transport_error: Set when the request failed at the network level
            (DNS, connect, timeout, invalid URL).
        body_error: Set when a response arrived but its body could not be
            read or decoded.
    """

    status_code: int = 0
    reason: str = ""
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    transport_error: Optional[str] = None
    body_error: Optional[str] = None

    @property
    def text(self) -> str:
        """The body decoded as UTF-8, undecodable bytes replaced."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def status_line(self) -> str:
        """``"HTTP <code> <reason>"``, e.g. ``"HTTP 404 Not Found"``."""
        return f"HTTP {self.status_code} {self.reason}".rstrip()

    def as_dict(self) -> dict[str, Any]:
        """JSON-safe rendering used as failure data."""
        return {
            "status_code": self.status_code,
            "reason": self.reason,
            "headers": dict(self.headers),
            "body": self.text,
            "transport_error": self.transport_error,
            "body_error": self.body_error,
        }


class Transport(Protocol):
    """Blocking GET transport."""

    def fetch_get(self, url: str, options: Mapping[str, Any]) -> TransportOutcome: ...


class AsyncTransport(Protocol):
    """Non-blocking GET transport."""

    async def fetch_get(self, url: str, options: Mapping[str, Any]) -> TransportOutcome: ...

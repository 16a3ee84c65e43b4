"""Event dataclass and runner for request lifecycle observability.

This module provides two core components:

* :class:`RequestEvent` -- A dataclass describing one thing that happened
  while serving a request (cache hit, live fetch, throttled refresh,
  swallowed storage or export failure).
* :class:`HookRunner` -- Delivers events to registered listeners in
  registration order.

Listeners are plain callables taking a ``RequestEvent``.  They are
observers only: the return value is ignored, and a listener that raises is
logged and skipped so that a broken metrics sink can never fail a request.

Event names emitted by the library:

* ``live_fetch`` -- the transport was invoked.
* ``cache_hit`` -- a cached body was served.
* ``throttled`` -- the refresh ceiling was reached; cache contents served.
* ``store_error`` -- the TTL store failed; treated as a miss.
* ``export_written`` -- an exported payload was written.
* ``export_error`` -- exporting failed; the result is unaffected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass
class RequestEvent:
    """A single lifecycle event.

    Attributes:
        name: Event name (see module docstring).
        fingerprint: Fingerprint of the request, when known.
        url: Normalized request URL, when known.
        message: Human-readable detail (result message or error text).
        error: The swallowed exception for ``*_error`` events.
    """

    name: str
    fingerprint: str = ""
    url: str = ""
    message: str = ""
    error: Optional[Exception] = None


Listener = Callable[[RequestEvent], object]


class HookRunner:
    """Delivers :class:`RequestEvent` instances to listeners in order."""

    def __init__(self, listeners: Optional[Iterable[Listener]] = None) -> None:
        self._listeners: list[Listener] = list(listeners or [])

    def add(self, listener: Listener) -> None:
        """Register *listener* after the existing ones."""
        self._listeners.append(listener)

    def emit(self, event: RequestEvent) -> None:
        """Call every listener with *event*.

        If a listener raises, the exception is logged and the remaining
        listeners still run.
        """
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as exc:
                logger.warning("Hook listener failed on '%s': %s", event.name, exc)

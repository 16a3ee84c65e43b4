"""Per-fingerprint refresh throttle.

Counts how many times a request was let through within the current
expiration window and denies further refreshes once the ceiling is
reached.  The counter lives under ``"{prefix}:limit:{fingerprint}"`` in the
shared TTL store with the same lifetime as the cache entry; when the store
evicts the key the window is over and the next read starts again from zero.

Every allowed call re-arms the TTL, so the window is measured from the most
recent allowed call.  A denied call leaves the counter untouched.  When the
store fails, the refresh is allowed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from remotecache.cache.backends import TTLStore, as_count
from remotecache.exceptions import StorageError
from remotecache.hooks import HookRunner, RequestEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThrottleDecision:
    """Outcome of :meth:`ThrottleCounter.increment_and_check`.

    Attributes:
        allowed: Whether the caller may proceed to the cache check and,
            on a miss, a live fetch.
        count: The counter value after this call.
    """

    allowed: bool
    count: int


class ThrottleCounter:
    """Caps refreshes per fingerprint within an expiration window.

    Args:
        store: Shared TTL store.
        key_prefix: Same prefix the response cache uses.
        hook_runner: Optional runner notified of store failures.
    """

    def __init__(
        self,
        store: TTLStore,
        key_prefix: str,
        hook_runner: Optional[HookRunner] = None,
    ) -> None:
        self._store = store
        self._key_prefix = key_prefix
        self._hook_runner = hook_runner

    def key_for(self, fingerprint: str) -> str:
        """Store key of the counter for *fingerprint*."""
        return f"{self._key_prefix}:limit:{fingerprint}"

    def current(self, fingerprint: str) -> int:
        """Return the current count (``0`` when absent, expired or unreadable)."""
        try:
            value = self._store.get(self.key_for(fingerprint))
        except StorageError as exc:
            self._report(fingerprint, exc)
            return 0
        return as_count(value)

    def increment_and_check(
        self, fingerprint: str, max_count: int, ttl_seconds: int
    ) -> ThrottleDecision:
        """Count one refresh attempt against *max_count*.

        Returns a denied decision when the count already reached
        *max_count*; otherwise increments the count, re-arms the TTL to
        *ttl_seconds* and returns an allowed decision.  The check and the
        increment are one atomic store operation.
        """
        try:
            allowed, count = self._store.increment_below(
                self.key_for(fingerprint), max_count, ttl_seconds
            )
        except StorageError as exc:
            self._report(fingerprint, exc)
            return ThrottleDecision(allowed=True, count=0)
        if not allowed:
            logger.debug("Throttle ceiling %d reached for %s", max_count, fingerprint)
        return ThrottleDecision(allowed=allowed, count=count)

    def reset(self, fingerprint: str) -> None:
        """Forget the counter for *fingerprint*, opening a fresh window."""
        try:
            self._store.delete(self.key_for(fingerprint))
        except StorageError as exc:
            self._report(fingerprint, exc)

    def _report(self, fingerprint: str, exc: StorageError) -> None:
        logger.warning("Throttle counter unavailable for %s: %s", fingerprint, exc)
        if self._hook_runner is not None:
            self._hook_runner.emit(
                RequestEvent(name="store_error", fingerprint=fingerprint, message=str(exc), error=exc)
            )

"""Response cache adapter over a :class:`~remotecache.cache.backends.TTLStore`.

Decoded response bodies are stored under ``"{prefix}:{fingerprint}"`` with
the descriptor's expiration as TTL.  This adapter owns that keyspace; the
throttle counter keeps its own ``"{prefix}:limit:"`` keys in the same store.

A failing store never fails a request: read errors count as a miss, write
and delete errors are dropped.  Both are logged and reported to the hook
runner as ``store_error`` events.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from remotecache.cache.backends import TTLStore
from remotecache.exceptions import StorageError
from remotecache.hooks import HookRunner, RequestEvent
from remotecache.models import CacheConfig

logger = logging.getLogger(__name__)


class ResponseCache:
    """Fingerprint-keyed cache of decoded response bodies.

    Args:
        store: Shared TTL store.
        config: Cache configuration (``enabled`` flag and ``key_prefix``).
        hook_runner: Optional runner notified of store failures.

    Example::

        cache = ResponseCache(DiskTTLStore("/tmp/rc"), CacheConfig())
        cache.set("5d41402abc4b2a76b9719d911017c592", {"id": 1}, 3600)
        cache.get("5d41402abc4b2a76b9719d911017c592")
    """

    def __init__(
        self,
        store: TTLStore,
        config: CacheConfig,
        hook_runner: Optional[HookRunner] = None,
    ) -> None:
        self._store = store
        self._config = config
        self._hook_runner = hook_runner

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def key_for(self, fingerprint: str) -> str:
        """Store key of the cache entry for *fingerprint*."""
        return f"{self._config.key_prefix}:{fingerprint}"

    def get(self, fingerprint: str) -> Optional[Any]:
        """Return the cached body, or ``None`` on a miss, when disabled, or on store failure."""
        if not self._config.enabled:
            return None
        try:
            return self._store.get(self.key_for(fingerprint))
        except StorageError as exc:
            self._report(fingerprint, exc)
            return None

    def set(self, fingerprint: str, value: Any, ttl_seconds: int) -> None:
        """Store *value* for *ttl_seconds*.  A no-op when caching is disabled."""
        if not self._config.enabled:
            return
        try:
            self._store.set(self.key_for(fingerprint), value, ttl_seconds)
        except StorageError as exc:
            self._report(fingerprint, exc)

    def invalidate(self, fingerprint: str) -> None:
        """Drop the cache entry for *fingerprint*."""
        try:
            self._store.delete(self.key_for(fingerprint))
        except StorageError as exc:
            self._report(fingerprint, exc)

    def close(self) -> None:
        """Close the underlying store when it supports closing."""
        close = getattr(self._store, "close", None)
        if close is not None:
            close()

    def _report(self, fingerprint: str, exc: StorageError) -> None:
        logger.warning("Response cache unavailable for %s: %s", fingerprint, exc)
        if self._hook_runner is not None:
            self._hook_runner.emit(
                RequestEvent(name="store_error", fingerprint=fingerprint, message=str(exc), error=exc)
            )

"""Key-value stores with per-key expiration.

:class:`TTLStore` is the narrow contract the response cache and the
throttle counter are written against.  :class:`DiskTTLStore` implements it
on top of :class:`diskcache.Cache`, which is process-safe and evicts keys
once their ``expire`` has elapsed.  Backend failures are re-raised as
:class:`~remotecache.exceptions.StorageError` so callers only need to
handle one exception type.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Optional, Protocol

import diskcache

from remotecache.exceptions import StorageError


class TTLStore(Protocol):
    """Get/set/delete by key with a lifetime in seconds."""

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...

    def increment_below(self, key: str, ceiling: int, ttl_seconds: int) -> tuple[bool, int]: ...


_BACKEND_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout)


def as_count(value: Any) -> int:
    """Read a stored counter; absent or non-numeric values count as ``0``."""
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class DiskTTLStore:
    """:class:`TTLStore` backed by a :class:`diskcache.Cache` directory.

    Args:
        directory: Directory holding the cache database.  Created if missing.
        timeout: SQLite busy timeout in seconds for concurrent writers.

    Example::

        store = DiskTTLStore("/tmp/remotecache")
        store.set("remotecache:abc", {"id": 1}, ttl_seconds=60)
        store.get("remotecache:abc")
    """

    def __init__(self, directory: str | Path, timeout: float = 60) -> None:
        self._directory = Path(directory)
        try:
            self._cache = diskcache.Cache(str(self._directory), timeout=timeout)
        except _BACKEND_ERRORS as exc:
            raise StorageError(f"Cannot open cache at {self._directory}: {exc}") from exc

    @property
    def directory(self) -> Path:
        """The directory holding the cache database."""
        return self._directory

    def get(self, key: str) -> Optional[Any]:
        """Return the value stored under *key*, or ``None`` when absent or expired."""
        try:
            return self._cache.get(key)
        except _BACKEND_ERRORS as exc:
            raise StorageError(f"Cannot read '{key}': {exc}") from exc

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store *value* under *key* for *ttl_seconds*, replacing any previous value."""
        try:
            self._cache.set(key, value, expire=ttl_seconds)
        except _BACKEND_ERRORS as exc:
            raise StorageError(f"Cannot write '{key}': {exc}") from exc

    def delete(self, key: str) -> None:
        """Remove *key*; a missing key is not an error."""
        try:
            self._cache.delete(key)
        except _BACKEND_ERRORS as exc:
            raise StorageError(f"Cannot delete '{key}': {exc}") from exc

    def increment_below(self, key: str, ceiling: int, ttl_seconds: int) -> tuple[bool, int]:
        """Atomically add one to the counter at *key* unless it reached *ceiling*.

        The read and the write share one :meth:`diskcache.Cache.transact`
        block, so concurrent threads and processes never both see the same
        count.  An incremented counter is re-armed to *ttl_seconds*.

        Returns:
            ``(True, new_count)`` when incremented, ``(False, count)`` when
            the ceiling was already reached.
        """
        try:
            with self._cache.transact():
                count = as_count(self._cache.get(key))
                if count >= ceiling:
                    return False, count
                count += 1
                self._cache.set(key, count, expire=ttl_seconds)
                return True, count
        except _BACKEND_ERRORS as exc:
            raise StorageError(f"Cannot increment '{key}': {exc}") from exc

    def clear(self) -> None:
        """Remove every entry, including throttle counters."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()

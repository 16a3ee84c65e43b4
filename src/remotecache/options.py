"""Persistent option store.

A named-value store without expiration, used by the exporter to keep the
latest exported payload of a request under a stable option name.

:class:`JsonOptionStore` keeps every option in a single JSON object file
(typically ``~/.local/share/remotecache/options.json``).  Writes are atomic
(temp file + ``os.replace``) and the read-modify-write of :meth:`set` is
serialised with a lock so concurrent exporters in one process do not lose
updates.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Optional, Protocol

from remotecache.exceptions import StorageError
from remotecache.fs import atomic_write


class OptionStore(Protocol):
    """Get/set by name, no TTL."""

    def get(self, name: str, default: Any = None) -> Any: ...

    def set(self, name: str, value: Any) -> None: ...


class JsonOptionStore:
    """:class:`OptionStore` persisted as one JSON object on disk.

    Args:
        path: The JSON file.  Its parent directory is created on first write.

    Example::

        store = JsonOptionStore(Path("/tmp/options.json"))
        store.set("latest_posts", {"data": [1, 2, 3]})
        store.get("latest_posts")
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """The filesystem path to the options file."""
        return self._path

    def get(self, name: str, default: Any = None) -> Any:
        """Return the value stored under *name*, or *default*."""
        return self._load().get(name, default)

    def set(self, name: str, value: Any) -> None:
        """Insert or replace the option *name*.

        Raises:
            StorageError: If the file cannot be written or *value* is not
                JSON-serialisable.
        """
        with self._lock:
            options = self._load()
            options[name] = value
            try:
                text = json.dumps(options, indent=2, sort_keys=True) + "\n"
                atomic_write(self._path, text)
            except (TypeError, ValueError, OSError) as exc:
                raise StorageError(f"Cannot save option '{name}' to {self._path}: {exc}") from exc

    def delete(self, name: str) -> None:
        """Remove the option *name* if present."""
        with self._lock:
            options = self._load()
            if name not in options:
                return
            del options[name]
            try:
                atomic_write(self._path, json.dumps(options, indent=2, sort_keys=True) + "\n")
            except OSError as exc:
                raise StorageError(f"Cannot delete option '{name}' from {self._path}: {exc}") from exc

    def _load(self) -> dict[str, Any]:
        """Read all options.  A missing file is empty; an unreadable one raises."""
        if not self._path.is_file():
            return {}
        try:
            data: Optional[Any] = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            raise StorageError(f"Cannot read options from {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Options file {self._path} does not hold a JSON object")
        return data

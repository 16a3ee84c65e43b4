"""Filesystem write primitive with atomic temp-file-then-rename semantics.

:func:`atomic_write` is shared by the settings file, the option store and
the result exporter.  The temporary file is created next to the target so
that ``os.replace`` is an atomic rename on POSIX systems: readers see either
the old content or the new content, never a partial write.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol, Union

from remotecache.exceptions import ExportError


def atomic_write(path: Path, data: Union[bytes, str], create_parents: bool = True) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    Args:
        path: Destination file.  Existing content is replaced.
        data: Bytes, or text which is encoded as UTF-8.
        create_parents: Create missing parent directories first.  When
            ``False`` a missing parent raises :class:`FileNotFoundError`.

    Raises:
        OSError: If the file cannot be written.  The temp file is removed.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    if create_parents:
        path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


class Filesystem(Protocol):
    """Write primitive consumed by :class:`~remotecache.exporter.ResultExporter`."""

    def write(self, path: Path, data: bytes) -> None: ...


class LocalFilesystem:
    """Local-disk :class:`Filesystem` with overwrite semantics.

    The parent directory must already exist; it is never created.
    """

    def write(self, path: Path, data: bytes) -> None:
        """Atomically replace *path* with *data*.

        Raises:
            ExportError: If the file cannot be written.
        """
        try:
            atomic_write(Path(path), data, create_parents=False)
        except OSError as exc:
            raise ExportError(f"Cannot write {path}: {exc}") from exc

"""Side-effect exporter -- mirrors a successful live result into an option and a file.

Export is driven by the descriptor's :class:`~remotecache.models.ExportSpec`
and only happens when all of these hold:

* it is present and ``condition`` is true,
* ``file_name`` and ``location`` are both non-empty after sanitisation,
* the result succeeded and carries data.

The payload is the result without its ``success``, ``message`` and
``error`` fields.  When ``option_name`` is set the payload is first upserted
into the option store, then stamped with ``option_name``.  Finally the
payload is written as JSON to ``<location>/<file_name>.json``, replacing
any previous file.

Export never fails the request: storage and filesystem errors are logged
and reported as ``export_error`` events.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from remotecache.exceptions import RemoteCacheError
from remotecache.fs import Filesystem, LocalFilesystem
from remotecache.hooks import HookRunner, RequestEvent
from remotecache.models import ExportSpec, Result
from remotecache.options import OptionStore
from remotecache.sanitize import sanitize_file_name, sanitize_key

logger = logging.getLogger(__name__)

_STRIPPED_FIELDS = {"success", "message", "error"}


def export_payload(result: Result) -> dict[str, Any]:
    """The exported form of *result*: ``data`` plus derived fields such as ``expiration``."""
    return result.model_dump(mode="json", exclude=_STRIPPED_FIELDS)


class ResultExporter:
    """Writes successful results to the option store and the filesystem.

    Args:
        option_store: Destination for ``option_name`` upserts.
        filesystem: Write primitive for the JSON file.
        hook_runner: Optional runner notified of writes and failures.
    """

    def __init__(
        self,
        option_store: OptionStore,
        filesystem: Optional[Filesystem] = None,
        hook_runner: Optional[HookRunner] = None,
    ) -> None:
        self._option_store = option_store
        self._filesystem = filesystem or LocalFilesystem()
        self._hook_runner = hook_runner

    def export(self, spec: Optional[ExportSpec], result: Result, fingerprint: str = "") -> Optional[Path]:
        """Export *result* according to *spec*.

        Returns:
            The path of the written file, or ``None`` when nothing was
            written (no-op conditions or a swallowed failure).
        """
        if spec is None or not spec.condition:
            return None
        if not result.success or result.data in (None, {}, [], ""):
            return None

        file_name = sanitize_file_name(spec.file_name)
        location = spec.location.strip()
        if not file_name or not location:
            return None

        payload = export_payload(result)
        path = Path(location).expanduser() / f"{file_name}.json"

        try:
            option_name = sanitize_key(spec.option_name)
            if option_name:
                self._option_store.set(option_name, payload)
                payload = {**payload, "option_name": option_name}

            text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
            self._filesystem.write(path, text.encode("utf-8"))
        except RemoteCacheError as exc:
            logger.warning("Export of %s to %s failed: %s", fingerprint or "result", path, exc)
            self._emit("export_error", fingerprint, str(exc), exc)
            return None

        logger.debug("Exported %s to %s", fingerprint or "result", path)
        self._emit("export_written", fingerprint, str(path))
        return path

    def _emit(self, name: str, fingerprint: str, message: str, error: Optional[Exception] = None) -> None:
        if self._hook_runner is not None:
            self._hook_runner.emit(
                RequestEvent(name=name, fingerprint=fingerprint, message=message, error=error)
            )

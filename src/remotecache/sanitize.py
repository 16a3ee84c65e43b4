"""Sanitisation of caller-supplied names used as option keys and file names."""

from __future__ import annotations

import re
import unicodedata

_KEY_DISALLOWED = re.compile(r"[^a-z0-9_\-]")
_FILE_DISALLOWED = re.compile(r"[^A-Za-z0-9._\- ]")
_WHITESPACE = re.compile(r"[\s\-]+")


def sanitize_key(value: str) -> str:
    """Lowercase *value* and keep only ``a-z``, ``0-9``, ``_`` and ``-``.

    >>> sanitize_key("Latest Posts!")
    'latestposts'
    """
    return _KEY_DISALLOWED.sub("", value.lower())


def sanitize_file_name(value: str) -> str:
    """Reduce *value* to a safe base name for a file inside the export location.

    Accents are stripped, path separators and other special characters are
    removed, runs of whitespace and dashes collapse to a single dash, and
    leading/trailing dots, dashes and underscores are trimmed.  A trailing
    ``.json`` is removed since the exporter appends it.

    >>> sanitize_file_name("../My Posts.json")
    'My-Posts'
    """
    normalized = unicodedata.normalize("NFKD", value)
    ascii_only = normalized.encode("ascii", "ignore").decode("ascii")
    cleaned = _FILE_DISALLOWED.sub("", ascii_only)
    cleaned = _WHITESPACE.sub("-", cleaned.strip())
    if cleaned.lower().endswith(".json"):
        cleaned = cleaned[: -len(".json")]
    return cleaned.strip("._-")

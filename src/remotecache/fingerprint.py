"""Request fingerprinting.

A fingerprint is the 32-character hex MD5 digest of a URL followed by a
canonical JSON rendering of a mapping (keys sorted, compact separators).
Sorting the keys makes the digest independent of insertion order, so two
independently built but equal option mappings always produce the same
fingerprint.  Which mapping is digested is a configuration choice, see
:class:`~remotecache.models.FingerprintPolicy`.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping, Optional

from remotecache.models import FingerprintPolicy, RequestDescriptor


def canonical_json(mapping: Optional[Mapping[str, Any]]) -> str:
    """Serialise *mapping* with stable key ordering.

    Values that are not JSON-native (e.g. ``httpx.Timeout``) fall back to
    their ``str()`` form.
    """
    return json.dumps(
        dict(mapping or {}),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def fingerprint(url: str, options: Optional[Mapping[str, Any]] = None) -> str:
    """Return the fingerprint of *url* plus *options*."""
    raw = url + canonical_json(options)
    return hashlib.md5(raw.encode("utf-8"), usedforsecurity=False).hexdigest()


def fingerprint_for(descriptor: RequestDescriptor, policy: FingerprintPolicy) -> str:
    """Fingerprint a normalized descriptor under *policy*."""
    if policy is FingerprintPolicy.QUERY_ARGS:
        return fingerprint(descriptor.url, descriptor.query_args)
    return fingerprint(descriptor.url, descriptor.transport_options)

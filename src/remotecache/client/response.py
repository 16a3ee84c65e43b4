"""Result normalizer -- maps a :class:`TransportOutcome` to a uniform :class:`Result`.

The checks run in a fixed order and the first match wins:

1. Transport error → failure (``TransportError``), data is the body text.
2. Status other than 200 → failure (``HttpStatusError``), message is the
   status line, data is the body text.
3. Body error → failure (``BodyError``), data is the whole outcome.
4. Otherwise success.  The body is decoded as JSON; a body that is not
   JSON, or is JSON ``null``, becomes ``{}``, and a JSON scalar is wrapped
   in a one-element list, so ``data`` is always a ``dict`` or ``list``.
"""

from __future__ import annotations

import json
from typing import Any

from remotecache.client.outcome import TransportOutcome
from remotecache.exceptions import ErrorKind
from remotecache.models import MESSAGE_LIVE, Result


def decode_body(body: bytes) -> Any:
    """Decode a JSON body, coercing anything that is not an object or array."""
    if not body:
        return {}
    try:
        decoded = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    if decoded is None:
        return {}
    if isinstance(decoded, (dict, list)):
        return decoded
    return [decoded]


def normalize_outcome(outcome: TransportOutcome, expiration: int | None = None) -> Result:
    """Turn a raw transport outcome into a :class:`~remotecache.models.Result`.

    Args:
        outcome: What the transport reported.
        expiration: Cache lifetime to echo back on a successful result.
    """
    if outcome.transport_error is not None:
        return Result(
            success=False,
            message=outcome.transport_error,
            data=outcome.text,
            error=ErrorKind.TRANSPORT_ERROR,
        )

    if outcome.status_code != 200:
        return Result(
            success=False,
            message=outcome.status_line,
            data=outcome.text,
            error=ErrorKind.HTTP_STATUS_ERROR,
        )

    if outcome.body_error is not None:
        return Result(
            success=False,
            message=outcome.body_error,
            data=outcome.as_dict(),
            error=ErrorKind.BODY_ERROR,
        )

    return Result(
        success=True,
        message=MESSAGE_LIVE,
        data=decode_body(outcome.body),
        expiration=expiration,
    )

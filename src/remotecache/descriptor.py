"""Resolve caller input into a fully normalized :class:`~remotecache.models.RequestDescriptor`.

The public entry point accepts either a bare URL string or a full
descriptor (a mapping or a ``RequestDescriptor``).  :func:`normalize_descriptor`
resolves that union once:

1. Reject empty input (:class:`~remotecache.exceptions.InvalidArgumentsError`).
2. Validate the mapping into a descriptor.
3. Merge ``transport_options`` over the configured defaults.
4. Fold ``query_args`` into the URL (path gets a trailing slash, arguments
   replace same-named query parameters).
5. Apply the configured default expiration when none was given.
6. Reject an empty URL (:class:`~remotecache.exceptions.InvalidEndpointError`).

Normalization is idempotent: normalizing an already-normalized descriptor
returns an equal descriptor.
"""

from __future__ import annotations

from typing import Any, Mapping, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import ValidationError

from remotecache.exceptions import InvalidArgumentsError, InvalidEndpointError
from remotecache.models import (
    MESSAGE_INVALID_ARGUMENTS,
    MESSAGE_INVALID_ENDPOINT,
    RequestDescriptor,
    Settings,
)

DescriptorInput = Union[str, Mapping[str, Any], RequestDescriptor]


def add_query_args(url: str, query_args: Mapping[str, Any]) -> str:
    """Merge *query_args* into the query string of *url*.

    The path receives a trailing slash first.  Existing parameters keep
    their position; parameters named in *query_args* are replaced and new
    ones appended.  A ``None`` value removes the parameter.
    """
    parts = urlsplit(url)
    path = parts.path if parts.path.endswith("/") else parts.path + "/"

    pairs = parse_qsl(parts.query, keep_blank_values=True)
    seen: set[str] = set()
    merged: list[tuple[str, Any]] = []
    for key, value in pairs:
        if key in query_args:
            if key in seen:
                continue
            seen.add(key)
            if query_args[key] is not None:
                merged.append((key, query_args[key]))
        else:
            merged.append((key, value))
    for key, value in query_args.items():
        if key not in seen and value is not None:
            merged.append((key, value))

    query = urlencode(merged, doseq=True)
    return urlunsplit((parts.scheme, parts.netloc, path, query, parts.fragment))


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Mapping):
        return not value
    return False


def normalize_descriptor(value: DescriptorInput, settings: Settings) -> RequestDescriptor:
    """Resolve *value* into a normalized descriptor.

    Args:
        value: A URL string, a descriptor mapping, or a ``RequestDescriptor``.
        settings: Supplies default transport options and expiration.

    Returns:
        A new, fully normalized :class:`RequestDescriptor`.

    Raises:
        InvalidArgumentsError: If *value* is empty, of an unsupported type,
            or fails validation.
        InvalidEndpointError: If the normalized URL is empty.
    """
    if isinstance(value, RequestDescriptor):
        descriptor = value
    else:
        if _is_empty(value):
            raise InvalidArgumentsError(MESSAGE_INVALID_ARGUMENTS)
        if isinstance(value, str):
            value = {"url": value}
        if not isinstance(value, Mapping):
            raise InvalidArgumentsError(
                f"{MESSAGE_INVALID_ARGUMENTS} Expected a URL or a mapping, "
                f"got {type(value).__name__}."
            )
        try:
            descriptor = RequestDescriptor.model_validate(dict(value))
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(loc) for loc in first.get("loc", ()))
            raise InvalidArgumentsError(
                f"{MESSAGE_INVALID_ARGUMENTS} {field}: {first.get('msg', '')}".rstrip()
            ) from exc

    if not descriptor.url:
        raise InvalidEndpointError(MESSAGE_INVALID_ENDPOINT)

    update: dict[str, Any] = {
        "transport_options": {
            **settings.request.default_transport_options(),
            **descriptor.transport_options,
        },
    }
    if descriptor.query_args:
        update["url"] = add_query_args(descriptor.url, descriptor.query_args)
    if "expiration_seconds" not in descriptor.model_fields_set:
        update["expiration_seconds"] = settings.cache.default_expiration

    return descriptor.model_copy(update=update, deep=True)

"""Exception hierarchy for remotecache.

All exceptions inherit from :class:`RemoteCacheError`, which carries a
``kind`` attribute drawn from :class:`ErrorKind`.  Exceptions are raised
inside the library (descriptor validation, store backends, filesystem
writes) and converted to data at the request boundary: the
:class:`~remotecache.requester.RemoteRequester` catches
``RemoteCacheError`` and returns a failed
:class:`~remotecache.models.Result` whose ``error`` field is the kind.
Callers of :func:`~remotecache.requester.fetch_cached` therefore branch on
``result.success`` and never see these exceptions.

Subclass hierarchy::

    RemoteCacheError
    +-- InvalidArgumentsError   (InvalidArguments)
    +-- InvalidEndpointError    (InvalidEndpoint)
    +-- TransportError          (TransportError)
    +-- HttpStatusError         (HttpStatusError)
    +-- BodyError               (BodyError)
    +-- StorageError            (StorageError)
    +-- ExportError             (ExportError)
    +-- ConfigError             (ConfigError)
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Tags identifying the failure category of a :class:`~remotecache.models.Result`."""

    INVALID_ARGUMENTS = "InvalidArguments"
    INVALID_ENDPOINT = "InvalidEndpoint"
    TRANSPORT_ERROR = "TransportError"
    HTTP_STATUS_ERROR = "HttpStatusError"
    BODY_ERROR = "BodyError"
    STORAGE_ERROR = "StorageError"
    EXPORT_ERROR = "ExportError"
    CONFIG_ERROR = "ConfigError"


class RemoteCacheError(Exception):
    """Base exception for all remotecache errors.

    Every subclass sets a class-level ``kind``.  The request orchestrator
    catches this exception type and turns it into a failed result tagged
    with ``exc.kind``.

    Args:
        message: Human-readable error description.
        kind: Optional override for the class-level kind.
    """

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENTS

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class InvalidArgumentsError(RemoteCacheError):
    """Raised when the request descriptor is empty or fails validation."""

    kind = ErrorKind.INVALID_ARGUMENTS


class InvalidEndpointError(RemoteCacheError):
    """Raised when the normalized request URL is empty."""

    kind = ErrorKind.INVALID_ENDPOINT


class TransportError(RemoteCacheError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    kind = ErrorKind.TRANSPORT_ERROR


class HttpStatusError(RemoteCacheError):
    """Raised when the remote endpoint answers with a status other than 200."""

    kind = ErrorKind.HTTP_STATUS_ERROR


class BodyError(RemoteCacheError):
    """Raised when the response body cannot be read or decoded by the transport."""

    kind = ErrorKind.BODY_ERROR


class StorageError(RemoteCacheError):
    """Raised by a TTL store or option store backend that cannot be read or written."""

    kind = ErrorKind.STORAGE_ERROR


class ExportError(RemoteCacheError):
    """Raised when an exported result cannot be written to disk."""

    kind = ErrorKind.EXPORT_ERROR


class ConfigError(RemoteCacheError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    kind = ErrorKind.CONFIG_ERROR

"""Canonical Pydantic models shared across all remotecache modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`CacheConfig`, :class:`ExportConfig`,
    :class:`FingerprintPolicy`, and :class:`Settings`.

**Request models** -- flowing through a single cached fetch:
    :class:`ExportSpec`, :class:`RequestDescriptor`, and :class:`Result`.

All models use Pydantic v2. :class:`RequestDescriptor` also accepts the
legacy argument names ``remote_args`` and ``expiration`` so that argument
mappings written for the older helper keep working.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from remotecache.exceptions import ErrorKind, RemoteCacheError

MONTH_IN_SECONDS = 30 * 24 * 60 * 60
"""Default cache lifetime: thirty days."""

MESSAGE_LIVE = "served live"
MESSAGE_CACHED = "served from cache"
MESSAGE_THROTTLED = "max requests reached, served from cache"
MESSAGE_INVALID_ARGUMENTS = "Invalid parameters."
MESSAGE_INVALID_ENDPOINT = "Invalid request endpoint."


# --- Configuration ---


class FingerprintPolicy(str, enum.Enum):
    """Which mapping is digested next to the URL to identify a request.

    ``TRANSPORT_OPTIONS`` digests the normalized URL together with the
    merged transport options, so two calls that differ only in timeout or
    headers are cached separately.  ``QUERY_ARGS`` digests the URL (with
    query arguments already folded in) together with the query arguments,
    ignoring transport options entirely.  In both cases query arguments are
    part of the URL that is actually fetched.
    """

    TRANSPORT_OPTIONS = "transport_options"
    QUERY_ARGS = "query_args"


class RequestConfig(BaseModel):
    """Default transport options merged under every descriptor."""

    timeout: int = Field(default=60, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")

    def default_transport_options(self) -> dict[str, Any]:
        """Options merged under ``RequestDescriptor.transport_options``.

        Only ``timeout`` participates by default; SSL and redirect handling
        are client-level settings and stay out of the fingerprint.
        """
        return {"timeout": self.timeout}


class CacheConfig(BaseModel):
    """Response cache and refresh-throttle settings."""

    enabled: bool = Field(default=True, description="Enable response caching")
    directory: Optional[str] = Field(
        default=None, description="diskcache directory (default: <cache dir>/responses)"
    )
    key_prefix: str = Field(default="remotecache", description="Prefix for every store key")
    default_expiration: int = Field(
        default=MONTH_IN_SECONDS, gt=0, description="Default cache lifetime in seconds"
    )
    max_requests: Optional[int] = Field(
        default=3,
        ge=1,
        description="Live refreshes allowed per fingerprint per window (None disables)",
    )


class ExportConfig(BaseModel):
    """Where exported results land when a descriptor asks for it."""

    option_store: Optional[str] = Field(
        default=None, description="Option store JSON file (default: <data dir>/options.json)"
    )


class Settings(BaseModel):
    """Library-wide configuration persisted at ``~/.config/remotecache/config.json``.

    Loaded and saved by :func:`~remotecache.config.load_settings` and
    :func:`~remotecache.config.save_settings`.  Fields here have the lowest
    precedence and can be overridden by environment variables or explicit
    keyword arguments.  See :func:`~remotecache.config.resolve_settings`.
    """

    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    fingerprint_policy: FingerprintPolicy = FingerprintPolicy.TRANSPORT_OPTIONS
    single_flight: bool = Field(
        default=True, description="Serialise concurrent live fetches of one fingerprint"
    )
    debug: bool = Field(default=False, description="Log request details at DEBUG level")


# --- Requests ---


class ExportSpec(BaseModel):
    """Instructions for mirroring a successful live result.

    The exporter only acts when ``condition`` is true and both ``file_name``
    and ``location`` are non-empty.  ``option_name`` is optional; when given
    the payload is also upserted into the option store under that name.
    """

    file_name: str = ""
    option_name: str = ""
    location: str = ""
    condition: bool = False


class RequestDescriptor(BaseModel):
    """Everything needed to fetch, cache, throttle and export one GET request.

    Instances produced by :func:`~remotecache.descriptor.normalize_descriptor`
    are fully normalized: the URL is stripped and carries any query
    arguments, and ``transport_options`` already include the configured
    defaults.

    Example::

        RequestDescriptor(
            url="https://api.example.com/posts",
            query_args={"per_page": 5},
            expiration_seconds=3600,
        )
    """

    model_config = ConfigDict(extra="ignore")

    url: str = ""
    transport_options: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("transport_options", "remote_args"),
    )
    query_args: dict[str, Any] = Field(default_factory=dict)
    expiration_seconds: int = Field(
        default=MONTH_IN_SECONDS,
        gt=0,
        validation_alias=AliasChoices("expiration_seconds", "expiration"),
    )
    force: bool = False
    export: Optional[ExportSpec] = None

    @field_validator("url", mode="before")
    @classmethod
    def _strip_url(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        return value


class Result(BaseModel):
    """Uniform outcome of :meth:`~remotecache.requester.RemoteRequester.fetch`.

    ``data`` is the decoded JSON body on success, or the raw body / error
    details on failure.  ``error`` names the failure kind and is ``None``
    for every successful result, including throttled ones.
    """

    success: bool
    message: str
    data: Any = None
    expiration: Optional[int] = None
    error: Optional[ErrorKind] = None

    @classmethod
    def from_error(cls, exc: RemoteCacheError, data: Any = None) -> Result:
        """Build a failed result from a library exception."""
        return cls(success=False, message=str(exc), data=data, error=exc.kind)

    def as_dict(self) -> dict[str, Any]:
        """Return the result as a plain ``dict`` (``error`` rendered as its string value)."""
        return self.model_dump(mode="json")

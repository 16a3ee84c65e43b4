"""remotecache -- cached, throttled HTTP GET requests.

Given a URL or a request descriptor, remotecache returns either a fresh
response or a cached one, keyed by a fingerprint of the request, and caps
how often the same request may reach the network within its expiration
window.  Successful live results can be mirrored into a persistent option
store and a JSON file.

Typical use::

    from remotecache import fetch_cached

    result = fetch_cached("https://api.example.com/posts")
    if result.success:
        posts = result.data

Modules:
    requester: Request orchestrator and the :func:`fetch_cached` entry point.
    descriptor: Input normalization (URL string or descriptor mapping).
    fingerprint: Request fingerprinting.
    cache: Response cache adapter, refresh throttle and TTL store backends.
    client: httpx transports and the result normalizer.
    exporter: Option store and JSON file export of successful results.
    models: Pydantic models shared across the package.
    config: XDG-aware settings management.
    exceptions: Exception hierarchy with error-kind tags.
    log: Rich logging setup for host applications.
"""

__version__ = "0.3.0"

from remotecache.models import (  # noqa: E402
    ExportSpec,
    FingerprintPolicy,
    RequestDescriptor,
    Result,
    Settings,
)
from remotecache.requester import (  # noqa: E402
    RemoteRequester,
    build_requester,
    fetch_cached,
    get_requester,
    reset_requester,
    set_requester,
)

__all__ = [
    "ExportSpec",
    "FingerprintPolicy",
    "RemoteRequester",
    "RequestDescriptor",
    "Result",
    "Settings",
    "build_requester",
    "fetch_cached",
    "get_requester",
    "reset_requester",
    "set_requester",
]

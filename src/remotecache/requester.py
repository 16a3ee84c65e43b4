"""Request orchestrator -- decides between cache, throttle and a live GET.

:class:`RemoteRequester` is the decision engine behind
:func:`fetch_cached`.  For each call it runs::

    VALIDATE → THROTTLE_CHECK → CACHE_CHECK → {CACHE_HIT | LIVE_FETCH}
             → NORMALIZE → STORE → EXPORT

- **VALIDATE** -- :func:`~remotecache.descriptor.normalize_descriptor`;
  empty input and empty URLs end the call with a failed result.
- **force** -- skips THROTTLE_CHECK and CACHE_CHECK, always fetches live.
- **THROTTLE_CHECK** -- once the refresh ceiling is reached the call
  returns whatever the cache holds (possibly nothing) as a *successful*
  result with the throttled message.
- **CACHE_CHECK** -- a cached body is returned without touching the network.
- **LIVE_FETCH / NORMALIZE** -- one transport call, normalized by
  :func:`~remotecache.client.response.normalize_outcome`.
- **STORE / EXPORT** -- successful results only.

Every path returns a :class:`~remotecache.models.Result`; library errors
are converted with :meth:`~remotecache.models.Result.from_error`.

With ``single_flight`` enabled, concurrent threads asking for the same
fingerprint are serialised between CACHE_CHECK and STORE, so only the
first performs the live fetch and the others are served from the cache.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from typing import Iterator, Optional

from remotecache.cache.backends import DiskTTLStore
from remotecache.cache.cache import ResponseCache
from remotecache.cache.throttle import ThrottleCounter
from remotecache.client.async_client import AsyncHttpxTransport
from remotecache.client.outcome import AsyncTransport, Transport, TransportOutcome
from remotecache.client.response import normalize_outcome
from remotecache.client.sync_client import HttpxTransport
from remotecache.config import (
    describe_policy,
    resolve_cache_directory,
    resolve_option_store_path,
    resolve_settings,
)
from remotecache.descriptor import DescriptorInput, normalize_descriptor
from remotecache.exceptions import RemoteCacheError
from remotecache.exporter import ResultExporter
from remotecache.fingerprint import fingerprint_for
from remotecache.fs import LocalFilesystem
from remotecache.hooks import HookRunner, RequestEvent
from remotecache.log import setup_logging
from remotecache.models import (
    MESSAGE_CACHED,
    MESSAGE_THROTTLED,
    RequestDescriptor,
    Result,
    Settings,
)
from remotecache.options import JsonOptionStore

logger = logging.getLogger(__name__)


class _Flight:
    """Lock shared by the threads currently working on one fingerprint."""

    __slots__ = ("lock", "waiters")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.waiters = 0


class RemoteRequester:
    """Serves GET requests from cache, throttled cache, or the network.

    Args:
        transport: Blocking transport used by :meth:`fetch`.
        cache: Response cache adapter.
        throttle: Refresh throttle counter.
        exporter: Optional side-effect exporter.  Without one, export
            instructions on descriptors are ignored.
        settings: Effective settings (defaults, throttle ceiling,
            fingerprint policy, single-flight).
        hook_runner: Optional runner receiving lifecycle events.
        async_transport: Non-blocking transport used by :meth:`afetch`.
            Created from ``settings.request`` on first use when omitted.

    Example::

        requester = build_requester()
        result = requester.fetch("https://api.example.com/items")
        if result.success:
            print(result.data)
    """

    def __init__(
        self,
        transport: Transport,
        cache: ResponseCache,
        throttle: ThrottleCounter,
        exporter: Optional[ResultExporter] = None,
        settings: Optional[Settings] = None,
        hook_runner: Optional[HookRunner] = None,
        async_transport: Optional[AsyncTransport] = None,
    ) -> None:
        self._transport = transport
        self._cache = cache
        self._throttle = throttle
        self._exporter = exporter
        self._settings = settings or Settings()
        self._hook_runner = hook_runner
        self._async_transport = async_transport
        self._flights: dict[str, _Flight] = {}
        self._flights_guard = threading.Lock()

    @property
    def settings(self) -> Settings:
        return self._settings

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def fetch(self, request: DescriptorInput) -> Result:
        """Serve *request* (a URL or a descriptor) and return a uniform result."""
        started = time.monotonic()
        prepared = self._prepare(request)
        if isinstance(prepared, Result):
            return prepared
        descriptor, fingerprint = prepared

        if descriptor.force:
            return self._live(descriptor, fingerprint, started)

        early = self._check_throttle(descriptor, fingerprint, started)
        if early is not None:
            return early

        with self._flight(fingerprint):
            hit = self._check_cache(descriptor, fingerprint, started)
            if hit is not None:
                return hit
            return self._live(descriptor, fingerprint, started)

    async def afetch(self, request: DescriptorInput) -> Result:
        """Async variant of :meth:`fetch`; live fetches are not coalesced.

        Cache, throttle and export work runs in a worker thread so the event
        loop is never blocked on the disk store.  Release the async client
        with :meth:`aclose`.
        """
        started = time.monotonic()
        prepared = self._prepare(request)
        if isinstance(prepared, Result):
            return prepared
        descriptor, fingerprint = prepared

        if not descriptor.force:
            early = await asyncio.to_thread(self._check_throttle, descriptor, fingerprint, started)
            if early is not None:
                return early
            hit = await asyncio.to_thread(self._check_cache, descriptor, fingerprint, started)
            if hit is not None:
                return hit

        if self._async_transport is None:
            self._async_transport = AsyncHttpxTransport(self._settings.request)
        try:
            outcome = await self._async_transport.fetch_get(
                descriptor.url, descriptor.transport_options
            )
        except RemoteCacheError as exc:
            return await asyncio.to_thread(
                self._finish, descriptor, fingerprint, Result.from_error(exc), started
            )
        return await asyncio.to_thread(self._complete, descriptor, fingerprint, outcome, started)

    def fingerprint(self, request: DescriptorInput) -> str:
        """Return the fingerprint *request* is cached and throttled under.

        Raises:
            InvalidArgumentsError: If *request* is empty or invalid.
            InvalidEndpointError: If the URL is empty.
        """
        descriptor = normalize_descriptor(request, self._settings)
        return fingerprint_for(descriptor, self._settings.fingerprint_policy)

    def invalidate(self, request: DescriptorInput) -> None:
        """Drop the cache entry and throttle counter of *request*."""
        fingerprint = self.fingerprint(request)
        self._cache.invalidate(fingerprint)
        self._throttle.reset(fingerprint)

    def close(self) -> None:
        """Release both transports and the cache store.

        An async transport left open by :meth:`afetch` is closed on a fresh
        event loop.  Inside a running loop that is not possible; use
        :meth:`aclose` there instead.
        """
        if self._async_transport_open():
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                self._run_aclose()
            else:
                logger.warning(
                    "Async transport left open; await RemoteRequester.aclose() inside an event loop"
                )
        self._release()

    async def aclose(self) -> None:
        """Release both transports and the cache store from inside an event loop."""
        aclose = getattr(self._async_transport, "aclose", None)
        if aclose is not None:
            await aclose()
        await asyncio.to_thread(self._release)

    # ------------------------------------------------------------------ #
    # State machine steps
    # ------------------------------------------------------------------ #

    def _prepare(self, request: DescriptorInput) -> tuple[RequestDescriptor, str] | Result:
        try:
            descriptor = normalize_descriptor(request, self._settings)
        except RemoteCacheError as exc:
            logger.debug("Rejected request %r: %s", request, exc)
            return Result.from_error(exc)

        fingerprint = fingerprint_for(descriptor, self._settings.fingerprint_policy)
        logger.debug("REQUEST URL: %s", descriptor.url)
        logger.debug("ARGS: %s", descriptor.model_dump_json())
        logger.debug(
            "CACHE KEY: %s (%s)",
            self._cache.key_for(fingerprint),
            describe_policy(self._settings.fingerprint_policy),
        )
        return descriptor, fingerprint

    def _check_throttle(
        self, descriptor: RequestDescriptor, fingerprint: str, started: float
    ) -> Optional[Result]:
        max_requests = self._settings.cache.max_requests
        if max_requests is None:
            return None
        decision = self._throttle.increment_and_check(
            fingerprint, max_requests, descriptor.expiration_seconds
        )
        if decision.allowed:
            return None

        result = Result(
            success=True,
            message=MESSAGE_THROTTLED,
            data=self._cache.get(fingerprint),
            expiration=descriptor.expiration_seconds,
        )
        self._emit("throttled", descriptor, fingerprint, result.message)
        self._log_result("Throttled", result, started)
        return result

    def _check_cache(
        self, descriptor: RequestDescriptor, fingerprint: str, started: float
    ) -> Optional[Result]:
        cached = self._cache.get(fingerprint)
        if cached is None:
            return None

        result = Result(
            success=True,
            message=MESSAGE_CACHED,
            data=cached,
            expiration=descriptor.expiration_seconds,
        )
        self._emit("cache_hit", descriptor, fingerprint, result.message)
        self._log_result("Cached", result, started)
        return result

    def _live(self, descriptor: RequestDescriptor, fingerprint: str, started: float) -> Result:
        try:
            outcome = self._transport.fetch_get(descriptor.url, descriptor.transport_options)
        except RemoteCacheError as exc:
            return self._finish(descriptor, fingerprint, Result.from_error(exc), started)
        return self._complete(descriptor, fingerprint, outcome, started)

    def _complete(
        self,
        descriptor: RequestDescriptor,
        fingerprint: str,
        outcome: TransportOutcome,
        started: float,
    ) -> Result:
        result = normalize_outcome(outcome, expiration=descriptor.expiration_seconds)
        return self._finish(descriptor, fingerprint, result, started)

    def _finish(
        self,
        descriptor: RequestDescriptor,
        fingerprint: str,
        result: Result,
        started: float,
    ) -> Result:
        self._emit("live_fetch", descriptor, fingerprint, result.message)
        if result.success:
            self._cache.set(fingerprint, result.data, descriptor.expiration_seconds)
            if self._exporter is not None:
                self._exporter.export(descriptor.export, result, fingerprint)
        self._log_result("Live", result, started)
        return result

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _release(self) -> None:
        close = getattr(self._transport, "close", None)
        if close is not None:
            close()
        self._cache.close()

    def _async_transport_open(self) -> bool:
        transport = self._async_transport
        if transport is None or not hasattr(transport, "aclose"):
            return False
        return getattr(transport, "is_open", True)

    def _run_aclose(self) -> None:
        try:
            asyncio.run(self._async_transport.aclose())
        except (RuntimeError, OSError) as exc:
            logger.warning("Could not close async transport: %s", exc)

    @contextlib.contextmanager
    def _flight(self, fingerprint: str) -> Iterator[None]:
        """Hold the per-fingerprint lock when single-flight is enabled."""
        if not self._settings.single_flight:
            yield
            return
        with self._flights_guard:
            flight = self._flights.get(fingerprint)
            if flight is None:
                flight = self._flights[fingerprint] = _Flight()
            flight.waiters += 1
        try:
            with flight.lock:
                yield
        finally:
            with self._flights_guard:
                flight.waiters -= 1
                if flight.waiters == 0:
                    del self._flights[fingerprint]

    def _emit(
        self, name: str, descriptor: RequestDescriptor, fingerprint: str, message: str
    ) -> None:
        if self._hook_runner is not None:
            self._hook_runner.emit(
                RequestEvent(name=name, fingerprint=fingerprint, url=descriptor.url, message=message)
            )

    def _log_result(self, source: str, result: Result, started: float) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug("RESULT: (%s) success=%s", source, result.success)
        logger.debug("MESSAGE: %s", result.message)
        logger.debug("DURATION: %.3fs", time.monotonic() - started)


# ------------------------------------------------------------------ #
# Default requester
# ------------------------------------------------------------------ #


def build_requester(
    settings: Optional[Settings] = None,
    transport: Optional[Transport] = None,
    async_transport: Optional[AsyncTransport] = None,
    hook_runner: Optional[HookRunner] = None,
) -> RemoteRequester:
    """Assemble a :class:`RemoteRequester` with the default collaborators.

    The response cache and throttle counter share one :class:`DiskTTLStore`
    in :func:`~remotecache.config.resolve_cache_directory`; exports go to a
    :class:`JsonOptionStore` and the local filesystem.

    Args:
        settings: Effective settings; :func:`resolve_settings` when omitted.
        transport: Blocking transport; an :class:`HttpxTransport` by default.
        async_transport: Non-blocking transport for :meth:`RemoteRequester.afetch`.
        hook_runner: Event runner shared by every component.
    """
    settings = settings or resolve_settings()
    if settings.debug:
        setup_logging(debug=True)
    hook_runner = hook_runner or HookRunner()

    store = DiskTTLStore(resolve_cache_directory(settings))
    cache = ResponseCache(store, settings.cache, hook_runner)
    throttle = ThrottleCounter(store, settings.cache.key_prefix, hook_runner)
    exporter = ResultExporter(
        JsonOptionStore(resolve_option_store_path(settings)),
        LocalFilesystem(),
        hook_runner,
    )
    return RemoteRequester(
        transport=transport or HttpxTransport(settings.request),
        cache=cache,
        throttle=throttle,
        exporter=exporter,
        settings=settings,
        hook_runner=hook_runner,
        async_transport=async_transport,
    )


_requester: Optional[RemoteRequester] = None
_requester_guard = threading.Lock()


def get_requester() -> RemoteRequester:
    """Return the default :class:`RemoteRequester`, building it on first use."""
    global _requester
    with _requester_guard:
        if _requester is None:
            _requester = build_requester()
        return _requester


def set_requester(requester: RemoteRequester) -> None:
    """Install *requester* as the default used by :func:`fetch_cached`."""
    global _requester
    with _requester_guard:
        _requester = requester


def reset_requester() -> None:
    """Close and forget the default requester.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _requester
    with _requester_guard:
        if _requester is not None:
            _requester.close()
        _requester = None


def fetch_cached(request: DescriptorInput) -> Result:
    """Fetch *request* through the default requester.

    *request* is either a bare URL string (all defaults apply) or a full
    descriptor mapping / :class:`~remotecache.models.RequestDescriptor`::

        fetch_cached("https://api.example.com/posts")
        fetch_cached({
            "url": "https://api.example.com/posts",
            "query_args": {"per_page": 5},
            "expiration_seconds": 3600,
        })

    Returns:
        A :class:`~remotecache.models.Result`; branch on ``result.success``.
    """
    return get_requester().fetch(request)

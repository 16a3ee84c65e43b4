"""Shared test fixtures for remotecache.

Provides isolated config directories, a disk-backed TTL store in
``tmp_path``, and a factory that wires a :class:`RemoteRequester` to an
:class:`httpx.MockTransport` handler so tests can count network calls.
These fixtures are automatically discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from remotecache.cache import DiskTTLStore, ResponseCache, ThrottleCounter
from remotecache.client import HttpxTransport
from remotecache.exporter import ResultExporter
from remotecache.fs import LocalFilesystem
from remotecache.hooks import HookRunner, RequestEvent
from remotecache.log import reset_logging
from remotecache.models import Settings
from remotecache.options import JsonOptionStore
from remotecache.requester import RemoteRequester, reset_requester


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_globals_between_tests() -> None:
    """Close the default requester and drop the Rich log handler after every test."""
    yield
    reset_requester()
    reset_logging()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user config,
    and clears all REMOTECACHE_* environment variables.
    """
    monkeypatch.setattr("remotecache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "REMOTECACHE_DEBUG",
        "REMOTECACHE_CACHE_DIR",
        "REMOTECACHE_MAX_REQUESTS",
        "REMOTECACHE_FINGERPRINT_POLICY",
        "REMOTECACHE_TIMEOUT",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store(tmp_path: Path) -> DiskTTLStore:
    """A DiskTTLStore in a disposable directory."""
    s = DiskTTLStore(tmp_path / "store")
    yield s
    s.close()


@pytest.fixture
def option_store(tmp_path: Path) -> JsonOptionStore:
    """A JsonOptionStore writing to tmp_path/options.json."""
    return JsonOptionStore(tmp_path / "options.json")


@pytest.fixture
def events() -> list[RequestEvent]:
    """List collecting every emitted RequestEvent."""
    return []


@pytest.fixture
def hook_runner(events: list[RequestEvent]) -> HookRunner:
    """HookRunner appending to the ``events`` fixture."""
    return HookRunner([events.append])


# ---------------------------------------------------------------------------
# Requester factory
# ---------------------------------------------------------------------------


class CountingHandler:
    """httpx.MockTransport handler that records requests and replays a response."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self._responder = responder
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)


def json_responder(data: Any, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    """Responder returning *data* as a JSON body."""

    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=data)

    return respond


@pytest.fixture
def make_requester(
    store: DiskTTLStore,
    option_store: JsonOptionStore,
    hook_runner: HookRunner,
) -> Callable[..., tuple[RemoteRequester, CountingHandler]]:
    """Factory building a RemoteRequester around a counting mock handler.

    Usage::

        requester, handler = make_requester(json_responder({"id": 1}))
        requester.fetch("https://api.example.com/items")
        assert handler.calls == 1
    """
    built: list[RemoteRequester] = []

    def factory(
        responder: Callable[[httpx.Request], httpx.Response],
        settings: Optional[Settings] = None,
    ) -> tuple[RemoteRequester, CountingHandler]:
        settings = settings or Settings()
        handler = CountingHandler(responder)
        requester = RemoteRequester(
            transport=HttpxTransport(settings.request, transport=httpx.MockTransport(handler)),
            cache=ResponseCache(store, settings.cache, hook_runner),
            throttle=ThrottleCounter(store, settings.cache.key_prefix, hook_runner),
            exporter=ResultExporter(option_store, LocalFilesystem(), hook_runner),
            settings=settings,
            hook_runner=hook_runner,
        )
        built.append(requester)
        return requester, handler

    yield factory
    for requester in built:
        close = getattr(requester._transport, "close", None)
        if close is not None:
            close()

"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for remotecache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.remotecache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Settings file** -- A single :class:`~remotecache.models.Settings`
  JSON file storing defaults (timeouts, cache location, throttle ceiling,
  fingerprint policy).
* **Precedence resolution** -- :func:`resolve_settings` merges explicit
  overrides, environment variables, and the settings file into the final
  effective configuration.
* **Default locations** -- :func:`resolve_cache_directory` and
  :func:`resolve_option_store_path` fill in paths the settings leave unset.

File writes go through :func:`~remotecache.fs.atomic_write`.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from remotecache.exceptions import ConfigError
from remotecache.fs import atomic_write
from remotecache.models import FingerprintPolicy, Settings

_APP_NAME = "remotecache"
_CONFIG_FILENAME = "config.json"
_ENV_PREFIX = "REMOTECACHE_"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/remotecache/`` (default ``~/.config/remotecache/``).
    On macOS/Windows: ``~/.remotecache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the diskcache store for responses and throttle counters.  Cached
    data can be safely deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/remotecache/`` (default ``~/.cache/remotecache/``).
    On macOS/Windows: ``~/.remotecache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (option store), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/remotecache/`` (default ``~/.local/share/remotecache/``).
    On macOS/Windows: ``~/.remotecache/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Settings file ---


def _settings_path() -> Path:
    """Path to the settings file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> Settings:
    """Load the settings file from the XDG config directory.

    Returns:
        The deserialised :class:`~remotecache.models.Settings`.  If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _settings_path()
    if not path.is_file():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Settings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist the settings atomically to disk."""
    data = settings.model_dump(mode="json")
    atomic_write(_settings_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def _env_overrides() -> dict[str, Any]:
    """Collect ``REMOTECACHE_*`` environment overrides as a nested update dict."""
    updates: dict[str, Any] = {}

    debug = os.environ.get(f"{_ENV_PREFIX}DEBUG")
    if debug:
        updates["debug"] = debug.strip().lower() in ("1", "true", "yes", "on")

    cache_dir = os.environ.get(f"{_ENV_PREFIX}CACHE_DIR")
    if cache_dir:
        updates.setdefault("cache", {})["directory"] = cache_dir

    max_requests = os.environ.get(f"{_ENV_PREFIX}MAX_REQUESTS")
    if max_requests:
        # "0" or "none" switches the refresh throttle off.
        value = max_requests.strip().lower()
        updates.setdefault("cache", {})["max_requests"] = (
            None if value in ("0", "none") else value
        )

    policy = os.environ.get(f"{_ENV_PREFIX}FINGERPRINT_POLICY")
    if policy:
        updates["fingerprint_policy"] = policy.strip().lower()

    timeout = os.environ.get(f"{_ENV_PREFIX}TIMEOUT")
    if timeout:
        updates.setdefault("request", {})["timeout"] = timeout

    return updates


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_settings(
    settings: Optional[Settings] = None,
    **overrides: Any,
) -> Settings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. Keyword ``overrides`` (nested dicts for sub-models, e.g.
           ``cache={"max_requests": 5}``)
        2. Environment variables (``REMOTECACHE_DEBUG``,
           ``REMOTECACHE_CACHE_DIR``, ``REMOTECACHE_MAX_REQUESTS``,
           ``REMOTECACHE_FINGERPRINT_POLICY``, ``REMOTECACHE_TIMEOUT``)
        3. *settings* if given, else the settings file
        4. Defaults

    Raises:
        ConfigError: If the settings file or an override is invalid.
    """
    base = settings if settings is not None else load_settings()
    data = base.model_dump(mode="json")
    data = _deep_merge(data, _env_overrides())
    data = _deep_merge(data, overrides)
    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings override: {exc}") from exc


def resolve_cache_directory(settings: Settings) -> Path:
    """Directory of the diskcache store (``<cache dir>/responses`` by default)."""
    if settings.cache.directory:
        return Path(settings.cache.directory).expanduser()
    return get_cache_dir() / "responses"


def resolve_option_store_path(settings: Settings) -> Path:
    """Path of the option store file (``<data dir>/options.json`` by default)."""
    if settings.export.option_store:
        return Path(settings.export.option_store).expanduser()
    return get_data_dir() / "options.json"


def describe_policy(policy: FingerprintPolicy) -> str:
    """Short human-readable description of a fingerprint policy, used in debug logs."""
    if policy is FingerprintPolicy.QUERY_ARGS:
        return "url+query_args"
    return "url+transport_options"

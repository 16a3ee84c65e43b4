"""Tests for remotecache.config -- XDG paths, settings file, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from remotecache.config import (
    describe_policy,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    load_settings,
    resolve_cache_directory,
    resolve_option_store_path,
    resolve_settings,
    save_settings,
)
from remotecache.exceptions import ConfigError
from remotecache.models import CacheConfig, ExportConfig, FingerprintPolicy, Settings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("remotecache.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "remotecache"
        assert result.is_dir()

    def test_cache_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_cache"
        monkeypatch.setattr("remotecache.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(custom))

        result = get_cache_dir()
        assert result == custom / "remotecache"
        assert result.is_dir()

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("remotecache.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_data_dir()
        assert result == tmp_path / ".local" / "share" / "remotecache"
        assert result.is_dir()


class TestXDGPathsFallback:
    """Fallback paths on non-XDG platforms (macOS, Windows)."""

    def test_config_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("remotecache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".remotecache"

    def test_cache_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("remotecache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_cache_dir() == tmp_path / ".remotecache" / "cache"

    def test_data_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("remotecache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_data_dir()
        assert result == tmp_path / ".remotecache" / "data"
        assert result.is_dir()


# ---------------------------------------------------------------------------
# Settings file
# ---------------------------------------------------------------------------


class TestSettingsFile:
    def test_load_returns_defaults_when_missing(self, isolated_config: Path) -> None:
        assert load_settings() == Settings()

    def test_save_and_load_roundtrip(self, isolated_config: Path) -> None:
        settings = Settings(
            cache=CacheConfig(max_requests=5, key_prefix="feeds"),
            fingerprint_policy=FingerprintPolicy.QUERY_ARGS,
        )
        save_settings(settings)
        assert load_settings().model_dump() == settings.model_dump()

    def test_saved_settings_are_valid_json(self, isolated_config: Path) -> None:
        save_settings(Settings())
        path = isolated_config / "config" / "remotecache" / "config.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["cache"]["max_requests"] == 3
        assert data["fingerprint_policy"] == "transport_options"

    def test_load_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        path = isolated_config / "config" / "remotecache" / "config.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings()

    def test_load_invalid_schema_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(
            isolated_config / "config" / "remotecache" / "config.json",
            {"cache": {"max_requests": 0}},
        )
        with pytest.raises(ConfigError):
            load_settings()


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveSettings:
    def test_defaults(self, isolated_config: Path) -> None:
        settings = resolve_settings()
        assert settings.cache.max_requests == 3
        assert settings.request.timeout == 60
        assert settings.debug is False

    def test_file_values_used(self, isolated_config: Path) -> None:
        _write_json(
            isolated_config / "config" / "remotecache" / "config.json",
            {"request": {"timeout": 15}},
        )
        assert resolve_settings().request.timeout == 15

    def test_env_overrides_file(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(
            isolated_config / "config" / "remotecache" / "config.json",
            {"request": {"timeout": 15}, "cache": {"max_requests": 4}},
        )
        monkeypatch.setenv("REMOTECACHE_TIMEOUT", "20")
        monkeypatch.setenv("REMOTECACHE_FINGERPRINT_POLICY", "QUERY_ARGS")
        monkeypatch.setenv("REMOTECACHE_DEBUG", "yes")

        settings = resolve_settings()
        assert settings.request.timeout == 20
        assert settings.cache.max_requests == 4
        assert settings.fingerprint_policy is FingerprintPolicy.QUERY_ARGS
        assert settings.debug is True

    @pytest.mark.parametrize("value", ["0", "none", "None"])
    def test_env_disables_throttle(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch, value: str
    ) -> None:
        monkeypatch.setenv("REMOTECACHE_MAX_REQUESTS", value)
        assert resolve_settings().cache.max_requests is None

    def test_explicit_overrides_win(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REMOTECACHE_MAX_REQUESTS", "7")
        settings = resolve_settings(cache={"max_requests": 2})
        assert settings.cache.max_requests == 2
        assert settings.cache.key_prefix == "remotecache"

    def test_explicit_settings_skip_file(self, isolated_config: Path) -> None:
        _write_json(
            isolated_config / "config" / "remotecache" / "config.json",
            {"request": {"timeout": 15}},
        )
        assert resolve_settings(Settings()).request.timeout == 60

    def test_invalid_override_raises_config_error(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid settings override"):
            resolve_settings(fingerprint_policy="everything")

    def test_invalid_env_raises_config_error(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("REMOTECACHE_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            resolve_settings()


# ---------------------------------------------------------------------------
# Default locations
# ---------------------------------------------------------------------------


class TestDefaultLocations:
    def test_cache_directory_default(self, isolated_config: Path) -> None:
        assert resolve_cache_directory(Settings()) == (
            isolated_config / "cache" / "remotecache" / "responses"
        )

    def test_cache_directory_configured(self, tmp_path: Path) -> None:
        settings = Settings(cache=CacheConfig(directory=str(tmp_path / "rc")))
        assert resolve_cache_directory(settings) == tmp_path / "rc"

    def test_option_store_default(self, isolated_config: Path) -> None:
        assert resolve_option_store_path(Settings()) == (
            isolated_config / "data" / "remotecache" / "options.json"
        )

    def test_option_store_configured(self, tmp_path: Path) -> None:
        settings = Settings(export=ExportConfig(option_store=str(tmp_path / "o.json")))
        assert resolve_option_store_path(settings) == tmp_path / "o.json"


def test_describe_policy() -> None:
    assert describe_policy(FingerprintPolicy.QUERY_ARGS) == "url+query_args"
    assert describe_policy(FingerprintPolicy.TRANSPORT_OPTIONS) == "url+transport_options"

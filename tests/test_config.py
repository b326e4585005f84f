"""Tests for restwire.config -- XDG paths, layered settings, credential sources."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from restwire.config import (
    env_settings,
    get_config_dir,
    load_config_file,
    resolve_credential,
    resolve_settings,
    user_config_path,
)
from restwire.exceptions import ConfigurationError
from restwire.models import ClientSettings, Mode


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


class TestConfigDir:
    def test_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("restwire.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
        assert get_config_dir() == tmp_path / "cfg" / "restwire"
        assert not get_config_dir().exists()

    def test_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("restwire.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".config" / "restwire"

    def test_non_xdg(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("restwire.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".restwire"


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------


class TestLoadConfigFile:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_config_file(tmp_path / "absent.json") == {}

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Invalid config"):
            load_config_file(path)

    def test_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "list.json"
        _write_json(path, [1, 2])
        with pytest.raises(ConfigurationError, match="JSON object"):
            load_config_file(path)


class TestResolveSettings:
    def test_defaults(self, isolated_config: Path) -> None:
        settings = resolve_settings()
        assert settings == ClientSettings()
        assert settings.mode is Mode.REST

    def test_precedence(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(
            user_config_path(),
            {"base_url": "https://user.example.com", "timeout": 1, "debug": True, "mode": "raw"},
        )
        _write_json(
            isolated_config / "restwire.json",
            {"base_url": "https://project.example.com", "timeout": 2},
        )
        monkeypatch.setenv("RESTWIRE_TIMEOUT", "3")

        settings = resolve_settings(max_redirects=4, timeout=None)

        assert settings.base_url == "https://project.example.com"
        assert settings.timeout == 3.0
        assert settings.debug is True
        assert settings.mode is Mode.RAW
        assert settings.max_redirects == 4

    def test_override_wins_over_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESTWIRE_MODE", "raw")
        assert resolve_settings(mode="rest").mode is Mode.REST

    def test_explicit_path(self, isolated_config: Path) -> None:
        path = isolated_config / "other.json"
        _write_json(path, {"headers": {"X-Env": "staging"}})
        assert resolve_settings(path=path).headers == {"X-Env": "staging"}

    def test_explicit_path_missing(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_settings(path=isolated_config / "absent.json")

    @pytest.mark.parametrize(
        "override",
        [{"timeout": 0}, {"max_redirects": -1}, {"mode": "turbo"}],
    )
    def test_invalid_values(self, isolated_config: Path, override: dict[str, Any]) -> None:
        with pytest.raises(ConfigurationError, match="Invalid client settings"):
            resolve_settings(**override)

    def test_env_settings(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESTWIRE_BASE_URL", "https://env.example.com")
        monkeypatch.setenv("RESTWIRE_DEBUG", "")
        assert env_settings() == {"base_url": "https://env.example.com"}


# ---------------------------------------------------------------------------
# Credential sources
# ---------------------------------------------------------------------------


class TestResolveCredential:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_TOKEN", "abc")
        assert resolve_credential("env:MY_TOKEN") == "abc"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MY_TOKEN", raising=False)
        with pytest.raises(ConfigurationError, match="MY_TOKEN"):
            resolve_credential("env:MY_TOKEN")

    def test_file(self, tmp_path: Path) -> None:
        path = tmp_path / "token"
        path.write_text("  s3cret\n")
        assert resolve_credential(f"file:{path}") == "s3cret"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'nope'}")

    def test_value(self) -> None:
        assert resolve_credential("value:user:pass") == "user:pass"

    def test_unknown(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown credential source"):
            resolve_credential("vault:secret/x")

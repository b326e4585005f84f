"""Settings resolution for restwire clients.

:func:`resolve_settings` builds a :class:`~restwire.models.ClientSettings`
from several layers. Precedence (high to low):

1. Explicit keyword overrides (e.g. CLI flags)
2. Environment variables (``RESTWIRE_BASE_URL``, ``RESTWIRE_TIMEOUT``,
   ``RESTWIRE_DEBUG``, ``RESTWIRE_MODE``, ``RESTWIRE_MAX_REDIRECTS``)
3. Project config (``./restwire.json`` or an explicit path)
4. User config (``$XDG_CONFIG_HOME/restwire/config.json``, or
   ``~/.restwire/config.json`` outside Linux/BSD)
5. Model defaults

:func:`resolve_credential` turns a credential source descriptor into the
secret itself, so configuration files never need to hold tokens.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from restwire.exceptions import ConfigurationError
from restwire.models import ClientSettings

_APP_NAME = "restwire"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "restwire.json"

_ENV_SETTINGS = {
    "RESTWIRE_BASE_URL": "base_url",
    "RESTWIRE_TIMEOUT": "timeout",
    "RESTWIRE_DEBUG": "debug",
    "RESTWIRE_MODE": "mode",
    "RESTWIRE_MAX_REDIRECTS": "max_redirects",
}


# --- Paths ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses XDG Base Directory paths (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the user configuration directory (not created).

    On Linux/BSD: ``$XDG_CONFIG_HOME/restwire/`` (default ``~/.config/restwire/``).
    On macOS/Windows: ``~/.restwire/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def user_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def project_config_path() -> Path:
    return Path.cwd() / _PROJECT_CONFIG_FILENAME


# --- Layers ---


def load_config_file(path: Path) -> dict[str, Any]:
    """Load one JSON settings file; a missing file yields an empty dict.

    Raises:
        ConfigurationError: If the file is not a JSON object.
    """
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError, OSError) as exc:
        raise ConfigurationError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config at {path} must contain a JSON object")
    return data


def env_settings() -> dict[str, str]:
    """Collect the ``RESTWIRE_*`` environment overrides that are set."""
    values: dict[str, str] = {}
    for var, field in _ENV_SETTINGS.items():
        value = os.environ.get(var)
        if value:
            values[field] = value
    return values


def resolve_settings(path: Optional[Path] = None, **overrides: Any) -> ClientSettings:
    """Resolve settings through the full precedence chain.

    Args:
        path: Project config file to use instead of ``./restwire.json``.
        **overrides: Highest-precedence values; ``None`` values are ignored.

    Raises:
        ConfigurationError: On unreadable files or invalid values.
    """
    merged: dict[str, Any] = {}
    merged.update(load_config_file(user_config_path()))

    project_path = path if path is not None else project_config_path()
    if path is not None and not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")
    merged.update(load_config_file(project_path))

    merged.update(env_settings())
    merged.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return ClientSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid client settings: {exc}") from exc


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"value:LITERAL"`` -- the literal text after the prefix

    Raises:
        ConfigurationError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigurationError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read credential file {path}: {exc}") from exc

    if source.startswith("value:"):
        return source[6:]

    raise ConfigurationError(f"Unknown credential source format: {source}")

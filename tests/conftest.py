"""Shared test fixtures for restwire.

Provides a recording mock transport, clients wired to it, isolated config
environments, and a CLI runner. These fixtures are automatically discovered
by pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

import restwire
from restwire.client import Client


Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            request.read()
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def json_reply(data: Any, status_code: int = 200, **kwargs: Any) -> httpx.Response:
    """Build an ``application/json`` reply."""
    return httpx.Response(status_code, json=data, **kwargs)


# ---------------------------------------------------------------------------
# Auto-reset the process-wide default client between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_default_client() -> None:
    yield
    restwire.reset_default_client()


# ---------------------------------------------------------------------------
# Transport and client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_client() -> Callable[..., tuple[Client, RecordingTransport]]:
    """Factory returning ``(client, transport)`` for a handler function.

    The client's debug log goes to an in-memory stream available as
    ``client.log_buffer``.
    """
    created: list[Client] = []

    def _make(handler: Handler, host_url: str = "https://api.example.com") -> tuple[Client, RecordingTransport]:
        transport = RecordingTransport(handler)
        buffer = io.StringIO()
        client = Client(host_url, transport=transport, log_stream=buffer)
        client.log_buffer = buffer  # type: ignore[attr-defined]
        created.append(client)
        return client, transport

    yield _make
    for client in created:
        client.close()


@pytest.fixture
def ok_client(make_client) -> tuple[Client, RecordingTransport]:
    """Client whose transport answers every request with ``{"ok": true}``."""
    return make_client(lambda request: json_reply({"ok": True}))


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME into tmp_path, clears all RESTWIRE_* variables
    and changes the working directory to tmp_path.
    """
    monkeypatch.setattr("restwire.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in [
        "RESTWIRE_BASE_URL",
        "RESTWIRE_TIMEOUT",
        "RESTWIRE_DEBUG",
        "RESTWIRE_MODE",
        "RESTWIRE_MAX_REDIRECTS",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

"""Debug log sink and request/response log rendering.

When a client has debug enabled, the built-in ``RequestLogger`` and
``ResponseLogger`` entries write one block per request and per response to
the client's :class:`DebugLog`. The sink is any writable text stream (stderr
by default) wrapped in a Rich :class:`~rich.console.Console` with colour,
markup and highlighting turned off so that captured logs are plain text.

Each block opens with a line carrying the fixed prefix and a timestamp::

    RESTWIRE 2024/05/01 12:00:00
    ---------------------- REQUEST LOG -----------------------
    POST  /users?page=2  HTTP/1.1
    HOST   : api.example.com
    HEADERS:
                 Content-Type: application/json; charset=utf-8
    BODY   :
    {
      "name": "alice"
    }
    ----------------------------------------------------------
"""

from __future__ import annotations

import base64
import sys
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Optional, TextIO

import httpx
from rich.console import Console

from restwire.content import (
    BodyKind,
    body_kind,
    indent_json,
    indent_xml,
    is_json_type,
    is_xml_type,
    to_plain,
)
from restwire.models import BODY_METHODS, HTTPMethod
from restwire.values import HDR_CONTENT_TYPE, canonical_header_key

if TYPE_CHECKING:
    from restwire.request import Request
    from restwire.response import Response

DEFAULT_LOG_PREFIX = "RESTWIRE "
NO_CONTENT = "***** NO CONTENT *****"
_RULE = "-" * 58


class DebugLog:
    """Plain-text log writer bound to one output stream.

    Args:
        stream: Destination stream. Defaults to ``sys.stderr``.
        prefix: Text placed at the start of every record's opening line.
    """

    def __init__(self, stream: Optional[TextIO] = None, prefix: str = DEFAULT_LOG_PREFIX) -> None:
        self.prefix = prefix
        self._console = Console(
            file=stream if stream is not None else sys.stderr,
            no_color=True,
            highlight=False,
            markup=False,
            emoji=False,
            soft_wrap=True,
        )

    def record(self, lines: Iterable[str]) -> None:
        """Write a timestamped record followed by *lines* without prefix."""
        stamp = datetime.now().strftime("%Y/%m/%d %H:%M:%S")
        self._console.print(f"{self.prefix}{stamp}")
        for line in lines:
            self._console.print(line)

    def printf(self, message: str) -> None:
        """Write a single prefixed, timestamped line."""
        stamp = datetime.now().strftime("%Y/%m/%d %H:%M:%S")
        self._console.print(f"{self.prefix}{stamp} {message}")


# ------------------------------------------------------------------ #
# Rendering
# ------------------------------------------------------------------ #


def _header_lines(headers: httpx.Headers) -> list[str]:
    grouped: dict[str, list[str]] = {}
    for key, value in headers.multi_items():
        grouped.setdefault(canonical_header_key(key), []).append(value)
    return [f"{key:>25}: {', '.join(values)}" for key, values in grouped.items()]


def request_body_string(request: Request) -> str:
    """Render the request body for the debug log.

    Form and multipart bodies are shown as encoded, structured values
    pretty-printed as JSON or XML, JSON text re-indented, other text as-is
    and raw bytes as base64.
    """
    if request.method not in {m.value for m in BODY_METHODS}:
        return NO_CONTENT

    if request.is_multipart or request.is_form_data:
        if request.body_bytes:
            return request.body_bytes.decode("utf-8", errors="replace")
        return NO_CONTENT

    if request.body is None:
        return NO_CONTENT

    content_type = request.header.get(HDR_CONTENT_TYPE, "")
    kind = body_kind(request.body)
    rendered: Optional[str] = None
    if kind is BodyKind.STRUCTURED:
        if is_xml_type(content_type) and request.body_bytes:
            rendered = indent_xml(request.body_bytes)
        else:
            rendered = indent_json(request.body_bytes) if request.body_bytes else None
            if rendered is None:
                rendered = str(to_plain(request.body))
    elif kind is BodyKind.TEXT:
        text = str(request.body)
        if is_json_type(content_type):
            rendered = indent_json(text)
        elif is_xml_type(content_type):
            rendered = indent_xml(text)
        if rendered is None:
            rendered = text
    else:
        rendered = base64.b64encode(bytes(request.body)).decode("ascii")

    return rendered if rendered else NO_CONTENT


def response_body_string(response: Response) -> str:
    """Render the response body for the debug log."""
    if not response.body:
        return NO_CONTENT
    if is_json_type(response.content_type):
        indented = indent_json(response.body)
        if indented is not None:
            return indented
    text = response.string()
    return text if text.strip() else NO_CONTENT


def request_log_lines(request: Request) -> list[str]:
    raw = request.raw_request
    method = request.method or HTTPMethod.GET.value
    if raw is not None:
        uri = raw.url.raw_path.decode("ascii")
        host = raw.url.netloc.decode("ascii")
        headers = raw.headers
    else:
        uri, host, headers = request.url, "", request.header
    return [
        "---------------------- REQUEST LOG -----------------------",
        f"{method}  {uri}  HTTP/1.1",
        f"HOST   : {host}",
        "HEADERS:",
        *_header_lines(headers),
        "BODY   :",
        request_body_string(request),
        _RULE,
    ]


def response_log_lines(response: Response) -> list[str]:
    elapsed_ms = response.elapsed.total_seconds() * 1000
    return [
        "---------------------- RESPONSE LOG -----------------------",
        f"STATUS       : {response.status}",
        f"RECEIVED AT  : {response.received_at.isoformat()}",
        f"RESPONSE TIME: {elapsed_ms:.3f}ms",
        "HEADERS:",
        *_header_lines(response.header),
        "BODY         :",
        response_body_string(response),
        _RULE,
    ]

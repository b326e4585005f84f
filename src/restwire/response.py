"""Immutable wrapper around a received reply.

A :class:`Response` is built by :meth:`restwire.client.Client.execute`
once the full body has been read, before the after-response chain runs.
Typed results are not stored on the response itself: :meth:`Response.result`
and :meth:`Response.error` surface whatever the chain wrote into the
originating request's containers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import httpx

from restwire.values import HDR_CONTENT_TYPE

if TYPE_CHECKING:
    from restwire.request import Request


@dataclass(frozen=True, eq=False)
class Response:
    """A received HTTP reply.

    Attributes:
        body: The complete reply body.
        received_at: When the body finished arriving.
        request: The request that produced this reply.
        raw_response: The underlying :class:`httpx.Response`.
    """

    body: bytes
    received_at: datetime
    request: Request
    raw_response: httpx.Response

    @property
    def status_code(self) -> int:
        return self.raw_response.status_code

    @property
    def status(self) -> str:
        """Status line without the protocol, e.g. ``"200 OK"``."""
        return f"{self.status_code} {self.raw_response.reason_phrase}".rstrip()

    @property
    def header(self) -> httpx.Headers:
        return self.raw_response.headers

    @property
    def content_type(self) -> str:
        return self.raw_response.headers.get(HDR_CONTENT_TYPE, "")

    @property
    def cookies(self) -> httpx.Cookies:
        return self.raw_response.cookies

    @property
    def elapsed(self) -> timedelta:
        """Time between dispatch and receipt of the full body."""
        if self.request.time is None:
            return timedelta(0)
        return self.received_at - self.request.time

    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def is_error(self) -> bool:
        return not self.is_success()

    def result(self) -> Any:
        """The value unmarshalled into the request's result container, if any."""
        return self.request.result

    def error(self) -> Any:
        """The value unmarshalled into the request's error container, if any."""
        return self.request.error

    def string(self) -> str:
        if not self.body:
            return ""
        encoding = self.raw_response.encoding or "utf-8"
        return self.body.decode(encoding, errors="replace")

    def __str__(self) -> str:
        return self.string()

    def __repr__(self) -> str:
        return f"<Response [{self.status}] {self.request.method} {self.request.url}>"

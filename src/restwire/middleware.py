"""Middleware protocols and the built-in pipeline entries.

A client runs two ordered chains around every request:

* **before-request** entries receive ``(client, request)`` and may mutate the
  request or abort by raising.
* **after-response** entries receive ``(client, response)`` and may inspect
  the reply, fill result containers, or abort by raising.

Entries are objects with an ``apply`` method (:class:`RequestMiddleware`,
:class:`ResponseMiddleware`). Plain functions are accepted too and wrapped by
:func:`as_request_middleware` / :func:`as_response_middleware`; a function
may signal failure either by raising or by returning an exception instance.

The default before-request chain is::

    ParseRequestURL -> ParseRequestHeader -> ParseRequestBody ->
    AddCredentials -> <user entries> -> CreateTransportRequest -> RequestLogger

and the default after-response chain is ``ResponseLogger -> ParseResponseBody``
in ``rest`` mode (``ResponseLogger`` alone in ``raw`` mode) followed by user
entries.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Optional, Protocol, Union, runtime_checkable

import httpx

from restwire import __version__
from restwire.content import (
    FORM_CONTENT_TYPE,
    detect_content_type,
    is_json_type,
    is_xml_type,
    marshal,
    unmarshal,
)
from restwire.exceptions import ConfigurationError
from restwire.models import BODY_METHODS, BasicAuth
from restwire.multipart import build_multipart, encode_form
from restwire.output import request_log_lines, response_log_lines
from restwire.request import is_container_type
from restwire.values import (
    HDR_ACCEPT,
    HDR_AUTHORIZATION,
    HDR_CONTENT_LENGTH,
    HDR_CONTENT_TYPE,
    HDR_COOKIE,
    HDR_USER_AGENT,
    canonical_header_key,
)

if TYPE_CHECKING:
    from restwire.client import Client
    from restwire.request import Request
    from restwire.response import Response

USER_AGENT = f"restwire/{__version__}"

_BODY_METHOD_NAMES = frozenset(method.value for method in BODY_METHODS)
_BODYLESS_STATUSES = frozenset({204, 304})


@runtime_checkable
class RequestMiddleware(Protocol):
    def apply(self, client: Client, request: Request) -> Any: ...


@runtime_checkable
class ResponseMiddleware(Protocol):
    def apply(self, client: Client, response: Response) -> Any: ...


RequestMiddlewareLike = Union[RequestMiddleware, Callable[["Client", "Request"], Any]]
ResponseMiddlewareLike = Union[ResponseMiddleware, Callable[["Client", "Response"], Any]]


class _FunctionMiddleware:
    """Adapter turning a plain function into a middleware object."""

    def __init__(self, func: Callable[..., Any]) -> None:
        self.func = func

    def apply(self, client: Client, target: Any) -> None:
        outcome = self.func(client, target)
        if isinstance(outcome, BaseException):
            raise outcome

    def __repr__(self) -> str:
        return f"<middleware {getattr(self.func, '__qualname__', self.func)!r}>"


def as_request_middleware(entry: RequestMiddlewareLike) -> RequestMiddleware:
    if isinstance(entry, RequestMiddleware):
        return entry
    if callable(entry):
        return _FunctionMiddleware(entry)
    raise TypeError(f"Not a request middleware: {entry!r}")


def as_response_middleware(entry: ResponseMiddlewareLike) -> ResponseMiddleware:
    if isinstance(entry, ResponseMiddleware):
        return entry
    if callable(entry):
        return _FunctionMiddleware(entry)
    raise TypeError(f"Not a response middleware: {entry!r}")


def middleware_name(entry: Any) -> str:
    if isinstance(entry, _FunctionMiddleware):
        return getattr(entry.func, "__qualname__", repr(entry.func))
    return type(entry).__name__


# ------------------------------------------------------------------ #
# Before-request built-ins
# ------------------------------------------------------------------ #


class ParseRequestURL:
    """Resolve the request URL against the host URL and merge query parameters.

    Query precedence: parameters already in the URL come first, then the
    client's parameters for keys the request does not set, then the
    request's own parameters.
    """

    def apply(self, client: Client, request: Request) -> None:
        url = request.url
        try:
            parsed = httpx.URL(url)
            if parsed.is_relative_url:
                if not client.host_url:
                    raise ConfigurationError(
                        f"Request URL '{url}' is relative and the client has no host URL"
                    )
                parsed = httpx.URL(f"{client.host_url.rstrip('/')}/{url.lstrip('/')}")
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"Invalid request URL '{url}': {exc}") from exc

        params = request.query_param.merged_over(client.query_param)
        if params:
            pairs = list(parsed.params.multi_items()) + params.multi_items()
            parsed = parsed.copy_with(params=httpx.QueryParams(pairs))
        request.url = str(parsed)


class ParseRequestHeader:
    """Merge client headers under request headers and fill in defaults."""

    def apply(self, client: Client, request: Request) -> None:
        headers = httpx.Headers()
        for key, value in client.header.items():
            headers[canonical_header_key(key)] = value
        for key, value in request.header.items():
            headers[canonical_header_key(key)] = value

        if not headers.get(HDR_USER_AGENT, "").strip():
            headers[HDR_USER_AGENT] = USER_AGENT
        if not headers.get(HDR_ACCEPT, "").strip() and headers.get(HDR_CONTENT_TYPE):
            headers[HDR_ACCEPT] = headers[HDR_CONTENT_TYPE]
        request.header = headers


class ParseRequestBody:
    """Resolve the body bytes and ``Content-Type`` for POST, PUT and PATCH.

    Multipart uploads win over url-encoded form data, which wins over a
    body value. A body value without an explicit ``Content-Type`` gets the
    type detected from its kind.
    """

    def apply(self, client: Client, request: Request) -> None:
        if request.method not in _BODY_METHOD_NAMES:
            return

        body: Optional[bytes] = None
        if request.is_multipart:
            form = request.form_data.merged_over(client.form_data)
            body, content_type = build_multipart(request.method, request.url, form)
            request.header[HDR_CONTENT_TYPE] = content_type
        elif client.form_data or request.form_data:
            request.is_form_data = True
            form = request.form_data.merged_over(client.form_data)
            body = encode_form(request.method, request.url, form)
            request.header[HDR_CONTENT_TYPE] = FORM_CONTENT_TYPE
        elif request.body is not None:
            content_type = request.header.get(HDR_CONTENT_TYPE, "")
            if not content_type.strip():
                content_type = detect_content_type(request.body)
                request.header[HDR_CONTENT_TYPE] = content_type
            body = marshal(content_type, request.body)

        request.body_bytes = body
        if client.force_content_length or request.force_content_length:
            request.header[HDR_CONTENT_LENGTH] = str(len(body or b""))


def basic_auth_header(user: BasicAuth) -> str:
    token = base64.b64encode(f"{user.username}:{user.password}".encode("utf-8"))
    return f"Basic {token.decode('ascii')}"


def bearer_auth_header(token: str) -> str:
    return f"Bearer {token}"


class AddCredentials:
    """Attach an ``Authorization`` header.

    Precedence: request basic auth, request token, client basic auth, client
    token. At the same level basic auth wins over a token.
    """

    def apply(self, client: Client, request: Request) -> None:
        if request.user_info is not None:
            value = basic_auth_header(request.user_info)
        elif request.token:
            value = bearer_auth_header(request.token)
        elif client.user_info is not None:
            value = basic_auth_header(client.user_info)
        elif client.token:
            value = bearer_auth_header(client.token)
        else:
            return
        request.header[HDR_AUTHORIZATION] = value


class CreateTransportRequest:
    """Build the :class:`httpx.Request` that goes on the wire."""

    def apply(self, client: Client, request: Request) -> None:
        headers = httpx.Headers(request.header)
        if client.cookies:
            cookie_str = "; ".join(f"{c.name}={c.value}" for c in client.cookies)
            existing = headers.get(HDR_COOKIE)
            if existing:
                cookie_str = f"{existing}; {cookie_str}"
            headers[HDR_COOKIE] = cookie_str

        try:
            request.raw_request = client.http.build_request(
                request.method,
                request.url,
                headers=headers,
                content=request.body_bytes,
            )
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"Invalid request URL '{request.url}': {exc}") from exc


class RequestLogger:
    """Write the prepared request to the debug log when debug is enabled."""

    def apply(self, client: Client, request: Request) -> None:
        if client.debug:
            client.log.record(request_log_lines(request))


# ------------------------------------------------------------------ #
# After-response built-ins
# ------------------------------------------------------------------ #


class ResponseLogger:
    """Write the received response to the debug log when debug is enabled."""

    def apply(self, client: Client, response: Response) -> None:
        if client.debug:
            client.log.record(response_log_lines(response))


class ParseResponseBody:
    """Unmarshal JSON/XML replies into the request's result or error container.

    2xx replies fill the result container, any other status fills the error
    container (falling back to the client's error prototype). Nothing
    happens when no container applies, the reply is neither JSON nor XML,
    or the reply carries no body (HEAD, 204, 304 or an empty payload).
    """

    def apply(self, client: Client, response: Response) -> None:
        content_type = response.content_type
        if not (is_json_type(content_type) or is_xml_type(content_type)):
            return

        request = response.request
        if request.method == "HEAD" or response.status_code in _BODYLESS_STATUSES:
            return
        if not response.body.strip():
            return
        if response.is_success():
            if request.result_container is not None:
                request.result = unmarshal(content_type, response.body, request.result_container)
            return

        container = request.error_container
        if container is None and client.error is not None:
            prototype = client.error
            container = prototype if is_container_type(prototype) else type(prototype)
            request.error_container = container
        if container is not None:
            request.error = unmarshal(content_type, response.body, container)


def default_before_request() -> list[RequestMiddleware]:
    return [
        ParseRequestURL(),
        ParseRequestHeader(),
        ParseRequestBody(),
        AddCredentials(),
        CreateTransportRequest(),
        RequestLogger(),
    ]

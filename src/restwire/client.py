"""Shared client configuration and the request execution pipeline.

:class:`Client` holds the defaults every request inherits (host URL,
headers, query parameters, form data, credentials, cookies), the transport
handle, the debug log, the mode, and the two middleware chains. Its
:meth:`~Client.execute` method is the single entry point that runs a
:class:`~restwire.request.Request` through the full pipeline:

1. before-request chain, in order (no network traffic if it fails);
2. dispatch timestamp;
3. network call through the shared :class:`httpx.Client`, following
   redirects only as far as the redirect policy allows;
4. :class:`~restwire.response.Response` built from the fully read body;
5. after-response chain, in order;
6. the response is returned.

Failures raise a :class:`~restwire.exceptions.RestwireError`. Errors raised
by the after-response chain carry the already built response in
``exc.response``; every earlier failure carries ``None``.

Setters return the client so configuration can be chained. They are meant
to be called during a single-threaded setup phase: the client does not lock
its collections, and changing them while other threads execute requests is
unsupported. The underlying ``httpx.Client`` connection pool is safe to share
between concurrent executions.

Example::

    client = (
        Client("https://api.example.com")
        .set_header("Accept", "application/json")
        .set_auth_token("s3cr3t")
        .set_timeout(10)
    )
    response = client.new_request().set_result(Status).get("/status")
"""

from __future__ import annotations

import logging
import ssl
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any, Optional, TextIO, Union

import httpx

from restwire.config import resolve_credential
from restwire.exceptions import (
    ConfigurationError,
    MiddlewareError,
    RestwireError,
    TransportError,
)
from restwire.middleware import (
    ParseResponseBody,
    RequestMiddleware,
    RequestMiddlewareLike,
    ResponseLogger,
    ResponseMiddleware,
    ResponseMiddlewareLike,
    as_request_middleware,
    as_response_middleware,
    default_before_request,
    middleware_name,
)
from restwire.models import BasicAuth, ClientSettings, Cookie, Mode
from restwire.output import DEFAULT_LOG_PREFIX, DebugLog
from restwire.redirect import (
    RedirectPolicy,
    flexible_redirect_policy,
    no_redirect_policy,
    send_with_redirects,
)
from restwire.request import Request
from restwire.response import Response
from restwire.values import Values, ValueInput, canonical_header_key

logger = logging.getLogger(__name__)

RAW_MODE_MAX_REDIRECTS = 10

# Trailing built-ins (CreateTransportRequest, RequestLogger) that user
# before-request entries are inserted in front of.
_BEFORE_REQUEST_TAIL = 2


class Client:
    """Shared HTTP client configuration with a two-phase middleware pipeline.

    Args:
        host_url: Prefix joined onto relative request URLs.
        transport: Optional custom ``httpx`` transport (e.g.
            :class:`httpx.MockTransport` in tests).
        log_stream: Debug log destination. Defaults to stderr.
    """

    def __init__(
        self,
        host_url: str = "",
        *,
        transport: Optional[httpx.BaseTransport] = None,
        log_stream: Optional[TextIO] = None,
    ) -> None:
        self.host_url = host_url
        self.header = httpx.Headers()
        self.query_param = Values()
        self.form_data = Values()
        self.user_info: Optional[BasicAuth] = None
        self.token = ""
        self.cookies: list[Cookie] = []
        self.error: Any = None
        self.debug = False
        self.log = DebugLog(log_stream)
        self.force_content_length = False
        self.mode = Mode.REST
        self.redirect_policy: RedirectPolicy = no_redirect_policy

        self._transport = transport
        self._timeout: Optional[float] = None
        self._verify: Union[ssl.SSLContext, bool] = True
        self._http: Optional[httpx.Client] = None

        self._before_request: list[RequestMiddleware] = default_before_request()
        self._builtin_after_response: list[ResponseMiddleware] = []
        self._user_after_response: list[ResponseMiddleware] = []
        self.set_mode(Mode.REST)

    @classmethod
    def from_settings(cls, settings: ClientSettings, **kwargs: Any) -> Client:
        """Build a client from :class:`~restwire.models.ClientSettings`.

        Credential sources are resolved immediately.

        Raises:
            ConfigurationError: If a credential source cannot be resolved or
                the basic-auth credential lacks a ``username:password`` colon.
        """
        client = cls(settings.base_url, **kwargs)
        client.set_mode(settings.mode)
        client.set_debug(settings.debug)
        client.set_content_length(settings.set_content_length)
        client.set_tls_client_config(settings.verify_ssl)
        client.set_headers(settings.headers)
        client.set_query_params(settings.query_params)
        if settings.timeout is not None:
            client.set_timeout(settings.timeout)
        if settings.max_redirects is not None:
            client.set_redirect_policy(flexible_redirect_policy(settings.max_redirects))
        if settings.token_source:
            client.set_auth_token(resolve_credential(settings.token_source))
        if settings.basic_auth_source:
            raw = resolve_credential(settings.basic_auth_source)
            username, sep, password = raw.partition(":")
            if not sep:
                raise ConfigurationError(
                    "Basic auth credential must be in 'username:password' format "
                    "(colon separator is required)"
                )
            client.set_basic_auth(username, password)
        return client

    # ------------------------------------------------------------------ #
    # Transport handle
    # ------------------------------------------------------------------ #

    @property
    def http(self) -> httpx.Client:
        """The shared ``httpx.Client``, created on first use.

        Its cookie jar refuses every cookie, so a reply's ``Set-Cookie`` never
        leaks into later requests; only configured cookies are sent.
        """
        if self._http is None:
            kwargs: dict[str, Any] = {
                "follow_redirects": False,
                "timeout": httpx.Timeout(self._timeout),
                "verify": self._verify,
                "cookies": httpx.Cookies(CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))),
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._http = httpx.Client(**kwargs)
        return self._http

    def _reset_http(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    def close(self) -> None:
        """Close the underlying connection pool."""
        self._reset_http()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Chainable configuration
    # ------------------------------------------------------------------ #

    def set_host_url(self, url: str) -> Client:
        self.host_url = url
        return self

    def set_header(self, header: str, value: str) -> Client:
        self.header[canonical_header_key(header)] = value
        return self

    def set_headers(self, headers: Mapping[str, str]) -> Client:
        for header, value in headers.items():
            self.set_header(header, value)
        return self

    def set_query_param(self, param: str, value: str) -> Client:
        self.query_param.add(param, value)
        return self

    def set_query_params(self, params: Mapping[str, ValueInput]) -> Client:
        for key, values in Values(params).to_dict().items():
            for value in values:
                self.query_param.add(key, value)
        return self

    def set_form_data(self, data: Mapping[str, ValueInput]) -> Client:
        for key, values in Values(data).to_dict().items():
            for value in values:
                self.form_data.add(key, value)
        return self

    def set_cookie(self, cookie: Cookie) -> Client:
        self.cookies.append(cookie)
        return self

    def set_cookies(self, cookies: Iterable[Cookie]) -> Client:
        self.cookies.extend(cookies)
        return self

    def set_basic_auth(self, username: str, password: str) -> Client:
        self.user_info = BasicAuth(username=username, password=password)
        return self

    def set_auth_token(self, token: str) -> Client:
        self.token = token
        return self

    def set_error(self, container: Any) -> Client:
        """Set the error container used by requests that do not set their own."""
        self.error = container
        return self

    def set_debug(self, debug: bool = True) -> Client:
        self.debug = debug
        return self

    def set_logger(self, stream: Optional[TextIO], prefix: str = DEFAULT_LOG_PREFIX) -> Client:
        """Send the debug log to *stream* (stderr when ``None``)."""
        self.log = DebugLog(stream, prefix=prefix)
        return self

    def set_content_length(self, enabled: bool = True) -> Client:
        self.force_content_length = enabled
        return self

    def set_redirect_policy(self, policy: RedirectPolicy) -> Client:
        self.redirect_policy = policy
        return self

    def set_mode(self, mode: Union[Mode, str]) -> Client:
        """Switch between ``rest`` and ``raw`` behaviour.

        ``rest`` refuses redirects and unmarshals JSON/XML bodies; ``raw``
        follows up to 10 redirects and leaves bodies as strings. Either call
        replaces the redirect policy; user after-response entries are kept.
        """
        try:
            self.mode = Mode(getattr(mode, "value", mode))
        except ValueError as exc:
            raise ConfigurationError(f"Unknown client mode '{mode}'") from exc

        if self.mode is Mode.RAW:
            self.redirect_policy = flexible_redirect_policy(RAW_MODE_MAX_REDIRECTS)
            self._builtin_after_response = [ResponseLogger()]
        else:
            self.redirect_policy = no_redirect_policy
            self._builtin_after_response = [ResponseLogger(), ParseResponseBody()]
        return self

    def set_rest_mode(self) -> Client:
        return self.set_mode(Mode.REST)

    def set_raw_mode(self) -> Client:
        return self.set_mode(Mode.RAW)

    def set_timeout(self, timeout: Union[float, timedelta]) -> Client:
        """Apply a timeout to the transport and a deadline to each exchange.

        The deadline covers every redirect hop and the full body read. Expiry
        surfaces as :class:`~restwire.exceptions.TransportError`.
        """
        if isinstance(timeout, timedelta):
            timeout = timeout.total_seconds()
        self._timeout = float(timeout)
        self._reset_http()
        return self

    def set_tls_client_config(self, verify: Union[ssl.SSLContext, bool]) -> Client:
        """Set TLS verification: an SSL context, or ``False`` to skip verification."""
        self._verify = verify
        self._reset_http()
        return self

    def set_transport(self, transport: Optional[httpx.BaseTransport]) -> Client:
        self._transport = transport
        self._reset_http()
        return self

    # ------------------------------------------------------------------ #
    # Middleware
    # ------------------------------------------------------------------ #

    def on_before_request(self, middleware: RequestMiddlewareLike) -> Client:
        """Register a before-request entry.

        User entries run after the built-in URL, header, body and credential
        steps and before the transport request is built and logged, so they
        see the prepared request and their changes reach the wire.
        """
        position = len(self._before_request) - _BEFORE_REQUEST_TAIL
        self._before_request.insert(position, as_request_middleware(middleware))
        return self

    def on_after_response(self, middleware: ResponseMiddlewareLike) -> Client:
        """Register an after-response entry, run after the built-ins."""
        self._user_after_response.append(as_response_middleware(middleware))
        return self

    @property
    def before_request(self) -> list[RequestMiddleware]:
        return list(self._before_request)

    @property
    def after_response(self) -> list[ResponseMiddleware]:
        return self._builtin_after_response + self._user_after_response

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def new_request(self) -> Request:
        """Return a fresh request bound to this client."""
        return Request(self)

    r = new_request

    def execute(self, request: Request) -> Response:
        """Run *request* through the full pipeline.

        Returns:
            The response, once every stage succeeded.

        Raises:
            ConfigurationError: Invalid request detected before sending.
            SerializationError: Body marshal (before send, no response) or
                unmarshal (after send, ``exc.response`` set) failure.
            TransportError: Connection, DNS, TLS, timeout or refused redirect.
            MiddlewareError: A chain entry failed; ``exc.response`` is set
                when the failure happened after the reply was received.
        """
        for entry in self._before_request:
            self._apply(entry, request, None, "before-request")

        if request.raw_request is None:
            raise ConfigurationError("Before-request chain did not build a transport request")

        request.time = datetime.now(timezone.utc)
        try:
            raw, body = send_with_redirects(
                self.http, request.raw_request, self.redirect_policy, self._timeout
            )
        except TransportError:
            raise
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request timed out: {exc}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        response = Response(
            body=body,
            received_at=datetime.now(timezone.utc),
            request=request,
            raw_response=raw,
        )

        for entry in self.after_response:
            self._apply(entry, response, response, "after-response")
        return response

    def _apply(
        self,
        entry: Any,
        target: Any,
        response: Optional[Response],
        phase: str,
    ) -> None:
        try:
            entry.apply(self, target)
        except RestwireError as exc:
            if exc.response is None:
                exc.response = response
            raise
        except Exception as exc:
            name = middleware_name(entry)
            logger.debug("%s middleware %s failed: %s", phase, name, exc)
            raise MiddlewareError(
                f"{phase.capitalize()} middleware {name} failed: {exc}",
                response=response,
            ) from exc

"""Per-call request builder.

A :class:`Request` is obtained from :meth:`restwire.client.Client.new_request`,
configured with chainable setters and issued with one of the verb methods::

    response = (
        client.new_request()
        .set_header("Accept", "application/json")
        .set_query_params({"page": "2"})
        .set_result(UserPage)
        .get("/users")
    )
    page = response.result()

Values set on the request override the client's defaults for the same key
when the request is sent; everything else falls back to the client.

A request is one-shot: the first verb call freezes ``method`` and ``url`` and
a second verb call raises :class:`~restwire.exceptions.ConfigurationError`.
Requests are not safe to configure from several threads at once.
"""

from __future__ import annotations

import typing
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

import httpx

from restwire.exceptions import ConfigurationError, UnsupportedOperationError
from restwire.models import MULTIPART_METHODS, BasicAuth, HTTPMethod
from restwire.multipart import file_field_key
from restwire.values import Values, ValueInput, canonical_header_key

if TYPE_CHECKING:
    from restwire.client import Client
    from restwire.response import Response


def is_container_type(container: Any) -> bool:
    """Whether *container* is a type to instantiate rather than an instance to fill."""
    return isinstance(container, type) or typing.get_origin(container) is not None


class Request:
    """A one-shot HTTP request bound to its owning :class:`~restwire.client.Client`.

    Attributes set by the pipeline while the request is executed:

    * ``body_bytes`` -- the encoded body that went on the wire.
    * ``time`` -- dispatch timestamp.
    * ``raw_request`` -- the :class:`httpx.Request` that was sent.
    """

    def __init__(self, client: Client) -> None:
        self.client = client
        self.url = ""
        self.method = ""
        self.header = httpx.Headers()
        self.query_param = Values()
        self.form_data = Values()
        self.user_info: Optional[BasicAuth] = None
        self.token = ""
        self.body: Any = None
        self.result_container: Any = None
        self.error_container: Any = None
        self.result: Any = None
        self.error: Any = None
        self.created_at = datetime.now(timezone.utc)
        self.time: Optional[datetime] = None
        self.raw_request: Optional[httpx.Request] = None
        self.body_bytes: Optional[bytes] = None
        self.is_multipart = False
        self.is_form_data = False
        self.force_content_length = False
        self._executed = False

    # ------------------------------------------------------------------ #
    # Headers, query and form
    # ------------------------------------------------------------------ #

    def set_header(self, header: str, value: str) -> Request:
        self.header[canonical_header_key(header)] = value
        return self

    def set_headers(self, headers: Mapping[str, str]) -> Request:
        for header, value in headers.items():
            self.set_header(header, value)
        return self

    def set_query_param(self, param: str, value: str) -> Request:
        self.query_param.add(param, value)
        return self

    def set_query_params(self, params: Mapping[str, ValueInput]) -> Request:
        for key, values in Values(params).to_dict().items():
            for value in values:
                self.query_param.add(key, value)
        return self

    def set_form_data(self, data: Mapping[str, ValueInput]) -> Request:
        for key, values in Values(data).to_dict().items():
            for value in values:
                self.form_data.add(key, value)
        return self

    # ------------------------------------------------------------------ #
    # Body and containers
    # ------------------------------------------------------------------ #

    def set_body(self, body: Any) -> Request:
        """Set the body: bytes, text, or a structured value marshalled at send time."""
        self.body = body
        return self

    def set_result(self, container: Any) -> Request:
        """Set the container a 2xx JSON/XML reply is unmarshalled into."""
        self.result_container = container
        self.result = None if is_container_type(container) else container
        return self

    def set_error(self, container: Any) -> Request:
        """Set the container a non-2xx JSON/XML reply is unmarshalled into."""
        self.error_container = container
        self.error = None if is_container_type(container) else container
        return self

    def set_file(self, field: str, path: str) -> Request:
        """Attach a file upload; turns the request into ``multipart/form-data``."""
        self.form_data.set(file_field_key(field), str(path))
        self.is_multipart = True
        return self

    def set_files(self, files: Mapping[str, str]) -> Request:
        for field, path in files.items():
            self.set_file(field, path)
        return self

    def set_content_length(self, enabled: bool = True) -> Request:
        self.force_content_length = enabled
        return self

    # ------------------------------------------------------------------ #
    # Auth
    # ------------------------------------------------------------------ #

    def set_basic_auth(self, username: str, password: str) -> Request:
        self.user_info = BasicAuth(username=username, password=password)
        return self

    def set_auth_token(self, token: str) -> Request:
        self.token = token
        return self

    # ------------------------------------------------------------------ #
    # Verbs
    # ------------------------------------------------------------------ #

    def get(self, url: str) -> Response:
        return self.execute(HTTPMethod.GET, url)

    def post(self, url: str) -> Response:
        return self.execute(HTTPMethod.POST, url)

    def put(self, url: str) -> Response:
        return self.execute(HTTPMethod.PUT, url)

    def delete(self, url: str) -> Response:
        return self.execute(HTTPMethod.DELETE, url)

    def patch(self, url: str) -> Response:
        return self.execute(HTTPMethod.PATCH, url)

    def head(self, url: str) -> Response:
        return self.execute(HTTPMethod.HEAD, url)

    def options(self, url: str) -> Response:
        return self.execute(HTTPMethod.OPTIONS, url)

    def execute(self, method: HTTPMethod | str, url: str) -> Response:
        """Freeze *method* and *url* and run the client's pipeline.

        Raises:
            UnsupportedOperationError: For a file upload with a verb other
                than POST or PUT.
            ConfigurationError: For an unknown verb or a second execution.
        """
        try:
            verb = HTTPMethod(str(getattr(method, "value", method)).upper())
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported HTTP verb [{method}]") from exc

        if self._executed:
            raise ConfigurationError(
                "Request already executed; create a new one with Client.new_request()"
            )
        if self.is_multipart and verb not in MULTIPART_METHODS:
            raise UnsupportedOperationError(
                f"File upload is not allowed in HTTP verb [{verb.value}]"
            )

        self._executed = True
        self.method = verb.value
        self.url = url
        return self.client.execute(self)

    @property
    def executed(self) -> bool:
        return self._executed

    def __repr__(self) -> str:
        return f"<Request {self.method or '?'} {self.url or '?'}>"

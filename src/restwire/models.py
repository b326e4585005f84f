"""Pydantic models and enums shared across restwire.

**Enums**:
    :class:`HTTPMethod` and :class:`Mode`.

**Value models** -- small immutable records attached to clients and requests:
    :class:`BasicAuth` and :class:`Cookie`.

**Configuration model** -- :class:`ClientSettings`, the serialisable form of a
client's defaults, loaded by :func:`restwire.config.resolve_settings` and
applied by :meth:`restwire.client.Client.from_settings`.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HTTPMethod(str, enum.Enum):
    """HTTP methods a :class:`~restwire.request.Request` can be issued with."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


# Verbs that may carry a request body built by the pipeline.
BODY_METHODS = frozenset({HTTPMethod.POST, HTTPMethod.PUT, HTTPMethod.PATCH})

# Verbs a file upload is allowed on.
MULTIPART_METHODS = frozenset({HTTPMethod.POST, HTTPMethod.PUT})


class Mode(str, enum.Enum):
    """Client-wide switch selecting redirect policy and body parsing.

    ``REST`` refuses redirects and unmarshals JSON/XML replies into the
    request's result or error container. ``RAW`` follows up to 10 redirects
    and treats every reply as an opaque string.
    """

    REST = "rest"
    RAW = "raw"


class BasicAuth(BaseModel):
    """Username and password for HTTP Basic authentication."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: str = ""


class Cookie(BaseModel):
    """A cookie sent with every request of a client.

    Only ``name`` and ``value`` reach the wire (as a ``Cookie`` header); the
    remaining attributes are kept for callers that mirror server cookies.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    value: str = ""
    path: Optional[str] = None
    domain: Optional[str] = None
    expires: Optional[datetime] = None
    max_age: Optional[int] = None
    secure: bool = False
    http_only: bool = False


class ClientSettings(BaseModel):
    """Serialisable defaults for a :class:`~restwire.client.Client`.

    Example::

        ClientSettings(
            base_url="https://api.example.com",
            timeout=10,
            headers={"Accept": "application/json"},
            token_source="env:API_TOKEN",
        )
    """

    base_url: str = Field(default="", description="Prefix joined onto relative request URLs")
    timeout: Optional[float] = Field(
        default=None, description="Connect and exchange timeout in seconds"
    )
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    debug: bool = Field(default=False, description="Log every request and response")
    mode: Mode = Field(default=Mode.REST, description="rest or raw")
    max_redirects: Optional[int] = Field(
        default=None,
        description="Redirect hops to allow; overrides the mode's policy when set",
    )
    set_content_length: bool = Field(
        default=False, description="Always send an explicit Content-Length header"
    )
    headers: dict[str, str] = Field(default_factory=dict)
    query_params: dict[str, str] = Field(default_factory=dict)
    token_source: Optional[str] = Field(
        default=None, description="Credential source for a bearer token (env:, file:, value:)"
    )
    basic_auth_source: Optional[str] = Field(
        default=None,
        description="Credential source resolving to 'username:password'",
    )

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @field_validator("max_redirects")
    @classmethod
    def _non_negative_redirects(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError("max_redirects must not be negative")
        return value

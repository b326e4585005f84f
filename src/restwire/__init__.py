"""restwire -- fluent HTTP client core with a two-phase middleware pipeline.

A :class:`Client` holds shared defaults and two middleware chains; a
:class:`Request` obtained from it is configured fluently and issued with a
verb method; the resulting :class:`Response` exposes the raw body plus the
typed result or error that the after-response chain unmarshalled.

Typical use::

    import restwire

    client = restwire.Client("https://api.example.com").set_auth_token(token)
    response = client.new_request().set_result(User).get("/users/42")
    user = response.result()

A process-wide default client is available through :func:`get_default_client`
and :func:`new_request` for scripts that do not need their own.

Modules:
    client: Client configuration and the execution pipeline.
    request / response: The per-call request builder and the reply wrapper.
    middleware: Middleware protocols and built-in chain entries.
    content: Content-type detection and marshal/unmarshal.
    redirect: Redirect policies.
    multipart: Multipart and form body assembly.
    output: Debug log sink.
    config: Settings resolution and credential sources.
    exceptions: Error taxonomy with exit-code mapping.
"""

__version__ = "0.1.0"

from typing import Optional  # noqa: E402

from restwire.client import Client  # noqa: E402
from restwire.exceptions import (  # noqa: E402
    ConfigurationError,
    MiddlewareError,
    RestwireError,
    SerializationError,
    TransportError,
    UnsupportedOperationError,
)
from restwire.models import BasicAuth, ClientSettings, Cookie, HTTPMethod, Mode  # noqa: E402
from restwire.redirect import flexible_redirect_policy, no_redirect_policy  # noqa: E402
from restwire.request import Request  # noqa: E402
from restwire.response import Response  # noqa: E402

__all__ = [
    "BasicAuth",
    "Client",
    "ClientSettings",
    "ConfigurationError",
    "Cookie",
    "HTTPMethod",
    "MiddlewareError",
    "Mode",
    "Request",
    "Response",
    "RestwireError",
    "SerializationError",
    "TransportError",
    "UnsupportedOperationError",
    "flexible_redirect_policy",
    "get_default_client",
    "new_request",
    "no_redirect_policy",
    "reset_default_client",
    "set_default_client",
]


# ------------------------------------------------------------------ #
# Process-wide default client
# ------------------------------------------------------------------ #

_default_client: Optional[Client] = None


def get_default_client() -> Client:
    """Return the process-wide client, creating it on first use."""
    global _default_client
    if _default_client is None:
        _default_client = Client()
    return _default_client


def set_default_client(client: Client) -> None:
    """Install *client* as the process-wide default."""
    global _default_client
    _default_client = client


def reset_default_client() -> None:
    """Close and drop the process-wide client. Mainly for test suites."""
    global _default_client
    if _default_client is not None:
        _default_client.close()
    _default_client = None


def new_request() -> Request:
    """Return a new request bound to the process-wide client."""
    return get_default_client().new_request()

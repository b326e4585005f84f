"""Exception hierarchy for restwire.

All exceptions inherit from :class:`RestwireError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`restwire.exit_codes`
and a ``response`` attribute.

``response`` is ``None`` whenever the failure happened before a reply was
received (configuration problems, pre-send middleware failures, transport
errors). When an after-response entry fails, the already constructed
:class:`~restwire.response.Response` is attached so callers can still inspect
the status, headers and raw body.

Subclass hierarchy::

    RestwireError               (exit 1)
    +-- ConfigurationError      (exit 2)
    |   +-- UnsupportedOperationError (exit 2)
    +-- SerializationError      (exit 3)
    +-- TransportError          (exit 4)
    +-- MiddlewareError         (exit 5)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from restwire.exit_codes import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_MIDDLEWARE_ERROR,
    EXIT_SERIALIZATION_ERROR,
    EXIT_TRANSPORT_ERROR,
)

if TYPE_CHECKING:
    from restwire.response import Response


class RestwireError(Exception):
    """Base exception for all restwire errors.

    Args:
        message: Human-readable error description.
        response: The response received before the failure, if any.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        response: Optional[Response] = None,
        exit_code: int | None = None,
    ):
        super().__init__(message)
        self.response = response
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(RestwireError):
    """Raised for an invalid combination detected before anything is sent."""

    exit_code = EXIT_CONFIGURATION_ERROR


class UnsupportedOperationError(ConfigurationError):
    """Raised when a file upload is attempted with a verb other than POST or PUT."""


class SerializationError(RestwireError):
    """Raised when a body cannot be marshalled or unmarshalled for its content type."""

    exit_code = EXIT_SERIALIZATION_ERROR


class TransportError(RestwireError):
    """Raised on connection, DNS, TLS or timeout failures and refused redirects."""

    exit_code = EXIT_TRANSPORT_ERROR


class MiddlewareError(RestwireError):
    """Raised when a before-request or after-response entry fails."""

    exit_code = EXIT_MIDDLEWARE_ERROR

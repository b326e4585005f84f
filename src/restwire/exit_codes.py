"""Numeric process exit codes used by the ``restwire`` console script.

Each constant maps to a failure class of the request pipeline and is
referenced by the corresponding :class:`~restwire.exceptions.RestwireError`
subclass. Shell wrappers can inspect the exit code to tell a rejected
configuration from a network failure without parsing stderr.

Example::

    $ restwire get https://api.example.com/redirecting
    $ echo $?
    4   # EXIT_TRANSPORT_ERROR -- redirect refused by the policy
"""

EXIT_SUCCESS = 0
"""The request completed and every pipeline stage succeeded."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIGURATION_ERROR = 2
"""The request or client was configured inconsistently (nothing was sent)."""

EXIT_SERIALIZATION_ERROR = 3
"""A body could not be marshalled or unmarshalled for its content type."""

EXIT_TRANSPORT_ERROR = 4
"""A network-level error occurred (timeout, DNS, TLS, refused redirect)."""

EXIT_MIDDLEWARE_ERROR = 5
"""A before-request or after-response middleware entry failed."""

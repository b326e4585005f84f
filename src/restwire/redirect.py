"""Redirect policies and manual redirect following over ``httpx``.

The shared :class:`httpx.Client` is always built with automatic redirects
disabled. :func:`send_with_redirects` follows them one hop at a time and
asks the active policy before every hop. A policy is any callable taking
the request about to be sent and the history of requests already sent in
the chain (the original request first); it raises to stop the chain and
returns ``None`` to allow the hop. Whatever a policy raises reaches the
caller as :class:`TransportError`.

Hop ``k`` is checked with ``len(history) == k``, so
``flexible_redirect_policy(n)`` lets exactly ``n`` hops through.

The optional ``timeout`` is a deadline for the whole exchange: every hop
and the full body of the terminal reply must arrive before it passes.

Example::

    client.set_redirect_policy(flexible_redirect_policy(20))
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Optional

import httpx

from restwire.exceptions import RestwireError, TransportError

logger = logging.getLogger(__name__)

RedirectPolicy = Callable[[httpx.Request, Sequence[httpx.Request]], None]


def no_redirect_policy(request: httpx.Request, history: Sequence[httpx.Request]) -> None:
    """Refuse every redirect."""
    raise TransportError("Auto redirects disabled")


def flexible_redirect_policy(max_redirects: int) -> RedirectPolicy:
    """Return a policy allowing up to *max_redirects* hops."""

    def policy(request: httpx.Request, history: Sequence[httpx.Request]) -> None:
        if len(history) > max_redirects:
            raise TransportError(f"Stopped after {max_redirects} redirects")

    policy.max_redirects = max_redirects  # type: ignore[attr-defined]
    return policy


def _check_policy(
    policy: RedirectPolicy,
    request: httpx.Request,
    history: Sequence[httpx.Request],
) -> None:
    try:
        policy(request, history)
    except RestwireError:
        raise
    except Exception as exc:
        raise TransportError(f"Redirect to {request.url} refused: {exc}") from exc


def _check_deadline(deadline: Optional[float], timeout: Optional[float]) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise TransportError(f"Request timed out after {timeout}s")


def _read_body(
    response: httpx.Response,
    deadline: Optional[float],
    timeout: Optional[float],
) -> bytes:
    chunks: list[bytes] = []
    for chunk in response.iter_bytes():
        chunks.append(chunk)
        _check_deadline(deadline, timeout)
    return b"".join(chunks)


def send_with_redirects(
    http: httpx.Client,
    request: httpx.Request,
    policy: RedirectPolicy,
    timeout: Optional[float] = None,
) -> tuple[httpx.Response, bytes]:
    """Send *request*, following redirects the policy allows.

    Returns:
        The terminal (non-redirect) response, with ``history`` listing
        the redirect responses that led to it, and its complete body.

    Raises:
        TransportError: If the policy refuses a hop or the deadline passes.
            Network errors from ``httpx`` propagate unchanged; the client
            maps them.
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    history: list[httpx.Request] = []
    responses: list[httpx.Response] = []
    response = http.send(request, stream=True, follow_redirects=False)

    while response.next_request is not None:
        next_request = response.next_request
        history.append(response.request)
        responses.append(response)
        response.close()

        _check_policy(policy, next_request, history)
        _check_deadline(deadline, timeout)
        logger.debug(
            "Following redirect %d: %s -> %s (%d)",
            len(history),
            response.request.url,
            next_request.url,
            response.status_code,
        )
        response = http.send(next_request, stream=True, follow_redirects=False)

    try:
        body = _read_body(response, deadline, timeout)
    finally:
        response.close()
    response.history = responses
    return response, body

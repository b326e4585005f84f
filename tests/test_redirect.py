"""Tests for redirect policies and manual redirect following."""

from __future__ import annotations

import time

import httpx
import pytest

from restwire.exceptions import TransportError
from restwire.redirect import flexible_redirect_policy, no_redirect_policy, send_with_redirects


def _req(path: str) -> httpx.Request:
    return httpx.Request("GET", f"https://example.com{path}")


def _hops(count: int):
    """Handler redirecting /0 -> /1 -> ... -> /count, which answers 200."""

    def handler(request: httpx.Request) -> httpx.Response:
        step = int(request.url.path.lstrip("/"))
        if step < count:
            return httpx.Response(302, headers={"Location": f"/{step + 1}"})
        return httpx.Response(200, text=f"done after {step}")

    return handler


class TestPolicies:
    def test_no_redirect_refuses_first_hop(self) -> None:
        with pytest.raises(TransportError, match="redirects disabled"):
            no_redirect_policy(_req("/b"), [_req("/a")])

    @pytest.mark.parametrize("hops", [1, 2, 3])
    def test_flexible_allows_up_to_limit(self, hops: int) -> None:
        policy = flexible_redirect_policy(3)
        policy(_req("/next"), [_req(f"/{i}") for i in range(hops)])

    def test_flexible_stops_past_limit(self) -> None:
        policy = flexible_redirect_policy(3)
        with pytest.raises(TransportError, match="Stopped after 3 redirects"):
            policy(_req("/next"), [_req(f"/{i}") for i in range(4)])

    def test_zero_limit_refuses(self) -> None:
        with pytest.raises(TransportError):
            flexible_redirect_policy(0)(_req("/b"), [_req("/a")])

    def test_policy_exposes_limit(self) -> None:
        assert flexible_redirect_policy(7).max_redirects == 7


class TestSendWithRedirects:
    def test_no_redirect(self) -> None:
        with httpx.Client(transport=httpx.MockTransport(_hops(0))) as http:
            response, body = send_with_redirects(http, _req("/0"), no_redirect_policy)
        assert body == b"done after 0"
        assert response.history == []
        assert response.is_closed

    def test_follows_exactly_limit(self) -> None:
        with httpx.Client(transport=httpx.MockTransport(_hops(3))) as http:
            response, body = send_with_redirects(http, _req("/0"), flexible_redirect_policy(3))
        assert body == b"done after 3"
        assert [r.status_code for r in response.history] == [302, 302, 302]

    def test_one_past_limit_raises(self) -> None:
        with httpx.Client(transport=httpx.MockTransport(_hops(4))) as http:
            with pytest.raises(TransportError):
                send_with_redirects(http, _req("/0"), flexible_redirect_policy(3))

    def test_custom_policy_sees_history(self) -> None:
        seen: list[tuple[str, list[str]]] = []

        def record(request: httpx.Request, history) -> None:
            seen.append((request.url.path, [r.url.path for r in history]))

        with httpx.Client(transport=httpx.MockTransport(_hops(2))) as http:
            send_with_redirects(http, _req("/0"), record)

        assert seen == [("/1", ["/0"]), ("/2", ["/0", "/1"])]

    def test_policy_error_wrapped(self) -> None:
        def refuse(request: httpx.Request, history) -> None:
            raise RuntimeError("blocked host")

        with httpx.Client(transport=httpx.MockTransport(_hops(1))) as http:
            with pytest.raises(TransportError, match="blocked host") as exc_info:
                send_with_redirects(http, _req("/0"), refuse)

        assert "https://example.com/1" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_policy_transport_error_passes_through(self) -> None:
        with httpx.Client(transport=httpx.MockTransport(_hops(1))) as http:
            with pytest.raises(TransportError) as exc_info:
                send_with_redirects(http, _req("/0"), no_redirect_policy)

        assert str(exc_info.value) == "Auto redirects disabled"
        assert exc_info.value.__cause__ is None


class TestDeadline:
    def test_slow_body_exceeds_deadline(self) -> None:
        def trickle(request: httpx.Request) -> httpx.Response:
            def chunks():
                for _ in range(20):
                    time.sleep(0.05)
                    yield b"."

            return httpx.Response(200, content=chunks())

        with httpx.Client(transport=httpx.MockTransport(trickle)) as http:
            with pytest.raises(TransportError, match=r"timed out after 0.1s"):
                send_with_redirects(http, _req("/0"), no_redirect_policy, timeout=0.1)

    def test_fast_exchange_within_deadline(self) -> None:
        with httpx.Client(transport=httpx.MockTransport(_hops(2))) as http:
            _, body = send_with_redirects(http, _req("/0"), flexible_redirect_policy(2), timeout=5.0)
        assert body == b"done after 2"

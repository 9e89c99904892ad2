# ============================================================================
# HTTP DEPENDENCY PROBE TESTS
# ============================================================================
# STATUS: Tests - Bundled HTTP probe
# PURPOSE: Verify status mapping for HTTP dependencies
# ============================================================================
"""
HTTP Dependency Probe Tests

Patches httpx.AsyncClient with a MockTransport-backed client, so no real
HTTP traffic.

Run with:
    pytest tests/test_http_check.py -v
"""

import asyncio
import time
from unittest.mock import patch

import httpx

from healthz.checks import http_probe
from healthz.core import ProbeContext, Severity

URL = "http://billing:8080/_healthz"

_RealAsyncClient = httpx.AsyncClient


def _client_factory(handler):
    def factory(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)
    return factory


def _run(probe, handler):
    ctx = ProbeContext.with_timeout(2.0)
    with patch("healthz.checks.http.httpx.AsyncClient", _client_factory(handler)):
        return asyncio.run(probe(ctx))


class TestHttpProbe:
    """Tests for http_probe."""

    def test_reachable(self):
        outcome = _run(http_probe(URL), lambda request: httpx.Response(200))
        assert outcome == (Severity.AVAILABLE, None)

    def test_unexpected_status(self):
        outcome = _run(http_probe(URL), lambda request: httpx.Response(502))

        assert outcome[0] == Severity.UNAVAILABLE
        assert "502" in outcome[1]

    def test_expected_status_override(self):
        outcome = _run(
            http_probe(URL, expected_status=204),
            lambda request: httpx.Response(204),
        )
        assert outcome[0] == Severity.AVAILABLE

    def test_connection_refused(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        outcome = _run(http_probe(URL), refuse)

        assert outcome[0] == Severity.UNAVAILABLE
        assert "connection refused" in outcome[1]

    def test_timeout(self):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        outcome = _run(http_probe(URL), slow)

        assert outcome == (Severity.UNAVAILABLE, f"request to {URL} timed out")

    def test_deadline_already_passed(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200)

        ctx = ProbeContext(deadline=time.monotonic() - 1.0)
        with patch("healthz.checks.http.httpx.AsyncClient", _client_factory(handler)):
            outcome = asyncio.run(http_probe(URL)(ctx))

        assert outcome == (Severity.UNAVAILABLE, "timeout")
        assert requests == []

    def test_cancelled_context_skips_request(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200)

        ctx = ProbeContext.with_timeout(2.0)
        ctx.cancel()
        with patch("healthz.checks.http.httpx.AsyncClient", _client_factory(handler)):
            outcome = asyncio.run(http_probe(URL)(ctx))

        assert outcome == (Severity.UNAVAILABLE, "timeout")
        assert requests == []

    def test_slow_response_degraded(self):
        def slow(request):
            time.sleep(0.02)
            return httpx.Response(200)

        outcome = _run(http_probe(URL, degraded_after_ms=5), slow)

        assert outcome[0] == Severity.DEGRADED

    def test_follow_remote_status(self):
        outcome = _run(
            http_probe(URL, follow_status=True),
            lambda request: httpx.Response(200, json={"status": "degraded", "tests": {}}),
        )
        assert outcome == (Severity.DEGRADED, f"{URL} reports degraded")

    def test_follow_remote_unavailable(self):
        outcome = _run(
            http_probe(URL, follow_status=True),
            lambda request: httpx.Response(503, json={"status": "unavailable"}),
        )
        assert outcome[0] == Severity.UNAVAILABLE

    def test_follow_unreadable_body(self):
        outcome = _run(
            http_probe(URL, follow_status=True),
            lambda request: httpx.Response(200, text="ok"),
        )
        assert outcome[0] == Severity.UNAVAILABLE
        assert "unreadable" in outcome[1]

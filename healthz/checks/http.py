# ============================================================================
# HTTP DEPENDENCY PROBE
# ============================================================================
# STATUS: Infrastructure - Upstream HTTP connectivity probe
# PURPOSE: Check that a dependency's HTTP endpoint answers in time
# ============================================================================
"""
HTTP Dependency Probe

Builds a probe that GETs a dependency endpoint:
- Transport error or timeout -> unavailable
- Unexpected status code -> unavailable
- Slower than degraded_after_ms -> degraded
- Dependency is itself a healthz endpoint (follow_status=True) -> its
  reported status is adopted

Usage:
    registry.register("billing", http_probe("http://billing:8080/_healthz",
                                            follow_status=True))
"""

import time
from typing import Optional

import httpx

from core.logging import ComponentType, get_logger
from healthz.core import (
    TIMEOUT_ERROR,
    ProbeContext,
    ProbeFunc,
    ProbeOutcome,
    Severity,
)

logger = get_logger(__name__, ComponentType.PROBE)


def http_probe(
    url: str,
    timeout: float = 3.0,
    expected_status: int = 200,
    degraded_after_ms: Optional[float] = None,
    follow_status: bool = False,
) -> ProbeFunc:
    """
    Create a probe for an HTTP dependency.

    Args:
        url: Endpoint to GET
        timeout: Request timeout (seconds), capped by the run's deadline
        expected_status: Status code that counts as reachable
        degraded_after_ms: Report degraded when slower than this
        follow_status: Adopt the "status" field of a healthz JSON body
    """

    async def check(ctx: ProbeContext) -> ProbeOutcome:
        remaining = ctx.remaining()
        if remaining <= 0 or ctx.cancelled:
            return Severity.UNAVAILABLE, TIMEOUT_ERROR

        request_timeout = min(timeout, remaining)
        started = time.monotonic()

        try:
            async with httpx.AsyncClient(timeout=request_timeout) as client:
                response = await client.get(url)

        except httpx.TimeoutException:
            return Severity.UNAVAILABLE, f"request to {url} timed out"

        except httpx.HTTPError as e:
            return Severity.UNAVAILABLE, f"cannot reach {url}: {e}"

        elapsed_ms = (time.monotonic() - started) * 1000

        if follow_status and response.status_code in (200, 503):
            return _remote_status(url, response)

        if response.status_code != expected_status:
            return Severity.UNAVAILABLE, f"{url} returned status {response.status_code}"

        if degraded_after_ms is not None and elapsed_ms > degraded_after_ms:
            return Severity.DEGRADED, f"{url} answered in {elapsed_ms:.0f}ms"

        return Severity.AVAILABLE, None

    check.__name__ = f"http_probe({url})"
    return check


def _remote_status(url: str, response: httpx.Response) -> ProbeOutcome:
    try:
        status = Severity(response.json().get("status"))
    except (ValueError, AttributeError) as e:
        logger.warning(f"Unreadable health body from {url}: {e}")
        return Severity.UNAVAILABLE, f"{url} returned an unreadable health body"

    if status == Severity.AVAILABLE:
        return status, None
    return status, f"{url} reports {status.value}"


__all__ = [
    "http_probe",
]

# ============================================================================
# HEALTH CHECK CORE TYPES
# ============================================================================
# STATUS: Core - Probe interface and result types
# PURPOSE: Severity ordering, probe context, per-probe and aggregate results
# ============================================================================
"""
Health Check Core Types

Defines the probe signature, its execution context, and the immutable
result types produced by one aggregation run.

Severity Hierarchy (worst wins):
- available: All systems operational
- degraded: Operational with warnings (still served as HTTP 200)
- unavailable: Critical failure (HTTP 503)

Probe signature:
    probe(ctx: ProbeContext) -> (Severity, Optional[str | Exception])

A probe may be a coroutine function (awaited on the event loop) or a plain
function (run on the executor's thread pool). Returning a bare Severity is
shorthand for (severity, None).
"""

import functools
import inspect
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Tuple,
    Union,
)

# Error recorded for probes still running when the shared deadline fires
TIMEOUT_ERROR = "timeout"


class HealthzError(Exception):
    """Base class for health endpoint errors."""


class DuplicateProbeError(HealthzError):
    """
    A probe name was registered twice.

    This is a programming error raised at registration time. It is never
    caught inside the package and should stop application startup.
    """


class Severity(str, Enum):
    """Probe and report severity values, ordered least to most severe."""
    AVAILABLE = "available"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def aggregate(cls, severities: Iterable["Severity"]) -> "Severity":
        """Aggregate multiple severities (worst wins, empty is available)."""
        return max(severities, default=cls.AVAILABLE)


_SEVERITY_RANK = {
    Severity.AVAILABLE: 0,
    Severity.DEGRADED: 1,
    Severity.UNAVAILABLE: 2,
}


def http_status_for(severity: Severity) -> int:
    """Map overall severity to the HTTP status code of the health response."""
    if severity == Severity.UNAVAILABLE:
        return 503
    return 200


class ProbeContext:
    """
    Cancellable execution context shared by every probe in one run.

    The executor cancels the context when the shared deadline fires. It does
    not stop probes that are still running, so long-running probes should
    watch ``cancelled`` or ``remaining()`` and return promptly. The flag is
    backed by a threading.Event so synchronous probes running in worker
    threads can block on it with ``wait_cancelled``.
    """

    def __init__(self, deadline: float, run_id: Optional[str] = None):
        self.deadline = deadline
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self._cancelled = threading.Event()

    @classmethod
    def with_timeout(cls, timeout: float, run_id: Optional[str] = None) -> "ProbeContext":
        return cls(deadline=time.monotonic() + timeout, run_id=run_id)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> float:
        """Seconds left until the deadline (never negative)."""
        return max(0.0, self.deadline - time.monotonic())

    def wait_cancelled(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or timeout; returns True if cancelled."""
        return self._cancelled.wait(timeout)

    def __repr__(self) -> str:
        return (
            f"ProbeContext(run_id={self.run_id!r}, "
            f"remaining={self.remaining():.3f}, cancelled={self.cancelled})"
        )


ProbeError = Optional[Union[str, BaseException]]
ProbeOutcome = Union[Severity, Tuple[Severity, ProbeError]]
ProbeFunc = Callable[[ProbeContext], Union[ProbeOutcome, Awaitable[ProbeOutcome]]]


def is_coroutine_callable(func: Callable) -> bool:
    """True for coroutine functions and objects with an async __call__."""
    while isinstance(func, functools.partial):
        func = func.func
    if inspect.iscoroutinefunction(func):
        return True
    call = getattr(func, "__call__", None)
    return inspect.iscoroutinefunction(call)


def error_text(error: ProbeError) -> Optional[str]:
    """Render a probe error as wire text; None and empty mean no error."""
    if error is None:
        return None
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    text = str(error)
    return text or None


def normalize_outcome(outcome: Any) -> Tuple[Severity, Optional[str]]:
    """
    Convert a probe's return value to (severity, error text).

    Raises:
        TypeError: If the value is not a Severity or a (severity, error) pair
        ValueError: If the severity string is not a known value
    """
    if isinstance(outcome, Severity):
        return outcome, None
    if isinstance(outcome, tuple) and len(outcome) == 2:
        severity, error = outcome
        return Severity(severity), error_text(error)
    raise TypeError(
        f"probe must return Severity or (Severity, error), got {type(outcome).__name__}"
    )


def _from_bool(ok: bool) -> Tuple[Severity, Optional[str]]:
    if ok:
        return Severity.AVAILABLE, None
    return Severity.UNAVAILABLE, Severity.UNAVAILABLE.value


def boolean_probe(func: Callable[[ProbeContext], Any]) -> ProbeFunc:
    """
    Adapt a pass/fail probe to the severity-aware signature.

    True maps to available, False to unavailable. Exceptions propagate and
    are recorded by the executor as unavailable with their message.

    Example:
        registry.register("cache", boolean_probe(lambda ctx: redis.ping()))
    """
    if is_coroutine_callable(func):
        @functools.wraps(func)
        async def adapted(ctx: ProbeContext):
            return _from_bool(bool(await func(ctx)))
    else:
        @functools.wraps(func)
        def adapted(ctx: ProbeContext):
            return _from_bool(bool(func(ctx)))
    return adapted


async def default_probe(ctx: ProbeContext) -> ProbeOutcome:
    """Always available; proves the endpoint is reachable."""
    return Severity.AVAILABLE, None


@dataclass(frozen=True)
class ProbeResult:
    """Result from a single probe."""
    name: str
    severity: Severity
    duration_ms: int = 0
    error: Optional[str] = None

    @property
    def timed_out(self) -> bool:
        return self.error == TIMEOUT_ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result: Dict[str, Any] = {
            "duration_ms": self.duration_ms,
            "status": self.severity.value,
        }
        if self.error:
            result["error"] = self.error
        return result


def format_timestamp(value: datetime) -> str:
    """RFC 3339 UTC timestamp with a Z suffix."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Report:
    """Aggregated, immutable result of one run."""
    status: Severity
    tests: Mapping[str, ProbeResult]
    duration_ms: int = 0
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        object.__setattr__(self, "tests", MappingProxyType(dict(self.tests)))

    @classmethod
    def from_results(
        cls,
        results: Mapping[str, ProbeResult],
        duration_ms: int,
        checked_at: datetime,
    ) -> "Report":
        status = Severity.aggregate(r.severity for r in results.values())
        return cls(
            status=status,
            tests=results,
            duration_ms=duration_ms,
            checked_at=checked_at,
        )

    @property
    def http_status(self) -> int:
        return http_status_for(self.status)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "checked_at": format_timestamp(self.checked_at),
            "duration_ms": self.duration_ms,
            "status": self.status.value,
            "tests": {
                name: result.to_dict()
                for name, result in self.tests.items()
            },
        }


__all__ = [
    "TIMEOUT_ERROR",
    "HealthzError",
    "DuplicateProbeError",
    "Severity",
    "http_status_for",
    "ProbeContext",
    "ProbeFunc",
    "ProbeOutcome",
    "is_coroutine_callable",
    "error_text",
    "normalize_outcome",
    "boolean_probe",
    "default_probe",
    "ProbeResult",
    "Report",
    "format_timestamp",
]

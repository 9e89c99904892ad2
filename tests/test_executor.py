# ============================================================================
# HEALTH CHECK EXECUTOR TESTS
# ============================================================================
# STATUS: Tests - Concurrent probe execution and aggregation
# PURPOSE: Verify worst-wins aggregation, shared deadline and timeout verdicts
# ============================================================================
"""
Health Check Executor Tests

Covers:
1. Aggregation: all available, worst wins, degraded without unavailable
2. Shared deadline: slow probes recorded as unavailable/"timeout"
3. Late completions never overwrite a timeout verdict
4. Probe exceptions and malformed outcomes -> unavailable
5. Synchronous probes on the thread pool
6. Concurrency: probes run in parallel, not one after another

Run with:
    pytest tests/test_executor.py -v
"""

import asyncio
import threading
import time

import pytest

from healthz.core import TIMEOUT_ERROR, ProbeContext, Severity, boolean_probe
from healthz.executor import HealthCheckExecutor
from healthz.registry import ProbeRegistry


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def executor():
    executor = HealthCheckExecutor(timeout=1.0)
    yield executor
    executor.close()


def _returns(severity, error=None):
    async def probe(ctx):
        return severity, error
    return probe


def _sleeps(seconds, severity=Severity.AVAILABLE):
    async def probe(ctx):
        await asyncio.sleep(seconds)
        return severity, None
    return probe


# ============================================================================
# AGGREGATION
# ============================================================================

class TestAggregation:
    """Worst-wins reduction over probe results."""

    def test_default_only(self, executor):
        report = asyncio.run(executor.execute(ProbeRegistry()))

        assert report.status == Severity.AVAILABLE
        assert report.http_status == 200
        assert list(report.tests) == ["default"]
        assert report.tests["default"].error is None

    def test_empty_snapshot(self, executor):
        report = asyncio.run(executor.run({}))

        assert report.status == Severity.AVAILABLE
        assert dict(report.tests) == {}

    def test_all_available(self, executor):
        registry = ProbeRegistry()
        for i in range(5):
            registry.register(f"probe-{i}", _returns(Severity.AVAILABLE))

        report = asyncio.run(executor.execute(registry))

        assert report.status == Severity.AVAILABLE
        assert len(report.tests) == 6

    def test_unavailable_wins(self, executor):
        registry = ProbeRegistry()
        registry.register("ok", _returns(Severity.AVAILABLE))
        registry.register("slow", _returns(Severity.DEGRADED, "slow"))
        registry.register("db", _returns(Severity.UNAVAILABLE, "connection refused"))

        report = asyncio.run(executor.execute(registry))

        assert report.status == Severity.UNAVAILABLE
        assert report.http_status == 503
        assert report.tests["db"].error == "connection refused"
        assert report.tests["slow"].severity == Severity.DEGRADED

    def test_degraded_without_unavailable(self, executor):
        registry = ProbeRegistry()
        registry.register("slow", _returns(Severity.DEGRADED, "degraded"))

        report = asyncio.run(executor.execute(registry))

        assert report.status == Severity.DEGRADED
        assert report.http_status == 200
        assert report.tests["slow"].error == "degraded"

    def test_every_probe_executed_once(self, executor):
        calls = []
        lock = threading.Lock()

        async def counted(ctx):
            with lock:
                calls.append(ctx.run_id)
            return Severity.AVAILABLE, None

        registry = ProbeRegistry()
        for i in range(4):
            registry.register(f"custom-{i}", counted)

        report = asyncio.run(executor.execute(registry))

        assert len(calls) == 4
        assert len(set(calls)) == 1  # one shared context per run
        assert len(report.tests) == 5


# ============================================================================
# DEADLINE
# ============================================================================

class TestDeadline:
    """Shared deadline and timeout verdicts."""

    def test_slow_probe_times_out(self, executor):
        registry = ProbeRegistry()
        registry.register("success", _sleeps(1.0))

        report = asyncio.run(executor.execute(registry, timeout=0.05))

        assert len(report.tests) == 2
        assert report.tests["success"].severity == Severity.UNAVAILABLE
        assert report.tests["success"].error == TIMEOUT_ERROR
        assert report.tests["success"].timed_out
        assert report.tests["default"].severity == Severity.AVAILABLE
        assert report.status == Severity.UNAVAILABLE

    def test_run_returns_at_deadline(self, executor):
        registry = ProbeRegistry()
        registry.register("stuck", _sleeps(2.0))

        started = time.monotonic()
        asyncio.run(executor.execute(registry, timeout=0.1))

        # asyncio.run cancels the abandoned task on exit, so this is bounded
        assert time.monotonic() - started < 1.5

    def test_late_result_does_not_overwrite_timeout(self, executor):
        finished = []

        async def late(ctx):
            await asyncio.sleep(0.1)
            finished.append(True)
            return Severity.AVAILABLE, None

        async def scenario():
            report = await executor.run({"late": late}, timeout=0.02)
            assert executor.abandoned_count == 1
            await asyncio.sleep(0.2)
            return report

        report = asyncio.run(scenario())

        assert finished == [True]
        assert executor.abandoned_count == 0
        assert report.tests["late"].severity == Severity.UNAVAILABLE
        assert report.tests["late"].error == TIMEOUT_ERROR

    def test_context_cancelled_at_deadline(self, executor):
        seen = {}

        async def cooperative(ctx):
            seen["ctx"] = ctx
            while not ctx.cancelled:
                await asyncio.sleep(0.01)
            return Severity.AVAILABLE, None

        async def scenario():
            report = await executor.run({"coop": cooperative}, timeout=0.05)
            await asyncio.sleep(0.05)
            return report

        report = asyncio.run(scenario())

        assert seen["ctx"].cancelled
        assert report.tests["coop"].error == TIMEOUT_ERROR
        assert executor.abandoned_count == 0

    def test_default_timeout_from_executor(self):
        executor = HealthCheckExecutor(timeout=0.05)
        try:
            report = asyncio.run(executor.run({"slow": _sleeps(1.0)}))
        finally:
            executor.close()

        assert report.tests["slow"].error == TIMEOUT_ERROR


# ============================================================================
# FAILURES
# ============================================================================

class TestProbeFailures:
    """Exceptions and malformed outcomes are folded into the report."""

    def test_exception_becomes_unavailable(self, executor):
        async def broken(ctx):
            raise ConnectionError("connection refused")

        report = asyncio.run(executor.run({"db": broken}))

        assert report.tests["db"].severity == Severity.UNAVAILABLE
        assert report.tests["db"].error == "connection refused"

    def test_malformed_outcome_becomes_unavailable(self, executor):
        async def malformed(ctx):
            return "fine"

        report = asyncio.run(executor.run({"odd": malformed}))

        assert report.tests["odd"].severity == Severity.UNAVAILABLE
        assert report.tests["odd"].error

    def test_boolean_probe_failure(self, executor):
        report = asyncio.run(
            executor.run({"flag": boolean_probe(lambda ctx: False)})
        )

        assert report.tests["flag"].severity == Severity.UNAVAILABLE
        assert report.tests["flag"].error == "unavailable"


# ============================================================================
# SYNC PROBES & CONCURRENCY
# ============================================================================

class TestExecution:
    """Thread pool for sync probes and parallel execution."""

    def test_sync_probe_runs_in_thread(self, executor):
        main_thread = threading.get_ident()
        seen = {}

        def blocking(ctx: ProbeContext):
            seen["thread"] = threading.get_ident()
            time.sleep(0.02)
            return Severity.DEGRADED, "disk 91% full"

        report = asyncio.run(executor.run({"disk": blocking}))

        assert seen["thread"] != main_thread
        assert report.tests["disk"].severity == Severity.DEGRADED
        assert report.tests["disk"].error == "disk 91% full"
        assert report.tests["disk"].duration_ms >= 10

    def test_sync_probe_timeout(self, executor):
        def blocking(ctx: ProbeContext):
            ctx.wait_cancelled(1.0)
            return Severity.AVAILABLE, None

        report = asyncio.run(executor.run({"blocking": blocking}, timeout=0.05))

        assert report.tests["blocking"].error == TIMEOUT_ERROR

    def test_probes_run_concurrently(self, executor):
        probes = {f"p{i}": _sleeps(0.2) for i in range(5)}

        report = asyncio.run(executor.run(probes))

        assert report.status == Severity.AVAILABLE
        assert report.duration_ms < 800
        for result in report.tests.values():
            assert result.duration_ms >= 150

    def test_run_single(self, executor):
        registry = ProbeRegistry()
        registry.register("db", _returns(Severity.UNAVAILABLE, "down"))

        result = asyncio.run(executor.run_single("db", registry))
        missing = asyncio.run(executor.run_single("nope", registry))

        assert result.severity == Severity.UNAVAILABLE
        assert result.error == "down"
        assert missing is None

# ============================================================================
# HEALTH CHECK EXECUTOR
# ============================================================================
# STATUS: Infrastructure - Concurrent probe execution
# PURPOSE: Run all probes under one shared deadline and aggregate the results
# ============================================================================
"""
Health Check Executor

Executes probes with:
- Concurrent execution (one asyncio task per probe)
- One shared deadline for the whole run
- Result aggregation with 'worst wins' semantics

Execution Strategy:
1. Create one ProbeContext (run id + deadline) for the run
2. Start every probe as its own task; each measures its own duration
3. Wait until all tasks finish or the deadline fires, whichever is first
4. Probes still pending are recorded as unavailable with a "timeout" error
5. Aggregate: overall severity is the most severe result

Timed-out probes are not force-stopped. The context is cancelled, the task
is kept referenced until it finishes, and whatever it eventually returns is
discarded. Synchronous probes run on a thread pool and hold their thread
until they return, so they should honor ctx.wait_cancelled()/ctx.remaining().
"""

import asyncio
import contextvars
import functools
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional, Set

from core.logging import ComponentType, get_logger, log_context
from healthz.core import (
    TIMEOUT_ERROR,
    ProbeContext,
    ProbeFunc,
    ProbeResult,
    Report,
    Severity,
    error_text,
    is_coroutine_callable,
    normalize_outcome,
)
from healthz.registry import ProbeRegistry

logger = get_logger(__name__, ComponentType.EXECUTOR)

DEFAULT_TIMEOUT_SECONDS = 5.0


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class HealthCheckExecutor:
    """
    Executes probes concurrently under a shared deadline.

    One executor can serve any number of concurrent runs; each run gets its
    own context and result set.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int = 10,
    ):
        """
        Initialize executor.

        Args:
            timeout: Default deadline (seconds) for one run
            max_workers: Threads available to synchronous probes
        """
        self.timeout = timeout
        self._thread_pool = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="healthz-probe",
        )
        self._abandoned: Set[asyncio.Task] = set()

    async def run(
        self,
        probes: Mapping[str, ProbeFunc],
        timeout: Optional[float] = None,
    ) -> Report:
        """
        Run every probe in the snapshot and aggregate the outcomes.

        Args:
            probes: Probe name -> function, usually registry.snapshot()
            timeout: Deadline for the run, defaults to the executor's

        Returns:
            Report with one result per probe
        """
        timeout = self.timeout if timeout is None else timeout
        checked_at = datetime.now(timezone.utc)
        start = time.monotonic()
        ctx = ProbeContext(deadline=start + timeout)

        with log_context(run_id=ctx.run_id):
            results = await self._run_probes(probes, ctx, timeout, start)
            report = Report.from_results(
                results,
                duration_ms=_elapsed_ms(start),
                checked_at=checked_at,
            )
            logger.debug(
                f"Health run finished: {report.status.value} "
                f"({len(results)} probes, {report.duration_ms}ms)"
            )

        return report

    async def execute(
        self,
        registry: ProbeRegistry,
        timeout: Optional[float] = None,
    ) -> Report:
        """Run all probes currently registered."""
        return await self.run(registry.snapshot(), timeout)

    async def run_single(
        self,
        name: str,
        registry: ProbeRegistry,
        timeout: Optional[float] = None,
    ) -> Optional[ProbeResult]:
        """Run a single probe by name under the same deadline rules."""
        probe = registry.get(name)
        if probe is None:
            return None

        report = await self.run({name: probe}, timeout)
        return report.tests[name]

    def close(self) -> None:
        """Release the thread pool; running synchronous probes are not waited on."""
        self._thread_pool.shutdown(wait=False)

    @property
    def abandoned_count(self) -> int:
        """Timed-out probe tasks that have not finished yet."""
        return len(self._abandoned)

    async def _run_probes(
        self,
        probes: Mapping[str, ProbeFunc],
        ctx: ProbeContext,
        timeout: float,
        start: float,
    ) -> Dict[str, ProbeResult]:
        if not probes:
            return {}

        tasks = {
            asyncio.create_task(
                self._execute_probe(name, probe, ctx),
                name=f"healthz-probe:{name}",
            ): name
            for name, probe in probes.items()
        }

        try:
            done, pending = await asyncio.wait(tasks, timeout=timeout)
        except asyncio.CancelledError:
            # The caller went away; probes are left to finish on their own
            ctx.cancel()
            for task in tasks:
                self._abandon(task)
            raise

        # Results are collected before any late completion can run, so a
        # timeout verdict is never overwritten.
        results: Dict[str, ProbeResult] = {}
        for task in done:
            result = task.result()
            results[result.name] = result

        if pending:
            ctx.cancel()
            elapsed_ms = _elapsed_ms(start)
            for task in pending:
                name = tasks[task]
                logger.warning(f"Probe {name} timed out after {timeout}s")
                results[name] = ProbeResult(
                    name=name,
                    severity=Severity.UNAVAILABLE,
                    duration_ms=elapsed_ms,
                    error=TIMEOUT_ERROR,
                )
                self._abandon(task)

        return results

    async def _execute_probe(
        self,
        name: str,
        probe: ProbeFunc,
        ctx: ProbeContext,
    ) -> ProbeResult:
        """Execute a single probe; never raises except on cancellation."""
        start = time.monotonic()

        with log_context(probe=name):
            try:
                if is_coroutine_callable(probe):
                    outcome = await probe(ctx)
                else:
                    loop = asyncio.get_running_loop()
                    call = functools.partial(contextvars.copy_context().run, probe, ctx)
                    outcome = await loop.run_in_executor(self._thread_pool, call)
                severity, error = normalize_outcome(outcome)

            except Exception as e:
                logger.error(f"Probe {name} failed: {e}")
                severity, error = Severity.UNAVAILABLE, error_text(e)

            duration_ms = _elapsed_ms(start)
            logger.debug(f"Probe {name}: {severity.value} ({duration_ms}ms)")

        return ProbeResult(
            name=name,
            severity=severity,
            duration_ms=duration_ms,
            error=error,
        )

    def _abandon(self, task: asyncio.Task) -> None:
        if task.done():
            return
        self._abandoned.add(task)
        task.add_done_callback(self._on_abandoned_done)

    def _on_abandoned_done(self, task: asyncio.Task) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            return
        result = task.result()
        logger.debug(
            f"Discarded late result for probe {result.name}: {result.severity.value}"
        )


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "HealthCheckExecutor",
]

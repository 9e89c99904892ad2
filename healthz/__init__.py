# ============================================================================
# HEALTHZ MODULE
# ============================================================================
# STATUS: Infrastructure - Health endpoint for a running service
# PURPOSE: Aggregate probe results and serve them over HTTP
# ============================================================================
"""
Health Check Module

Liveness/readiness aggregator for a running service:
- /_healthz: runs every registered probe and reports the worst severity

Architecture:
- ProbeRegistry: named probe functions (duplicates rejected)
- HealthCheckExecutor: concurrent execution under one shared deadline
- Report / ProbeResult: immutable results, JSON wire shape
- ResponseCache: one real run per cache window, byte-exact replay
- create_health_router / install_healthz: FastAPI endpoint
- HealthServer: standalone uvicorn server

Usage:
    from healthz import ProbeRegistry, Severity, install_healthz, cache_middleware

    registry = ProbeRegistry()

    @registry.probe("db")
    async def check_db(ctx):
        try:
            await db.execute("SELECT 1")
        except Exception as e:
            return Severity.UNAVAILABLE, e
        return Severity.AVAILABLE, None

    install_healthz(app, registry, middleware=[cache_middleware(2.0)])
"""

from healthz.core import (
    TIMEOUT_ERROR,
    HealthzError,
    DuplicateProbeError,
    Severity,
    ProbeContext,
    ProbeResult,
    Report,
    boolean_probe,
    default_probe,
    http_status_for,
)
from healthz.registry import ProbeRegistry, DEFAULT_PROBE_NAME
from healthz.executor import HealthCheckExecutor
from healthz.cache import CacheState, ResponseCache, cache_middleware
from healthz.router import (
    create_health_router,
    create_health_app,
    install_healthz,
    render_report,
)
from healthz.server import HealthServer

__all__ = [
    # Core types
    "TIMEOUT_ERROR",
    "HealthzError",
    "DuplicateProbeError",
    "Severity",
    "ProbeContext",
    "ProbeResult",
    "Report",
    "boolean_probe",
    "default_probe",
    "http_status_for",
    # Registry
    "ProbeRegistry",
    "DEFAULT_PROBE_NAME",
    # Executor
    "HealthCheckExecutor",
    # Cache
    "CacheState",
    "ResponseCache",
    "cache_middleware",
    # Router
    "create_health_router",
    "create_health_app",
    "install_healthz",
    "render_report",
    # Server
    "HealthServer",
]

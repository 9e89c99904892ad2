# ============================================================================
# HEALTH CHECK ROUTER
# ============================================================================
# STATUS: Infrastructure - FastAPI health endpoint
# PURPOSE: Serve the aggregated probe report over HTTP
# ============================================================================
"""
Health Check Router

FastAPI router exposing one endpoint:

    GET {prefix}{endpoint}   (default /_healthz)

Response Codes:
    200 - Available or degraded
    503 - Unavailable (at least one probe unavailable or timed out)
    500 - Report could not be serialized (no body)

Body:
    {
      "checked_at": "2026-10-19T08:00:00.123456Z",
      "duration_ms": 3,
      "status": "unavailable",
      "tests": {
        "db": {"duration_ms": 2, "status": "unavailable", "error": "connection refused"},
        "default": {"duration_ms": 0, "status": "available"}
      }
    }

Middleware are plain functions responder -> responder (see healthz.cache)
and are applied in the order given.
"""

from contextlib import asynccontextmanager
from typing import Optional, Sequence

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from __version__ import __version__
from core.config import HealthzSettings, get_settings
from core.logging import ComponentType, get_logger, log_context
from healthz.cache import Middleware, cache_middleware
from healthz.core import Report
from healthz.executor import HealthCheckExecutor
from healthz.registry import ProbeRegistry

logger = get_logger(__name__, ComponentType.ROUTER)


def render_report(report: Report) -> Response:
    """Serialize a report; serialization failures become an empty 500."""
    try:
        return JSONResponse(status_code=report.http_status, content=report.to_dict())
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize health report: {e}")
        return Response(status_code=500)


def default_middleware(settings: HealthzSettings) -> Sequence[Middleware]:
    """Middleware implied by settings (the response cache, when configured)."""
    if settings.cache_seconds:
        return [cache_middleware(settings.cache_seconds)]
    return []


def _closing_lifespan(executor: HealthCheckExecutor):
    """Lifespan releasing a router-owned executor when the app shuts down."""

    @asynccontextmanager
    async def lifespan(app):
        yield
        executor.close()
        logger.debug("Health router executor closed")

    return lifespan


def create_health_router(
    registry: ProbeRegistry,
    executor: Optional[HealthCheckExecutor] = None,
    settings: Optional[HealthzSettings] = None,
    middleware: Optional[Sequence[Middleware]] = None,
) -> APIRouter:
    """
    Build the health router.

    Args:
        registry: Probes to run on every (uncached) request
        executor: Executor to use, with its own timeout. If None, one is
            created from settings and closed when the app shuts down
        settings: Path and timeout settings, from the environment if None
        middleware: Responder middleware; defaults to the cache implied by
            settings.cache_seconds. Pass [] to disable.

    Returns:
        APIRouter with GET on settings.path
    """
    settings = settings or get_settings()
    lifespan = None
    if executor is None:
        executor = HealthCheckExecutor(timeout=settings.timeout_seconds)
        lifespan = _closing_lifespan(executor)
    if middleware is None:
        middleware = default_middleware(settings)

    router = APIRouter(tags=["Health"], lifespan=lifespan)

    async def healthz(request: Request) -> Response:
        """Run every registered probe and report the aggregate status."""
        with log_context(path=request.url.path):
            report = await executor.execute(registry)
            return render_report(report)

    responder = healthz
    for mw in middleware:
        responder = mw(responder)

    router.add_api_route(
        settings.path,
        responder,
        methods=["GET"],
        response_class=JSONResponse,
        name="healthz",
    )
    return router


def install_healthz(
    app: FastAPI,
    registry: ProbeRegistry,
    executor: Optional[HealthCheckExecutor] = None,
    settings: Optional[HealthzSettings] = None,
    middleware: Optional[Sequence[Middleware]] = None,
) -> FastAPI:
    """
    Mount the health endpoint on an existing application.

    The app's own routes keep serving every other path.
    """
    app.include_router(
        create_health_router(registry, executor, settings, middleware)
    )
    return app


def create_health_app(
    registry: ProbeRegistry,
    executor: Optional[HealthCheckExecutor] = None,
    settings: Optional[HealthzSettings] = None,
    middleware: Optional[Sequence[Middleware]] = None,
) -> FastAPI:
    """Standalone application serving only the health endpoint."""
    app = FastAPI(
        title="healthz",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    return install_healthz(app, registry, executor, settings, middleware)


__all__ = [
    "render_report",
    "default_middleware",
    "create_health_router",
    "install_healthz",
    "create_health_app",
]

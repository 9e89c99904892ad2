# ============================================================================
# HEALTHZ - EXAMPLE APPLICATION
# ============================================================================
# STATUS: Core - FastAPI application entry point
# PURPOSE: Example service mounting the health endpoint
# ============================================================================
"""
Example Application

FastAPI application that:
1. Registers probes at startup (duplicates abort startup)
2. Mounts the health endpoint on its own routes
3. Caches health responses when HEALTHZ_CACHE_SECONDS is set

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8080

Environment:
    HEALTHZ_PREFIX, HEALTHZ_ENDPOINT, HEALTHZ_TIMEOUT_SECONDS,
    HEALTHZ_CACHE_SECONDS, LOG_LEVEL, LOG_FORMAT
    UPSTREAM_HEALTH_URL - optional dependency to probe over HTTP
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE
from core.config import get_settings
from core.logging import configure_logging, get_logger
from healthz import HealthCheckExecutor, ProbeRegistry, install_healthz
from healthz.checks import http_probe

settings = get_settings()

configure_logging(level=settings.log_level, json_output=settings.json_logs)
logger = get_logger(__name__)

registry = ProbeRegistry()

upstream_url = os.environ.get("UPSTREAM_HEALTH_URL")
if upstream_url:
    registry.register("upstream", http_probe(upstream_url, follow_status=True))

executor = HealthCheckExecutor(timeout=settings.timeout_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and release the probe thread pool on shutdown."""
    logger.info(f"Starting healthz example v{__version__} (Build {BUILD_DATE})")
    logger.info(
        f"Health endpoint at {settings.path} "
        f"({len(registry)} probes, timeout {settings.timeout_seconds}s, "
        f"cache {settings.cache_seconds or 'off'})"
    )

    yield

    executor.close()
    logger.info("healthz example stopped")


app = FastAPI(
    title="healthz example",
    version=__version__,
    lifespan=lifespan,
)

install_healthz(app, registry, executor=executor, settings=settings)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "healthz example",
        "version": __version__,
        "health": settings.path,
    }


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )

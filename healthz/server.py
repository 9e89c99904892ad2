# ============================================================================
# HEALTH SERVER
# ============================================================================
# STATUS: Infrastructure - Standalone health endpoint server
# PURPOSE: Serve the health endpoint on its own host/port with uvicorn
# ============================================================================
"""
Health Server

Runs the health endpoint on a dedicated port, for services that do not
already expose an ASGI application. It is up to the caller to call
shutdown() when the service stops.

Usage:
    registry = ProbeRegistry()
    registry.register("db", check_database)

    server = HealthServer("0.0.0.0", 8080, registry,
                          middleware=[cache_middleware(2.0)])
    server.start()          # blocking
    # or: await server.serve()
"""

from typing import Optional, Sequence

import uvicorn

from core.config import HealthzSettings, get_settings
from core.logging import ComponentType, get_logger
from healthz.cache import Middleware
from healthz.executor import HealthCheckExecutor
from healthz.registry import ProbeRegistry
from healthz.router import create_health_app

logger = get_logger(__name__, ComponentType.SERVER)


class HealthServer:
    """Standalone uvicorn server for the health endpoint."""

    def __init__(
        self,
        host: str,
        port: int,
        registry: ProbeRegistry,
        middleware: Optional[Sequence[Middleware]] = None,
        settings: Optional[HealthzSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.host = host or "0.0.0.0"
        self.port = port
        self.executor = HealthCheckExecutor(timeout=self.settings.timeout_seconds)
        self.app = create_health_app(
            registry,
            executor=self.executor,
            settings=self.settings,
            middleware=middleware,
        )
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_config=None,
            access_log=False,
        )
        self._server = uvicorn.Server(config)

    @property
    def address(self) -> str:
        return f"http://{self.host}:{self.port}{self.settings.path}"

    def start(self) -> None:
        """Serve until shutdown() is called. Blocks the calling thread."""
        logger.info(f"Healthcheck listening on {self.address}")
        try:
            self._server.run()
        except Exception as e:
            logger.error(f"Health server failed: {e}")
            raise
        finally:
            self.executor.close()

    async def serve(self) -> None:
        """Async form of start() for callers already running an event loop."""
        logger.info(f"Healthcheck listening on {self.address}")
        try:
            await self._server.serve()
        except Exception as e:
            logger.error(f"Health server failed: {e}")
            raise
        finally:
            self.executor.close()

    def shutdown(self) -> None:
        """Request a graceful stop; in-flight requests are allowed to finish."""
        logger.info("Shutting down health server")
        self._server.should_exit = True
        logger.info("Health server shutdown requested")

    @property
    def started(self) -> bool:
        return self._server.started


__all__ = [
    "HealthServer",
]

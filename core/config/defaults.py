# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# STATUS: Core - Default configuration values
# PURPOSE: Endpoint path, probe timeout, cache window and server settings
# ============================================================================
"""
Configuration Defaults

Provides defaults for the health endpoint and its server.
These can be overridden via environment variables.

Design:
- Immutable dataclass for settings
- Environment variable overrides (HEALTHZ_*, LOG_*)
- Validation at construction time
"""

import os
from dataclasses import dataclass
from typing import Optional


class ConfigurationError(ValueError):
    """Raised when a setting is missing, malformed or out of range."""


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class HealthzSettings:
    """
    Settings for the health endpoint.

    The endpoint is served at prefix + endpoint. Caching is opt-in:
    with cache_seconds unset every request runs the probes.
    """
    # Routing
    prefix: str = ""
    endpoint: str = "/_healthz"

    # Aggregation
    timeout_seconds: float = 5.0

    # Response cache window (seconds), None disables caching
    cache_seconds: Optional[float] = None

    # Standalone server
    host: str = "0.0.0.0"
    port: int = 8080

    # Logging
    log_level: str = "INFO"
    log_format: str = "human"

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )
        if self.cache_seconds is not None and self.cache_seconds < 0:
            raise ConfigurationError(
                f"cache_seconds must not be negative, got {self.cache_seconds}"
            )
        if not self.endpoint.startswith("/"):
            raise ConfigurationError(
                f"endpoint must start with '/', got {self.endpoint!r}"
            )
        if not 0 <= self.port <= 65535:
            raise ConfigurationError(f"port out of range: {self.port}")

    @property
    def path(self) -> str:
        """Full path the health endpoint is mounted on."""
        return self.prefix.rstrip("/") + self.endpoint

    @property
    def json_logs(self) -> bool:
        return self.log_format.lower() == "json"

    @classmethod
    def from_env(cls) -> "HealthzSettings":
        """Create from environment variables."""
        return cls(
            prefix=os.getenv("HEALTHZ_PREFIX", ""),
            endpoint=os.getenv("HEALTHZ_ENDPOINT", "/_healthz"),
            timeout_seconds=_env_float("HEALTHZ_TIMEOUT_SECONDS", 5.0),
            cache_seconds=_env_float("HEALTHZ_CACHE_SECONDS", None),
            host=os.getenv("HEALTHZ_HOST", "0.0.0.0"),
            port=_env_int("HEALTHZ_PORT", 8080),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "human"),
        )


# ============================================================================
# GLOBAL SETTINGS INSTANCE
# ============================================================================

_settings: Optional[HealthzSettings] = None


def get_settings() -> HealthzSettings:
    """Get global settings instance."""
    global _settings
    if _settings is None:
        _settings = HealthzSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ConfigurationError",
    "HealthzSettings",
    "get_settings",
    "reset_settings",
]

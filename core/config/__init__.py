# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the health endpoint.
"""

from core.config.defaults import (
    ConfigurationError,
    HealthzSettings,
    get_settings,
    reset_settings,
)

__all__ = [
    "ConfigurationError",
    "HealthzSettings",
    "get_settings",
    "reset_settings",
]

# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export configuration and logging utilities
# ============================================================================

from core.config import HealthzSettings, ConfigurationError, get_settings
from core.logging import configure_logging, get_logger, log_context

__all__ = [
    # Config
    "HealthzSettings",
    "ConfigurationError",
    "get_settings",
    # Logging
    "configure_logging",
    "get_logger",
    "log_context",
]

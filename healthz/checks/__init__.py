# ============================================================================
# BUNDLED PROBES
# ============================================================================
# STATUS: Infrastructure - Probe implementations
# PURPOSE: Reusable probes for common dependencies
# ============================================================================
"""
Bundled Probes

- default_probe: always available (pre-registered as "default")
- http_probe: HTTP dependency reachability / remote healthz status

Probes are plain functions; register them explicitly:
    registry.register("billing", http_probe("http://billing:8080/_healthz"))
"""

from healthz.core import default_probe
from healthz.checks.http import http_probe

__all__ = [
    "default_probe",
    "http_probe",
]

# ============================================================================
# PROBE REGISTRY
# ============================================================================
# STATUS: Infrastructure - Probe registration
# PURPOSE: Named probe functions for one health endpoint
# ============================================================================
"""
Probe Registry

Maps probe names to probe functions. Registration is expected during
application startup; a duplicate name raises DuplicateProbeError and should
abort startup.

Every registry starts with a "default" probe that always reports available,
so an endpoint with no custom probes still answers 200.

Usage:
    registry = ProbeRegistry()

    # Manual registration
    registry.register("db", check_database)

    # Decorator registration
    @registry.probe("cache")
    async def check_cache(ctx):
        return Severity.AVAILABLE, None

    # Mapping for one aggregation run
    probes = registry.snapshot()
"""

from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional

from core.logging import ComponentType, get_logger
from healthz.core import DuplicateProbeError, ProbeFunc, default_probe

logger = get_logger(__name__, ComponentType.REGISTRY)

DEFAULT_PROBE_NAME = "default"


class ProbeRegistry:
    """
    Registry of named probes.

    Not safe against registration racing a running aggregation; register
    everything before serving traffic.
    """

    def __init__(self, include_default: bool = True):
        self._probes: Dict[str, ProbeFunc] = {}
        if include_default:
            self.register(DEFAULT_PROBE_NAME, default_probe)

    def register(self, name: str, probe: ProbeFunc) -> None:
        """
        Register a probe function.

        Args:
            name: Unique probe name (key in the report's tests mapping)
            probe: Probe function, sync or async

        Raises:
            DuplicateProbeError: If a probe with the same name is registered
            TypeError: If probe is not callable
        """
        if not callable(probe):
            raise TypeError(f"probe {name!r} is not callable")
        if name in self._probes:
            raise DuplicateProbeError(f"probe already registered: {name}")

        self._probes[name] = probe
        logger.debug(f"Registered probe: {name}")

    def probe(self, name: str) -> Callable[[ProbeFunc], ProbeFunc]:
        """Decorator form of register()."""
        def decorator(func: ProbeFunc) -> ProbeFunc:
            self.register(name, func)
            return func
        return decorator

    def snapshot(self) -> Mapping[str, ProbeFunc]:
        """Read-only copy of the registered probes for one run."""
        return MappingProxyType(dict(self._probes))

    def get(self, name: str) -> Optional[ProbeFunc]:
        """Get probe by name."""
        return self._probes.get(name)

    def names(self) -> List[str]:
        return list(self._probes)

    def __len__(self) -> int:
        return len(self._probes)

    def __contains__(self, name: str) -> bool:
        return name in self._probes


__all__ = [
    "DEFAULT_PROBE_NAME",
    "ProbeRegistry",
]

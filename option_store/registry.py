"""
Driver registry: central catalog of store drivers.

A driver is a factory taking the resolved store config and returning a Store.
The manager registers its built-in drivers here; applications add their own
with OptionManager.extend().
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List

from .core.errors import DriverNotSupportedError
from .store.backend import Store

logger = logging.getLogger(__name__)

DriverFactory = Callable[[Dict], Store]


class DriverRegistry:
    """
    Maps driver names to store factories.

    Usage:
        registry = DriverRegistry()
        registry.register("memory", lambda cfg: MemoryStore())
        store = registry.get("memory")({"driver": "memory"})
    """

    def __init__(self) -> None:
        self._factories: Dict[str, DriverFactory] = {}

    def register(self, name: str, factory: DriverFactory) -> None:
        """Register (or replace) a driver factory by name."""
        self._factories[name] = factory
        logger.debug("Registered option driver: %s", name)

    def get(self, name: str) -> DriverFactory:
        factory = self._factories.get(name)
        if factory is None:
            raise DriverNotSupportedError(name)
        return factory

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    @property
    def names(self) -> List[str]:
        return list(self._factories)

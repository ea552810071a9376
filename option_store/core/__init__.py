"""
Stable facade: exception taxonomy and shared types only. No stores, manager or config.
Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import (
    ConfigurationError,
    DriverNotSupportedError,
    OptionStoreError,
    PersistenceError,
    SerializationError,
    StoreNotDefinedError,
)
from .types import MISSING, resolve_default

# Do not add exports without updating __all__.
__all__ = [
    "ConfigurationError",
    "DriverNotSupportedError",
    "MISSING",
    "OptionStoreError",
    "PersistenceError",
    "SerializationError",
    "StoreNotDefinedError",
    "resolve_default",
]

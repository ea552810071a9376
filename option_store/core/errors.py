"""
Shared exception types for option_store.
Only configuration errors leave the package; persistence and serialization
errors are raised internally and degraded to False / empty results by the stores.
"""

from __future__ import annotations


class OptionStoreError(Exception):
    """Base exception for option_store; catch this for any package-raised error."""

    pass


class ConfigurationError(OptionStoreError):
    """Store or driver configuration cannot be resolved. Raised at resolution time."""

    pass


class StoreNotDefinedError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Option store [{name}] is not defined.")
        self.name = name


class DriverNotSupportedError(ConfigurationError):
    def __init__(self, driver: str) -> None:
        super().__init__(f"Driver [{driver}] is not supported.")
        self.driver = driver


class PersistenceError(OptionStoreError):
    """Underlying database call failed (constraint violation, connectivity, missing table)."""

    pass


class SerializationError(OptionStoreError):
    """Stored payload could not be decoded."""

    pass


__all__ = [
    "ConfigurationError",
    "DriverNotSupportedError",
    "OptionStoreError",
    "PersistenceError",
    "SerializationError",
    "StoreNotDefinedError",
]

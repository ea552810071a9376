"""
Top-level public API surface. Stable facades only.
Canonical entrypoint: import option_store; use option_store.option(), option_store.OptionManager,
or build a Repository over a Store directly.
"""

from __future__ import annotations

from . import core, db, store
from ._version import __version__
from .core.errors import (
    ConfigurationError,
    DriverNotSupportedError,
    OptionStoreError,
    PersistenceError,
    SerializationError,
    StoreNotDefinedError,
)
from .core.types import MISSING
from .helpers import option, option_exists
from .manager import OptionManager, get_manager, set_manager
from .registry import DriverRegistry
from .repository import Repository
from .store import FileStore, NullStore, Store, TableStore

# Do not add exports without updating __all__.
__all__ = [
    "ConfigurationError",
    "DriverNotSupportedError",
    "DriverRegistry",
    "FileStore",
    "MISSING",
    "NullStore",
    "OptionManager",
    "OptionStoreError",
    "PersistenceError",
    "Repository",
    "SerializationError",
    "Store",
    "StoreNotDefinedError",
    "TableStore",
    "__version__",
    "core",
    "db",
    "get_manager",
    "option",
    "option_exists",
    "set_manager",
    "store",
]

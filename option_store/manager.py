"""
OptionManager: resolves store names from config into cached Repositories.

Config shape (see option_store.config):
    default: file
    stores:
      file:     {driver: file, path: storage/options}
      database: {driver: database, table: options, connection: default}

One Repository is built per store name and kept until forget_driver() or
close(). Database connections are cached per connection name and shared by
every database store using them.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Union

from .config import connection_config, default_store, get_config, store_config
from .core.errors import ConfigurationError, PersistenceError, StoreNotDefinedError
from .db.connection import Connection, connect
from .registry import DriverFactory, DriverRegistry
from .repository import Repository
from .serializers import get_serializer
from .store.backend import Store
from .store.file_store import FileStore
from .store.filesystem import Filesystem
from .store.null_store import NullStore
from .store.table_store import TableStore

logger = logging.getLogger(__name__)

# Process default manager (set by get_manager)
_manager: Optional["OptionManager"] = None
_manager_lock = threading.Lock()


class OptionManager:
    """
    Named option stores.

    Usage:
        manager = OptionManager()
        manager.store().put("site.title", "Docs")
        manager.store("database").get("site.title")
        manager.extend("memory", lambda cfg: MemoryStore())
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        filesystem: Optional[Filesystem] = None,
        registry: Optional[DriverRegistry] = None,
    ) -> None:
        self._config = config if config is not None else get_config()
        self._filesystem = filesystem
        self._registry = registry or DriverRegistry()
        self._stores: Dict[str, Repository] = {}
        self._connections: Dict[str, Connection] = {}
        self._lock = threading.RLock()

        # Keep drivers the caller registered before handing the registry over.
        builtins = {
            "file": self._create_file_driver,
            "database": self._create_database_driver,
            "null": self._create_null_driver,
        }
        for driver, factory in builtins.items():
            if driver not in self._registry:
                self._registry.register(driver, factory)

    @property
    def config(self) -> Dict[str, Any]:
        return self._config

    @property
    def registry(self) -> DriverRegistry:
        return self._registry

    # Stores

    def store(self, name: Optional[str] = None) -> Repository:
        """Repository for the named store (default store when name is None)."""
        name = name or self.get_default_driver()
        with self._lock:
            repository = self._stores.get(name)
            if repository is None:
                repository = self.repository(self._resolve(name))
                self._stores[name] = repository
                logger.debug("Resolved option store %s", name)
            return repository

    def repository(self, store: Store) -> Repository:
        return Repository(store)

    def extend(self, driver: str, factory: DriverFactory) -> "OptionManager":
        """Register a custom driver; factory receives the store config and returns a Store."""
        self._registry.register(driver, factory)
        return self

    def forget_driver(self, names: Union[str, Iterable[str], None] = None) -> "OptionManager":
        """Evict cached repositories; the default store when names is None."""
        if names is None:
            names = [self.get_default_driver()]
        elif isinstance(names, str):
            names = [names]
        with self._lock:
            for name in names:
                if self._stores.pop(name, None) is not None:
                    logger.debug("Forgot option store %s", name)
        return self

    def get_default_driver(self) -> str:
        return default_store(self._config)

    def set_default_driver(self, name: str) -> None:
        self._config["default"] = name

    @property
    def cached(self) -> List[str]:
        with self._lock:
            return list(self._stores)

    # Connections

    def connection(self, name: Optional[str] = None) -> Connection:
        """Shared database connection for a configured connection name."""
        name = name or self._config.get("default_connection") or "default"
        with self._lock:
            conn = self._connections.get(name)
            if conn is None:
                conn = connect(connection_config(name, self._config))
                self._connections[name] = conn
                logger.debug("Opened option connection %s: %r", name, conn)
            return conn

    def close(self) -> None:
        """Drop every cached repository and close every cached connection."""
        with self._lock:
            self._stores.clear()
            connections, self._connections = self._connections, {}
        for name, conn in connections.items():
            conn.close()
            logger.debug("Closed option connection %s", name)

    # Resolution

    def _resolve(self, name: str) -> Store:
        cfg = store_config(name, self._config)
        if cfg is None:
            raise StoreNotDefinedError(name)
        driver = cfg.get("driver") or name
        return self._registry.get(driver)(cfg)

    def _create_file_driver(self, cfg: Dict[str, Any]) -> Store:
        path = cfg.get("path")
        if not path:
            raise ConfigurationError("File option store needs a 'path'")
        return FileStore(
            path,
            filesystem=self._filesystem,
            serializer=get_serializer(cfg.get("serializer")),
        )

    def _create_database_driver(self, cfg: Dict[str, Any]) -> Store:
        table = cfg.get("table")
        if not table:
            raise ConfigurationError("Database option store needs a 'table'")
        conn = self.connection(cfg.get("connection"))
        store = TableStore(conn, table, serializer=get_serializer(cfg.get("serializer")))
        try:
            conn.ensure_table(store.table)
        except PersistenceError as exc:
            logger.warning("Could not create option table %s: %s", table, exc)
        return store

    def _create_null_driver(self, cfg: Dict[str, Any]) -> Store:
        return NullStore()

    def __repr__(self) -> str:
        return f"OptionManager(default={self.get_default_driver()!r}, drivers={self._registry.names!r})"


def get_manager() -> OptionManager:
    """Return the process default manager, built from get_config() on first use."""
    global _manager
    with _manager_lock:
        if _manager is None:
            _manager = OptionManager()
        return _manager


def set_manager(manager: Optional[OptionManager]) -> None:
    """Replace the process default manager (None resets it; the old one is closed)."""
    global _manager
    with _manager_lock:
        previous, _manager = _manager, manager
    if previous is not None and previous is not manager:
        previous.close()

"""
Repository: the caller-facing option API over a Store.

Adds default resolution (defaults may be zero-argument callables, called only on
a miss), per-key defaults for many(), pull semantics (read, then always delete)
and tag-scoped bulk reads/pulls. Holds no state besides its Store.

Backend-specific operations are reached through .store; nothing is forwarded
implicitly.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .core.types import MISSING, Default, KeyDefaults, resolve_default
from .store.backend import Store

logger = logging.getLogger(__name__)


class Repository:
    """
    Option repository.

    Usage:
        repo = Repository(FileStore("storage/options"))
        repo.put("site.title", "Docs", tag="site")
        repo.get("site.title")                    # "Docs"
        repo.get("site.logo", lambda: "/logo.png")
        repo.pull_tag("site")                     # {"site.title": "Docs"}, rows removed
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    @property
    def store(self) -> Store:
        return self._store

    def get(self, key: str, default: Default = None) -> Any:
        """Stored value, or the resolved default when key has no entry."""
        value = self._store.get(key)
        if value is MISSING:
            return resolve_default(default)
        return value

    def has(self, key: str) -> bool:
        """
        True when key holds a non-None value.

        A stored None reads as "no usable value", same as an absent key.
        """
        return self.get(key) is not None

    def many(self, keys: Union[KeyDefaults, Iterable[str]]) -> Dict[str, Any]:
        """
        Values for every requested key.

        keys is either an iterable of keys (missing ones map to None) or a mapping
        of key -> default (missing ones map to their resolved default).
        """
        if isinstance(keys, str):
            keys = [keys]
        defaults: Mapping[str, Default] = keys if isinstance(keys, Mapping) else dict.fromkeys(keys)
        found = self._store.many(list(defaults))
        return {
            key: found[key] if key in found else resolve_default(default)
            for key, default in defaults.items()
        }

    def tag(self, tag: str) -> Dict[str, Any]:
        """Every option under tag. No defaults, no deletion."""
        return self._store.by_tag(tag)

    def all(self) -> Dict[str, Any]:
        return self._store.all()

    def put(self, key: str, value: Any, tag: Optional[str] = None) -> bool:
        return self._store.put(key, value, tag)

    def put_many(self, values: Mapping[str, Any], tag: Optional[str] = None) -> bool:
        """
        Store every pair under tag. True only when every single put succeeded.
        No rollback: successful writes stay even when others fail.
        """
        written = sum(1 for key, value in values.items() if self.put(key, value, tag))
        if written != len(values):
            logger.warning("put_many stored %d of %d options", written, len(values))
        return written == len(values)

    def pull(self, key: str, default: Default = None) -> Any:
        """get() then delete(); the delete runs even when the default was returned."""
        value = self.get(key, default)
        self.delete(key)
        return value

    def pull_tag(self, tag: str, defaults: Optional[KeyDefaults] = None) -> Dict[str, Any]:
        """
        Pull every option currently under tag, key by key.

        Keys added under tag after the initial read are left alone.
        """
        defaults = defaults or {}
        return {key: self.pull(key, defaults.get(key)) for key in self._store.by_tag(tag)}

    def delete(self, key: str) -> bool:
        return self._store.delete(key)

    # Indexed access

    def exists(self, key: str) -> bool:
        return self.has(key)

    def read(self, key: str) -> Any:
        return self.get(key)

    def write(self, key: str, value: Any) -> None:
        self.put(key, value)

    def remove(self, key: str) -> None:
        self.delete(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.exists(key)

    def __getitem__(self, key: str) -> Any:
        return self.read(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.write(key, value)

    def __delitem__(self, key: str) -> None:
        self.remove(key)

    def __repr__(self) -> str:
        return f"Repository({self._store!r})"

"""
FileStore: every option in one serialized file, "<directory>/options".

The file holds a single mapping {key: {"key", "value", "tag"}}. Reads load the
whole mapping; put/delete reload it, mutate in memory and rewrite it in full.

Concurrency: the load-mutate-write cycle runs under a re-entrant lock shared by
all FileStore instances in this process that resolve to the same file, and the
write goes through LocalFilesystem's temp file + replace. Writers in separate
processes are NOT serialized; one writing process per options file is assumed.
"""

from __future__ import annotations

import logging
import threading
import weakref
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from ..core.errors import SerializationError
from ..core.types import MISSING
from ..serializers import PickleSerializer, Serializer
from .backend import Store
from .filesystem import Filesystem, LocalFilesystem

logger = logging.getLogger(__name__)

OPTIONS_FILENAME = "options"

# Entries live as long as some FileStore holds the lock.
_path_locks: "weakref.WeakValueDictionary[str, threading.RLock]" = weakref.WeakValueDictionary()
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _path_locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = _path_locks[key] = threading.RLock()
        return lock


class FileStore(Store):
    """Single-file option store."""

    def __init__(
        self,
        directory: Union[str, Path],
        *,
        filesystem: Optional[Filesystem] = None,
        serializer: Optional[Serializer] = None,
    ) -> None:
        self._directory = Path(directory)
        self._files = filesystem or LocalFilesystem()
        self._serializer = serializer or PickleSerializer()
        self._lock = _lock_for(self.path)

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def path(self) -> Path:
        return self._directory / OPTIONS_FILENAME

    @property
    def filesystem(self) -> Filesystem:
        return self._files

    def all(self) -> Dict[str, Any]:
        return self._decoded(self._load())

    def many(self, keys: Iterable[str]) -> Dict[str, Any]:
        records = self._load()
        return self._decoded({key: records[key] for key in keys if key in records})

    def by_tag(self, tag: str) -> Dict[str, Any]:
        return self._decoded({
            key: record
            for key, record in self._load().items()
            if isinstance(record, dict) and record.get("tag") == tag
        })

    def get(self, key: str) -> Any:
        records = self._load()
        if key not in records:
            return MISSING
        return self._decoded({key: records[key]}).get(key, MISSING)

    def put(self, key: str, value: Any, tag: Optional[str] = None) -> bool:
        with self._lock:
            try:
                if not self._files.exists(self._directory):
                    self._files.makedirs(self._directory)
            except OSError as exc:
                logger.warning("Cannot create option directory %s: %s", self._directory, exc)
                return False
            try:
                packed = self._serializer.pack(value)
            except SerializationError as exc:
                logger.warning("Cannot serialize option %r: %s", key, exc)
                return False
            records = self._load()
            records[key] = {"key": key, "value": packed, "tag": tag}
            return self._write(records)

    def delete(self, key: str) -> bool:
        with self._lock:
            records = self._load()
            if key not in records:
                return True
            del records[key]
            return self._write(records)

    def _decoded(self, records: Dict[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for key, record in records.items():
            try:
                values[key] = self._serializer.unpack(record["value"])
            except (KeyError, TypeError, SerializationError) as exc:
                logger.warning("Skipping unreadable option %r in %s: %s", key, self.path, exc)
        return values

    def _load(self) -> Dict[str, Dict[str, Any]]:
        # A missing or unreadable file counts as "no options".
        try:
            contents = self._files.read_bytes(self.path)
        except OSError:
            return {}
        try:
            records = self._serializer.loads(contents)
        except SerializationError as exc:
            logger.warning("Discarding unreadable option file %s: %s", self.path, exc)
            return {}
        if not isinstance(records, dict):
            logger.warning("Discarding option file %s: not a mapping", self.path)
            return {}
        return records

    def _write(self, records: Dict[str, Dict[str, Any]]) -> bool:
        try:
            self._files.write_bytes(self.path, self._serializer.dumps(records))
        except (OSError, SerializationError) as exc:
            logger.warning("Failed to write option file %s: %s", self.path, exc)
            return False
        return True

"""
TableStore: one row per option in a table with columns key (unique), value, tag.

Values are serialized per row. When the connection is not binary safe (TEXT
value column), payloads containing bytes outside printable ASCII are base64
wrapped; on read, a payload without the serializer's native marker is unwrapped
first. base64 output can never start with a marker ("\\x80" for pickle, "{" for
JSON), so the check is unambiguous.

Every persistence failure is logged and degraded: writes return False, reads
return {} / MISSING.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from ..core.errors import PersistenceError, SerializationError
from ..core.types import MISSING
from ..db.connection import Connection, OptionRow
from ..db.migrations import validate_table_name
from ..serializers import PickleSerializer, Serializer
from .backend import Store

logger = logging.getLogger(__name__)

_TEXT_UNSAFE_RE = re.compile(rb"[^\t\n\r\x20-\x7e]")


class TableStore(Store):
    """Row-per-option store over a Connection."""

    def __init__(
        self,
        connection: Connection,
        table: str,
        *,
        serializer: Optional[Serializer] = None,
    ) -> None:
        self._connection = connection
        self._table = validate_table_name(table)
        self._serializer = serializer or PickleSerializer()

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def table(self) -> str:
        return self._table

    def all(self) -> Dict[str, Any]:
        return self._decoded(self._select())

    def many(self, keys: Iterable[str]) -> Dict[str, Any]:
        key_list = list(dict.fromkeys(keys))
        if not key_list:
            return {}
        return self._decoded(self._select(keys=key_list))

    def by_tag(self, tag: str) -> Dict[str, Any]:
        return self._decoded(self._select(tag=tag))

    def get(self, key: str) -> Any:
        return self._decoded(self._select(keys=[key])).get(key, MISSING)

    def has(self, key: str) -> bool:
        """True when a row exists for key, whatever its value."""
        try:
            return self._connection.count(self._table, key) > 0
        except PersistenceError as exc:
            logger.warning("Option existence check failed for %r in %s: %s", key, self._table, exc)
            return False

    def put(self, key: str, value: Any, tag: Optional[str] = None) -> bool:
        try:
            exists = self._connection.count(self._table, key) > 0
        except PersistenceError as exc:
            logger.warning("Failed to store option %r in %s: %s", key, self._table, exc)
            return False
        if exists:
            return self.update(key, value, tag)

        try:
            self._connection.insert(self._table, key, self._serialize(value), tag)
        except (PersistenceError, SerializationError) as exc:
            logger.warning("Failed to insert option %r into %s: %s", key, self._table, exc)
            return False
        return True

    def update(self, key: str, value: Any, tag: Optional[str] = None) -> bool:
        """Replace value and tag of an existing row. False when no row changed."""
        try:
            changed = self._connection.update(self._table, key, self._serialize(value), tag)
        except (PersistenceError, SerializationError) as exc:
            logger.warning("Failed to update option %r in %s: %s", key, self._table, exc)
            return False
        return changed > 0

    def delete(self, key: str) -> bool:
        """True when a row was removed; an absent key is a silent no-op (False)."""
        try:
            return self._connection.delete(self._table, key) > 0
        except PersistenceError as exc:
            logger.warning("Failed to delete option %r from %s: %s", key, self._table, exc)
            return False

    def _select(self, **filters: Any) -> List[OptionRow]:
        try:
            return self._connection.select(self._table, **filters)
        except PersistenceError as exc:
            logger.warning("Option read from %s failed: %s", self._table, exc)
            return []

    def _decoded(self, rows: List[OptionRow]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for row in rows:
            try:
                values[row.key] = self._unserialize(row.value)
            except SerializationError as exc:
                logger.warning("Skipping undecodable option %r in %s: %s", row.key, self._table, exc)
        return values

    def _serialize(self, value: Any) -> bytes:
        payload = self._serializer.dumps(self._serializer.pack(value))
        if not self._connection.binary_safe and _TEXT_UNSAFE_RE.search(payload):
            payload = base64.b64encode(payload)
        return payload

    def _unserialize(self, payload: bytes) -> Any:
        if not self._serializer.is_native(payload):
            try:
                payload = base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise SerializationError(f"Payload is neither native nor base64: {exc}") from exc
        return self._serializer.unpack(self._serializer.loads(payload))

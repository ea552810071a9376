"""
Connection capability consumed by TableStore: table-scoped CRUD over option rows.

Every implementation translates its driver errors into PersistenceError and
exchanges the value column as bytes. binary_safe tells TableStore whether raw
payload bytes survive the value column unchanged.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Protocol, Union, runtime_checkable

from ..core.errors import ConfigurationError, PersistenceError
from .migrations import ensure_options_table, validate_table_name
from .sqlite_session import DEFAULT_TIMEOUT_S, sqlite_conn

logger = logging.getLogger(__name__)

SQLITE_URL_PREFIX = "sqlite:///"

# Stay under SQLite's bound-parameter limit for key IN (...) selects.
_MAX_KEYS_PER_SELECT = 500


class OptionRow(NamedTuple):
    key: str
    value: bytes
    tag: Optional[str]


@runtime_checkable
class Connection(Protocol):
    binary_safe: bool

    def ensure_table(self, table: str) -> None: ...

    def select(
        self,
        table: str,
        *,
        keys: Optional[Iterable[str]] = None,
        tag: Optional[str] = None,
    ) -> List[OptionRow]:
        """Rows filtered by key IN keys and/or tag equality; every row when both are None."""
        ...

    def insert(self, table: str, key: str, value: bytes, tag: Optional[str]) -> None: ...

    def update(self, table: str, key: str, value: bytes, tag: Optional[str]) -> int: ...

    def delete(self, table: str, key: str) -> int: ...

    def count(self, table: str, key: str) -> int: ...

    def close(self) -> None: ...


def _as_bytes(value: Union[bytes, str, memoryview]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class SQLiteConnection:
    """stdlib sqlite3 connection; value column is a BLOB."""

    binary_safe = True

    def __init__(self, db_path: Union[str, Path], *, timeout: float = DEFAULT_TIMEOUT_S) -> None:
        if str(db_path) in ("", ":memory:"):
            raise ConfigurationError(
                "SQLiteConnection needs a database file; in-memory databases do not "
                "outlive a single operation"
            )
        self.db_path = Path(db_path)
        self.timeout = timeout

    def ensure_table(self, table: str) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with sqlite_conn(self.db_path, timeout=self.timeout) as conn:
                ensure_options_table(conn, table)
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceError(f"Cannot prepare table {table}: {exc}") from exc

    def select(
        self,
        table: str,
        *,
        keys: Optional[Iterable[str]] = None,
        tag: Optional[str] = None,
    ) -> List[OptionRow]:
        table = validate_table_name(table)
        base = f'SELECT "key", "value", "tag" FROM "{table}"'
        if keys is None:
            if tag is None:
                return self._fetch(base, ())
            return self._fetch(base + ' WHERE "tag" = ?', (tag,))

        key_list = list(keys)
        rows: List[OptionRow] = []
        for start in range(0, len(key_list), _MAX_KEYS_PER_SELECT):
            chunk = key_list[start:start + _MAX_KEYS_PER_SELECT]
            placeholders = ", ".join("?" for _ in chunk)
            query = base + f' WHERE "key" IN ({placeholders})'
            params: tuple = tuple(chunk)
            if tag is not None:
                query += ' AND "tag" = ?'
                params += (tag,)
            rows.extend(self._fetch(query, params))
        return rows

    def insert(self, table: str, key: str, value: bytes, tag: Optional[str]) -> None:
        table = validate_table_name(table)
        self._execute(
            f'INSERT INTO "{table}" ("key", "value", "tag") VALUES (?, ?, ?);',
            (key, sqlite3.Binary(value), tag),
        )

    def update(self, table: str, key: str, value: bytes, tag: Optional[str]) -> int:
        table = validate_table_name(table)
        return self._execute(
            f'UPDATE "{table}" SET "value" = ?, "tag" = ? WHERE "key" = ?;',
            (sqlite3.Binary(value), tag, key),
        )

    def delete(self, table: str, key: str) -> int:
        table = validate_table_name(table)
        return self._execute(f'DELETE FROM "{table}" WHERE "key" = ?;', (key,))

    def count(self, table: str, key: str) -> int:
        table = validate_table_name(table)
        try:
            with sqlite_conn(self.db_path, timeout=self.timeout) as conn:
                row = conn.execute(
                    f'SELECT COUNT(*) FROM "{table}" WHERE "key" = ?;', (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc
        return int(row[0]) if row else 0

    def close(self) -> None:
        # Connections are per operation; nothing is held open.
        pass

    def _fetch(self, query: str, params: tuple) -> List[OptionRow]:
        try:
            with sqlite_conn(self.db_path, timeout=self.timeout) as conn:
                result = conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc
        return [OptionRow(key, _as_bytes(value), tag) for key, value, tag in result]

    def _execute(self, query: str, params: tuple) -> int:
        try:
            with sqlite_conn(self.db_path, timeout=self.timeout) as conn:
                with conn:
                    cur = conn.execute(query, params)
                return cur.rowcount
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc

    def __repr__(self) -> str:
        return f"SQLiteConnection({str(self.db_path)!r})"


def connect(params: Dict[str, Any]) -> Connection:
    """
    Build a connection from config params.

    {"path": ...} or {"url": "sqlite:///..."} use sqlite3; any other URL (or
    engine: sqlalchemy) goes through SQLAlchemy.
    """
    path = params.get("path")
    url = params.get("url")
    engine = params.get("engine")
    if path and engine != "sqlalchemy":
        return SQLiteConnection(path)
    if not url:
        raise ConfigurationError("Database connection needs a 'url' or 'path'")
    if url.startswith(SQLITE_URL_PREFIX) and engine != "sqlalchemy":
        return SQLiteConnection(url[len(SQLITE_URL_PREFIX):])

    from .sqlalchemy_connection import SQLAlchemyConnection

    logger.debug("Opening SQLAlchemy option connection for %s", url.split("@")[-1])
    return SQLAlchemyConnection(url, **params.get("engine_options", {}))


__all__ = ["Connection", "OptionRow", "SQLiteConnection", "connect"]

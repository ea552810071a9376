"""
SQLAlchemy-backed option connection (PostgreSQL, MySQL, SQLite, ...).

The value column is TEXT on every engine, so the connection is not binary safe:
TableStore base64-wraps payloads that carry non-text bytes before they get here.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, delete, func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import PersistenceError
from .connection import OptionRow
from .migrations import validate_table_name

logger = logging.getLogger(__name__)

KEY_LENGTH = 255


class SQLAlchemyConnection:
    """Option rows through a SQLAlchemy Engine. One transaction per operation."""

    binary_safe = False

    def __init__(self, url: str, *, engine: Optional[Engine] = None, **engine_options: Any) -> None:
        self.url = url
        self._engine = engine if engine is not None else create_engine(url, **engine_options)
        self._metadata = MetaData()
        self._tables: Dict[str, Table] = {}
        self._lock = threading.Lock()

    @property
    def engine(self) -> Engine:
        return self._engine

    def _table(self, name: str) -> Table:
        with self._lock:
            table = self._tables.get(name)
            if table is None:
                table = Table(
                    validate_table_name(name),
                    self._metadata,
                    Column("key", String(KEY_LENGTH), primary_key=True),
                    Column("value", Text, nullable=False),
                    Column("tag", String(KEY_LENGTH), nullable=True, index=True),
                )
                self._tables[name] = table
            return table

    def ensure_table(self, table: str) -> None:
        t = self._table(table)
        try:
            self._metadata.create_all(self._engine, tables=[t], checkfirst=True)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Cannot prepare table {table}: {exc}") from exc
        logger.debug("Ensured option table %s", table)

    def select(
        self,
        table: str,
        *,
        keys: Optional[Iterable[str]] = None,
        tag: Optional[str] = None,
    ) -> List[OptionRow]:
        t = self._table(table)
        query = select(t.c["key"], t.c["value"], t.c["tag"])
        if keys is not None:
            query = query.where(t.c["key"].in_(list(keys)))
        if tag is not None:
            query = query.where(t.c["tag"] == tag)
        try:
            with self._engine.connect() as conn:
                result = conn.execute(query).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
        return [OptionRow(key, value.encode("utf-8"), tag_) for key, value, tag_ in result]

    def insert(self, table: str, key: str, value: bytes, tag: Optional[str]) -> None:
        t = self._table(table)
        self._write(insert(t).values(key=key, value=value.decode("utf-8"), tag=tag))

    def update(self, table: str, key: str, value: bytes, tag: Optional[str]) -> int:
        t = self._table(table)
        return self._write(
            update(t).where(t.c["key"] == key).values(value=value.decode("utf-8"), tag=tag)
        )

    def delete(self, table: str, key: str) -> int:
        t = self._table(table)
        return self._write(delete(t).where(t.c["key"] == key))

    def count(self, table: str, key: str) -> int:
        t = self._table(table)
        query = select(func.count()).select_from(t).where(t.c["key"] == key)
        try:
            with self._engine.connect() as conn:
                return int(conn.execute(query).scalar() or 0)
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def close(self) -> None:
        self._engine.dispose()

    def _write(self, statement: Any) -> int:
        try:
            with self._engine.begin() as conn:
                return conn.execute(statement).rowcount
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def __repr__(self) -> str:
        return f"SQLAlchemyConnection({self._engine.url.render_as_string(hide_password=True)!r})"

"""
Idempotent schema setup for SQLite option tables.

Uses CREATE TABLE IF NOT EXISTS / CREATE INDEX IF NOT EXISTS so it can be re-run
safely on every startup.
"""

from __future__ import annotations

import logging
import re
import sqlite3

from ..core.errors import ConfigurationError

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_table_name(table: str) -> str:
    """Table names are interpolated into SQL, so only plain identifiers are accepted."""
    if not isinstance(table, str) or not _IDENTIFIER_RE.match(table):
        raise ConfigurationError(f"Invalid option table name: {table!r}")
    return table


def ensure_options_table(conn: sqlite3.Connection, table: str) -> None:
    """
    Create the option table and its tag index if missing.

    Columns: key (unique), value (serialized payload, BLOB), tag (nullable).
    """
    table = validate_table_name(table)
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS "{table}" (
            "key" TEXT NOT NULL PRIMARY KEY,
            "value" BLOB NOT NULL,
            "tag" TEXT
        );
        """
    )
    conn.execute(f'CREATE INDEX IF NOT EXISTS "idx_{table}_tag" ON "{table}"("tag");')
    conn.commit()
    logger.debug("Ensured option table %s", table)

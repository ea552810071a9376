"""
Database connections for TableStore: sqlite3 by default, SQLAlchemy for other URLs.
The SQLAlchemy connection is imported lazily by connect().
"""

from __future__ import annotations

from .connection import Connection, OptionRow, SQLiteConnection, connect
from .migrations import ensure_options_table
from .sqlite_session import sqlite_conn

__all__ = ["Connection", "OptionRow", "SQLiteConnection", "connect", "ensure_options_table", "sqlite_conn"]

"""
SQLite connection lifecycle: context manager with guaranteed close.
One short-lived connection per operation keeps SQLiteConnection safe to share across threads.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Union

DEFAULT_TIMEOUT_S = 5.0


@contextmanager
def sqlite_conn(
    db_path: Union[str, Path],
    *,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> Generator[sqlite3.Connection, None, None]:
    """
    Yield a SQLite connection that is always closed on exit.
    timeout bounds how long a writer waits on another connection's lock.
    """
    path = str(Path(db_path).resolve())
    conn = sqlite3.connect(path, timeout=timeout)
    try:
        yield conn
    finally:
        conn.close()

"""
Store: option persistence backends. No defaulting or typed access here.
"""

from __future__ import annotations

from .backend import Store
from .file_store import FileStore
from .filesystem import Filesystem, LocalFilesystem
from .null_store import NullStore
from .table_store import TableStore

__all__ = ["FileStore", "Filesystem", "LocalFilesystem", "NullStore", "Store", "TableStore"]

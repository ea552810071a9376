"""Fake filesystems, stores and connections for option store tests (no shared state)."""

from .connections import RecordingConnection
from .filesystem import FailingFilesystem, MemoryFilesystem
from .stores import FailingStore, MemoryStore

__all__ = [
    "FailingFilesystem",
    "FailingStore",
    "MemoryFilesystem",
    "MemoryStore",
    "RecordingConnection",
]

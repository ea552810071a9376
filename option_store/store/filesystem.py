"""
File-access capability consumed by FileStore.
LocalFilesystem writes through a temp file and os.replace so a reader never sees
a half-written file. Failures surface as OSError.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

PathLike = Union[str, Path]


@runtime_checkable
class Filesystem(Protocol):
    def read_bytes(self, path: PathLike) -> bytes: ...

    def write_bytes(self, path: PathLike, data: bytes) -> None: ...

    def exists(self, path: PathLike) -> bool: ...

    def makedirs(self, path: PathLike) -> None: ...


class LocalFilesystem:
    """Local disk implementation of Filesystem."""

    def read_bytes(self, path: PathLike) -> bytes:
        return Path(path).read_bytes()

    def write_bytes(self, path: PathLike, data: bytes) -> None:
        path = Path(path)
        tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
        try:
            with open(tmp, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        finally:
            tmp.unlink(missing_ok=True)

    def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def makedirs(self, path: PathLike) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)


__all__ = ["Filesystem", "LocalFilesystem", "PathLike"]

"""
Store interface: raw key/tag persistence shared by every option backend.
No defaulting and no typed access; that is the Repository's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional


class Store(ABC):
    """
    Minimal option persistence backend.

    Reads never raise for missing data: absent keys are omitted from mapping
    results and get() returns MISSING. Writes report failure as False.
    """

    @abstractmethod
    def all(self) -> Dict[str, Any]:
        """Every stored option as {key: value}."""
        ...

    @abstractmethod
    def many(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Stored options among keys. Keys without an entry are omitted, not mapped to None."""
        ...

    @abstractmethod
    def by_tag(self, tag: str) -> Dict[str, Any]:
        """Options whose tag equals tag exactly; {} when none match."""
        ...

    @abstractmethod
    def get(self, key: str) -> Any:
        """Stored value for key, or MISSING. A stored None is returned as None."""
        ...

    @abstractmethod
    def put(self, key: str, value: Any, tag: Optional[str] = None) -> bool:
        """Insert or replace key (value and tag). False on any persistence failure."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key. Deleting an absent key is a no-op, never an error."""
        ...

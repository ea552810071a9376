"""
NullStore: accepts nothing and remembers nothing. Useful to switch option
persistence off without touching callers.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from ..core.types import MISSING
from .backend import Store


class NullStore(Store):
    def all(self) -> Dict[str, Any]:
        return {}

    def many(self, keys: Iterable[str]) -> Dict[str, Any]:
        return {}

    def by_tag(self, tag: str) -> Dict[str, Any]:
        return {}

    def get(self, key: str) -> Any:
        return MISSING

    def put(self, key: str, value: Any, tag: Optional[str] = None) -> bool:
        return False

    def delete(self, key: str) -> bool:
        return True

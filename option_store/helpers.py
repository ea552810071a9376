"""
Functional surface over the process default manager.
"""

from __future__ import annotations

from typing import Any, Optional

from .core.types import Default
from .manager import get_manager


def option(key: Optional[str] = None, default: Default = None) -> Any:
    """
    option() -> default store's Repository.
    option(key, default) -> stored value, or the resolved default.
    """
    repository = get_manager().store()
    if key is None:
        return repository
    return repository.get(key, default)


def option_exists(key: str) -> bool:
    return get_manager().store().has(key)

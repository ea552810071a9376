"""
Shared typing aliases, the MISSING sentinel and default resolution.
Stable surface; extend with new aliases only.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Union


class _Missing:
    """Marks a key with no stored entry. Distinct from a stored None."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"

    def __reduce__(self):
        return (_Missing, ())


MISSING = _Missing()

# A default is either a plain value or a zero-argument producer evaluated on miss.
Thunk = Callable[[], Any]
Default = Union[Any, Thunk]
KeyDefaults = Mapping[str, Default]


def resolve_default(default: Default) -> Any:
    """Return default, calling it first when it is a zero-argument producer."""
    if callable(default):
        return default()
    return default


__all__ = ["Default", "KeyDefaults", "MISSING", "Thunk", "resolve_default"]

"""
Value kind detection and string codec for string-only storage media.

Each value is classified into exactly one ValueKind (first match wins):

    integer   int (not bool), or a string of optional sign + digits ("42", "-7")
    boolean   bool, or the literal strings "true" / "false"
    float     float
    datetime  datetime / date instances, or strings accepted by datetime.fromisoformat
    array     list, tuple or dict
    object    dataclass instance, or anything exposing to_dict() / to_json()
    null      None only; 0, "" and empty containers keep their own kind
    original  fallback, stored as str(value)

decode() reverses encode(): array/object parse JSON into lists/dicts (tuples come
back as lists, objects as dicts), date-only text parses to date and anything with a
time part to datetime, original returns the raw string unchanged.
"""

from __future__ import annotations

import dataclasses
import enum
import json
import re
from datetime import date, datetime
from typing import Any, Optional

from .core.errors import SerializationError

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ValueKind(enum.Enum):
    INTEGER = "integer"
    BOOLEAN = "boolean"
    FLOAT = "float"
    DATETIME = "datetime"
    ARRAY = "array"
    OBJECT = "object"
    NULL = "null"
    ORIGINAL = "original"


def _is_datetime_string(value: str) -> bool:
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def _is_object(value: Any) -> bool:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return True
    return callable(getattr(value, "to_dict", None)) or callable(getattr(value, "to_json", None))


def _object_to_data(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return json.loads(value.to_json())


def _json_default(value: Any) -> Any:
    # Nested leaves json cannot write natively.
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if _is_object(value):
        return _object_to_data(value)
    return str(value)


def detect(value: Any) -> ValueKind:
    """Classify value into a single ValueKind."""
    if isinstance(value, int) and not isinstance(value, bool):
        return ValueKind.INTEGER
    if isinstance(value, str) and _INTEGER_RE.match(value):
        return ValueKind.INTEGER
    if isinstance(value, bool) or value in ("true", "false"):
        return ValueKind.BOOLEAN
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, (datetime, date)):
        return ValueKind.DATETIME
    if isinstance(value, str) and _is_datetime_string(value):
        return ValueKind.DATETIME
    if isinstance(value, (list, tuple, dict)):
        return ValueKind.ARRAY
    if _is_object(value):
        return ValueKind.OBJECT
    if value is None:
        return ValueKind.NULL
    return ValueKind.ORIGINAL


def encode(value: Any, kind: Optional[ValueKind] = None) -> str:
    """Render value as text for its kind (detected when not given)."""
    kind = kind or detect(value)
    if kind is ValueKind.INTEGER:
        return str(int(value))
    if kind is ValueKind.BOOLEAN:
        if isinstance(value, str):
            return value
        return "true" if value else "false"
    if kind is ValueKind.FLOAT:
        return repr(float(value))
    if kind is ValueKind.DATETIME:
        return value.isoformat() if isinstance(value, (datetime, date)) else str(value)
    if kind is ValueKind.ARRAY:
        data = list(value) if isinstance(value, tuple) else value
        return json.dumps(data, default=_json_default)
    if kind is ValueKind.OBJECT:
        return json.dumps(_object_to_data(value), default=_json_default)
    if kind is ValueKind.NULL:
        return ""
    return str(value)


def decode(kind: ValueKind | str, text: str) -> Any:
    """Restore a value from its kind and encoded text."""
    try:
        kind = ValueKind(kind)
        if kind in (ValueKind.ARRAY, ValueKind.OBJECT):
            return json.loads(text)
        if kind is ValueKind.BOOLEAN:
            return text.strip().lower() == "true"
        if kind is ValueKind.INTEGER:
            return int(text)
        if kind is ValueKind.FLOAT:
            return float(text)
        if kind is ValueKind.NULL:
            return None
        if kind is ValueKind.DATETIME:
            if _DATE_ONLY_RE.match(text):
                return date.fromisoformat(text)
            return datetime.fromisoformat(text)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot decode {kind!r} payload: {exc}") from exc
    return text


__all__ = ["ValueKind", "decode", "detect", "encode"]

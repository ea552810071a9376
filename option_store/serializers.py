"""
Reversible payload codecs shared by FileStore and TableStore.

A serializer works in two steps: pack() turns one option value into something
its document format can hold, dumps()/loads() convert a packed value (or a whole
mapping of packed records) to and from bytes.

- PickleSerializer: binary, preserves any picklable Python value exactly. Only
  read payloads written by trusted code.
- JsonSerializer: ASCII text for string-only media; each value is packed as
  {"kind": ..., "value": ...} via option_store.converter. A str whose detected
  kind would not decode back to the same str is packed as kind "original".

Every native payload starts with the serializer's marker bytes; TableStore relies
on that to tell a raw payload from a base64-wrapped one.
"""

from __future__ import annotations

import json
import pickle
from abc import ABC, abstractmethod
from typing import Any, Dict, Type

from . import converter
from .core.errors import ConfigurationError, SerializationError


class Serializer(ABC):
    name: str = ""
    marker: bytes = b""

    def pack(self, value: Any) -> Any:
        return value

    def unpack(self, packed: Any) -> Any:
        return packed

    @abstractmethod
    def dumps(self, obj: Any) -> bytes: ...

    @abstractmethod
    def loads(self, payload: bytes) -> Any: ...

    def is_native(self, payload: bytes) -> bool:
        """True when payload carries this serializer's leading marker."""
        return payload.startswith(self.marker)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PickleSerializer(Serializer):
    name = "pickle"
    # Protocol 2+ always opens with the PROTO opcode.
    marker = b"\x80"

    def dumps(self, obj: Any) -> bytes:
        try:
            return pickle.dumps(obj, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, AttributeError, TypeError) as exc:
            raise SerializationError(f"Value cannot be pickled: {exc}") from exc

    def loads(self, payload: bytes) -> Any:
        try:
            return pickle.loads(payload)
        except Exception as exc:  # noqa: BLE001 - unpickling raises arbitrary types
            raise SerializationError(f"Invalid pickle payload: {exc}") from exc


class JsonSerializer(Serializer):
    name = "json"
    marker = b"{"

    def pack(self, value: Any) -> Dict[str, str]:
        kind = converter.detect(value)
        try:
            text = converter.encode(value, kind)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Cannot encode {kind.value} value: {exc}") from exc
        if isinstance(value, str) and kind is not converter.ValueKind.ORIGINAL:
            # "02134", "true", "2024-01-01" must come back as the same str.
            if not self._restores(value, kind, text):
                kind, text = converter.ValueKind.ORIGINAL, value
        return {"kind": kind.value, "value": text}

    @staticmethod
    def _restores(value: Any, kind: converter.ValueKind, text: str) -> bool:
        try:
            decoded = converter.decode(kind, text)
        except SerializationError:
            return False
        return type(decoded) is type(value) and decoded == value

    def unpack(self, packed: Any) -> Any:
        if not isinstance(packed, dict) or "kind" not in packed or "value" not in packed:
            raise SerializationError(f"Not a packed option value: {packed!r}")
        return converter.decode(packed["kind"], packed["value"])

    def dumps(self, obj: Any) -> bytes:
        try:
            return json.dumps(obj, ensure_ascii=True, sort_keys=True).encode("ascii")
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Value is not JSON serializable: {exc}") from exc

    def loads(self, payload: bytes) -> Any:
        try:
            return json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise SerializationError(f"Invalid JSON payload: {exc}") from exc


_SERIALIZERS: Dict[str, Type[Serializer]] = {
    PickleSerializer.name: PickleSerializer,
    JsonSerializer.name: JsonSerializer,
}


def get_serializer(name: str | None = None) -> Serializer:
    """Return a serializer by config name; pickle when name is empty."""
    cls = _SERIALIZERS.get(name or PickleSerializer.name)
    if cls is None:
        raise ConfigurationError(
            f"Unknown serializer '{name}'. Available: {list(_SERIALIZERS)}"
        )
    return cls()


__all__ = ["JsonSerializer", "PickleSerializer", "Serializer", "get_serializer"]

"""Schema-driven fixed-layout binary codec and canonical JSON helpers.

A `Layout` is an ordered list of fixed-width little-endian fields followed by
optional trailing arrays whose length is read from a header field. Offsets are
computed once from the schema, so every record kind shares one encode/decode
pair instead of hand-written slice arithmetic.
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from typing import Any, Final, Mapping, Sequence

from pydantic import BaseModel

_FORMATS: Final[dict[str, str]] = {
    "u8": "<B",
    "u32": "<I",
    "u64": "<Q",
    "i64": "<q",
}
_ADDRESS_WIDTH: Final[int] = 32


def _width(kind: str) -> int:
    if kind == "address":
        return _ADDRESS_WIDTH
    return struct.calcsize(_FORMATS[kind])


def _pack(kind: str, name: str, value: Any) -> bytes:
    if kind == "address":
        raw = bytes(value)
        if len(raw) != _ADDRESS_WIDTH:
            raise ValueError(f"Field {name!r} must be {_ADDRESS_WIDTH} bytes")
        return raw
    try:
        return struct.pack(_FORMATS[kind], value)
    except struct.error as e:
        raise ValueError(f"Field {name!r} out of range for {kind}: {value}") from e


def _unpack(kind: str, buf: bytes | bytearray | memoryview, offset: int) -> Any:
    if kind == "address":
        return bytes(buf[offset : offset + _ADDRESS_WIDTH])
    return struct.unpack_from(_FORMATS[kind], buf, offset)[0]


@dataclass(frozen=True)
class Field:
    name: str
    kind: str

    @property
    def width(self) -> int:
        return _width(self.kind)


@dataclass(frozen=True)
class ArrayField:
    """Trailing array of `kind` items; its length is the value of `count_field`."""

    name: str
    kind: str
    count_field: str

    @property
    def item_width(self) -> int:
        return _width(self.kind)


class Layout:
    """Positional record layout: header fields then trailing arrays."""

    def __init__(self, fields: Sequence[Field], arrays: Sequence[ArrayField] = ()):
        self.fields = tuple(fields)
        self.arrays = tuple(arrays)
        self._offsets: dict[str, int] = {}
        self._kinds: dict[str, str] = {}
        offset = 0
        for f in self.fields:
            self._offsets[f.name] = offset
            self._kinds[f.name] = f.kind
            offset += f.width
        self.header_size = offset
        for a in self.arrays:
            if a.count_field not in self._offsets:
                raise ValueError(f"Unknown count field {a.count_field!r}")

    def offset(self, name: str) -> int:
        return self._offsets[name]

    def per_item_size(self) -> int:
        """Bytes added per unit of the array count (all arrays share one count)."""
        return sum(a.item_width for a in self.arrays)

    def size(self, count: int = 0) -> int:
        return self.header_size + self.per_item_size() * count

    def array_offset(self, name: str, count: int) -> int:
        offset = self.header_size
        for a in self.arrays:
            if a.name == name:
                return offset
            offset += a.item_width * count
        raise KeyError(name)

    def read(self, buf: bytes | bytearray | memoryview, name: str) -> Any:
        return _unpack(self._kinds[name], buf, self._offsets[name])

    def write(self, buf: bytearray, name: str, value: Any) -> None:
        offset = self._offsets[name]
        packed = _pack(self._kinds[name], name, value)
        buf[offset : offset + len(packed)] = packed

    def count_of(self, buf: bytes | bytearray | memoryview) -> int:
        if not self.arrays:
            return 0
        return int(self.read(buf, self.arrays[0].count_field))

    def decode(self, buf: bytes | bytearray | memoryview) -> dict[str, Any]:
        """Decode `buf` into a field dict. Caller validates the length first."""
        values: dict[str, Any] = {f.name: self.read(buf, f.name) for f in self.fields}
        for a in self.arrays:
            count = int(values[a.count_field])
            base = self.array_offset(a.name, count)
            values[a.name] = [
                _unpack(a.kind, buf, base + i * a.item_width) for i in range(count)
            ]
        return values

    def encode(self, values: Mapping[str, Any]) -> bytes:
        count = int(values[self.arrays[0].count_field]) if self.arrays else 0
        out = bytearray()
        for f in self.fields:
            out += _pack(f.kind, f.name, values[f.name])
        for a in self.arrays:
            items = list(values[a.name])
            if len(items) != count:
                raise ValueError(
                    f"Array {a.name!r} has {len(items)} items, expected {count}"
                )
            for item in items:
                out += _pack(a.kind, a.name, item)
        return bytes(out)


def json_to_bytes(data: dict) -> bytes:
    """Serialize dict to canonical JSON bytes for signing/verification."""
    return json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8")


def payload_to_bytes(payload: BaseModel) -> bytes:
    """Canonical bytes for signing/verifying Pydantic payloads."""
    return json_to_bytes(payload.model_dump(mode="json"))

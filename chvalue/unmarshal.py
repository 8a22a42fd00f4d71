"""Decoding of little-endian fixed-width scalars from raw column bytes."""

from __future__ import annotations

import struct

_INTEGERS: dict[str, tuple[int, bool]] = {
    "u8": (1, False),
    "u16": (2, False),
    "u32": (4, False),
    "u64": (8, False),
    "u128": (16, False),
    "i8": (1, True),
    "i16": (2, True),
    "i32": (4, True),
    "i64": (8, True),
    "i128": (16, True),
}

_FLOATS: dict[str, struct.Struct] = {
    "f32": struct.Struct("<f"),
    "f64": struct.Struct("<d"),
}


def unmarshal(kind: str, scratch: bytes) -> int | float | bool:
    """Decode ``scratch`` as a little-endian value of the named scalar kind.

    ``kind`` is one of ``u8`` .. ``u128``, ``i8`` .. ``i128``, ``f32``,
    ``f64`` or ``bool``. The buffer must be exactly as wide as the kind;
    for ``bool`` only the first byte is looked at.
    """
    data = bytes(scratch)
    if kind == "bool":
        if not data:
            raise ValueError("empty buffer for bool")
        return data[0] != 0
    if kind in _INTEGERS:
        size, signed = _INTEGERS[kind]
        _check_width(kind, size, data)
        return int.from_bytes(data, "little", signed=signed)
    if kind in _FLOATS:
        layout = _FLOATS[kind]
        _check_width(kind, layout.size, data)
        return layout.unpack(data)[0]
    raise ValueError(f"unknown scalar kind: {kind!r}")


def _check_width(kind: str, size: int, data: bytes) -> None:
    if len(data) != size:
        raise ValueError(f"{kind} needs {size} bytes, got {len(data)}")
"""Lightweight view of a single column value as read from a block."""

from __future__ import annotations

import datetime as _dt
import email.utils
import uuid
from dataclasses import dataclass
from typing import Any

from chvalue.sqltype import (
    ConversionError,
    Decimal,
    SqlType,
    TypeKind,
    decode_ipv4,
    decode_ipv6,
    uuid_from_wire,
)
from chvalue.value import DEFAULT_TZ, Kind, _format_float, _to_f32, _zone

_EPOCH_DATE = _dt.date(1970, 1, 1)
_EPOCH = _dt.datetime(1970, 1, 1, tzinfo=_dt.timezone.utc)


def _unsigned(bits: int) -> tuple[int, int]:
    return 0, 2**bits - 1


def _signed(bits: int) -> tuple[int, int]:
    return -(2 ** (bits - 1)), 2 ** (bits - 1) - 1


_INT_RANGES: dict[Kind, tuple[int, int]] = {
    Kind.UINT8: _unsigned(8),
    Kind.UINT16: _unsigned(16),
    Kind.UINT32: _unsigned(32),
    Kind.UINT64: _unsigned(64),
    Kind.UINT128: _unsigned(128),
    Kind.INT8: _signed(8),
    Kind.INT16: _signed(16),
    Kind.INT32: _signed(32),
    Kind.INT64: _signed(64),
    Kind.INT128: _signed(128),
}

_ENUM_RANGES: dict[Kind, tuple[int, int]] = {
    Kind.ENUM8: _signed(8),
    Kind.ENUM16: _signed(16),
}

_BYTE_WIDTHS: dict[Kind, int] = {Kind.IPV4: 4, Kind.IPV6: 16, Kind.UUID: 16}

_SCALAR_TYPES: dict[Kind, TypeKind] = {
    Kind.BOOL: TypeKind.BOOL,
    Kind.UINT8: TypeKind.UINT8,
    Kind.UINT16: TypeKind.UINT16,
    Kind.UINT32: TypeKind.UINT32,
    Kind.UINT64: TypeKind.UINT64,
    Kind.UINT128: TypeKind.UINT128,
    Kind.INT8: TypeKind.INT8,
    Kind.INT16: TypeKind.INT16,
    Kind.INT32: TypeKind.INT32,
    Kind.INT64: TypeKind.INT64,
    Kind.INT128: TypeKind.INT128,
    Kind.STRING: TypeKind.STRING,
    Kind.FLOAT32: TypeKind.FLOAT32,
    Kind.FLOAT64: TypeKind.FLOAT64,
    Kind.DATE: TypeKind.DATE,
    Kind.DATETIME: TypeKind.DATETIME,
    Kind.IPV4: TypeKind.IPV4,
    Kind.IPV6: TypeKind.IPV6,
    Kind.UUID: TypeKind.UUID,
}

# Kinds that take part in equality; booleans, addresses and UUIDs never
# compare equal to anything.
_NOT_COMPARABLE = frozenset({Kind.BOOL, Kind.IPV4, Kind.IPV6, Kind.UUID})

_HASHABLE = frozenset(_INT_RANGES) | {Kind.STRING}

_INT_CHOICES = (Kind.INT64, Kind.UINT64, Kind.INT128, Kind.UINT128)


def _check_int(kind: Kind, value: Any, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{kind.value} needs an int, got {type(value).__name__}")
    if not low <= value <= high:
        raise OverflowError(f"{value} is out of range for {kind.value}")


@dataclass(frozen=True, eq=False)
class ValueRef:
    """A column value as seen in a block, without owning conversions.

    The payload in ``data`` follows the same layout as for ``Value``:
    strings are bytes, dates are days since the epoch, ``DATETIME`` is whole
    seconds, ``DATETIME64`` is ticks of ``10**-precision`` seconds, addresses
    and UUIDs are wire bytes, arrays are tuples and maps are dicts of
    ``ValueRef``. A nullable holds the inner reference or ``None``.
    """

    kind: Kind
    data: Any = None
    tz: str | None = None
    precision: int | None = None
    item_type: SqlType | None = None
    value_type: SqlType | None = None
    enum_values: tuple[tuple[str, int], ...] = ()

    def __post_init__(self) -> None:
        kind, data = self.kind, self.data
        if kind in _INT_RANGES:
            _check_int(kind, data, *_INT_RANGES[kind])
        elif kind is Kind.BOOL:
            if not isinstance(data, bool):
                raise TypeError("Bool needs a bool")
        elif kind is Kind.FLOAT32:
            self._set("data", _to_f32(float(data)))
        elif kind is Kind.FLOAT64:
            self._set("data", float(data))
        elif kind is Kind.STRING:
            self._set("data", bytes(data))
        elif kind in _BYTE_WIDTHS:
            raw = bytes(data)
            width = _BYTE_WIDTHS[kind]
            if len(raw) != width:
                raise ValueError(f"{kind.value} needs {width} bytes, got {len(raw)}")
            self._set("data", raw)
        elif kind is Kind.DATE:
            _check_int(kind, data, *_unsigned(16))
        elif kind is Kind.DATETIME:
            _check_int(kind, data, *_unsigned(32))
            if self.tz is None:
                self._set("tz", DEFAULT_TZ)
        elif kind is Kind.DATETIME64:
            _check_int(kind, data, *_signed(64))
            if self.precision is None or not 0 <= self.precision <= 9:
                raise ValueError(f"DateTime64 precision must be in 0..9, got {self.precision}")
            if self.tz is None:
                self._set("tz", DEFAULT_TZ)
        elif kind is Kind.NULLABLE:
            if data is None and self.item_type is None:
                raise ValueError("a NULL needs the type it stands for")
            if data is not None and not isinstance(data, ValueRef):
                raise TypeError("Nullable wraps a ValueRef")
        elif kind is Kind.ARRAY:
            items = tuple(data or ())
            if self.item_type is None:
                raise ValueError("Array needs an element type")
            if not all(isinstance(item, ValueRef) for item in items):
                raise TypeError("Array items must be ValueRefs")
            self._set("data", items)
        elif kind is Kind.DECIMAL:
            if not isinstance(data, Decimal):
                raise TypeError("Decimal needs a Decimal")
        elif kind in _ENUM_RANGES:
            _check_int(kind, data, *_ENUM_RANGES[kind])
            self._set("enum_values", tuple(tuple(pair) for pair in self.enum_values))
        elif kind is Kind.MAP:
            if self.item_type is None or self.value_type is None:
                raise ValueError("Map needs key and value types")
            entries = dict(data or {})
            if not all(
                isinstance(k, ValueRef) and isinstance(v, ValueRef) for k, v in entries.items()
            ):
                raise TypeError("Map entries must be ValueRefs")
            self._set("data", entries)
        else:
            raise ValueError(f"{kind.value} has no ValueRef form")

    def _set(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)

    @classmethod
    def of(cls, obj: Any) -> ValueRef:
        """Build a reference from a bool, number, string or bytes."""
        if isinstance(obj, ValueRef):
            return obj
        if isinstance(obj, bool):
            return cls(Kind.BOOL, obj)
        if isinstance(obj, int):
            for kind in _INT_CHOICES:
                low, high = _INT_RANGES[kind]
                if low <= obj <= high:
                    return cls(kind, obj)
            raise OverflowError(f"{obj} does not fit any integer type")
        if isinstance(obj, float):
            return cls(Kind.FLOAT64, obj)
        if isinstance(obj, str):
            return cls(Kind.STRING, obj.encode("utf-8"))
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls(Kind.STRING, bytes(obj))
        raise TypeError(f"cannot build a ValueRef from {type(obj).__name__}")

    def sql_type(self) -> SqlType:
        """The column type this value belongs to."""
        kind = self.kind
        if kind in _SCALAR_TYPES:
            return SqlType.scalar(_SCALAR_TYPES[kind])
        if kind is Kind.NULLABLE:
            inner = self.item_type if self.data is None else self.data.sql_type()
            return SqlType.nullable(inner)
        if kind is Kind.ARRAY:
            return SqlType.array(self.item_type)
        if kind is Kind.DECIMAL:
            return SqlType(TypeKind.DECIMAL, precision=self.data.precision, scale=self.data.scale)
        if kind is Kind.ENUM8:
            return SqlType(TypeKind.ENUM8, enum_values=self.enum_values)
        if kind is Kind.ENUM16:
            return SqlType(TypeKind.ENUM16, enum_values=self.enum_values)
        if kind is Kind.DATETIME64:
            return SqlType.datetime64(self.precision, self.tz)
        return SqlType.map(self.item_type, self.value_type)

    def as_str(self) -> str:
        """The text of a string value; raises if it is not valid UTF-8."""
        if self.kind is not Kind.STRING:
            raise ConversionError(self.sql_type(), "str")
        return self.data.decode("utf-8")

    def as_string(self) -> str:
        return str(self.as_str())

    def as_bytes(self) -> bytes:
        if self.kind is not Kind.STRING:
            raise ConversionError(self.sql_type(), "bytes")
        return self.data

    def _moment(self) -> _dt.datetime:
        if self.kind is Kind.DATETIME:
            return (_EPOCH + _dt.timedelta(seconds=self.data)).astimezone(_zone(self.tz))
        seconds, ticks = divmod(self.data, 10**self.precision)
        micros = ticks * 1_000_000 // 10**self.precision
        moment = _EPOCH + _dt.timedelta(seconds=seconds, microseconds=micros)
        return moment.astimezone(_zone(self.tz))

    def _nanos(self) -> int:
        return self.data * 10 ** (9 - self.precision)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValueRef):
            return NotImplemented
        if self.kind is not other.kind or self.kind in _NOT_COMPARABLE:
            return False
        kind = self.kind
        if kind is Kind.DATETIME64:
            return self._nanos() == other._nanos()
        if kind is Kind.NULLABLE:
            if self.data is None or other.data is None:
                return (
                    self.data is None
                    and other.data is None
                    and self.item_type == other.item_type
                )
            return self.data == other.data
        if kind is Kind.ARRAY:
            return self.item_type == other.item_type and self.data == other.data
        if kind in _ENUM_RANGES:
            return self.data == other.data and self.enum_values == other.enum_values
        if kind is Kind.MAP:
            return (
                len(self.data) == len(other.data)
                and self.item_type == other.item_type
                and self.value_type == other.value_type
                and self.data == other.data
            )
        return self.data == other.data

    def __hash__(self) -> int:
        if self.kind in _HASHABLE:
            return hash(self.data)
        raise TypeError(f"unhashable ValueRef kind: {self.kind.value}")

    def format(self, alternate: bool = False) -> str:
        """Render the value; ``alternate`` picks the long form for times."""
        kind, data = self.kind, self.data
        if kind is Kind.BOOL:
            return "true" if data else "false"
        if kind in _INT_RANGES:
            return str(data)
        if kind is Kind.STRING:
            try:
                return data.decode("utf-8")
            except UnicodeDecodeError:
                return "[" + ", ".join(str(b) for b in data) + "]"
        if kind in (Kind.FLOAT32, Kind.FLOAT64):
            return _format_float(data, kind is Kind.FLOAT32)
        if kind is Kind.DATE:
            return (_EPOCH_DATE + _dt.timedelta(days=data)).isoformat()
        if kind is Kind.DATETIME:
            moment = self._moment()
            if alternate:
                return email.utils.format_datetime(moment)
            return f"{moment:%Y-%m-%d %H:%M:%S}"
        if kind is Kind.DATETIME64:
            return f"{self._moment():%Y-%m-%d %H:%M:%S}"
        if kind is Kind.NULLABLE:
            return "NULL" if data is None else data.format()
        if kind is Kind.ARRAY:
            return "[" + ", ".join(item.format() for item in data) + "]"
        if kind is Kind.DECIMAL:
            return str(data)
        if kind is Kind.IPV4:
            return str(decode_ipv4(data))
        if kind is Kind.IPV6:
            return str(decode_ipv6(data))
        if kind is Kind.UUID:
            return str(uuid_from_wire(data))
        if kind in _ENUM_RANGES:
            return str(data)
        cells = ", ".join(f"{k.format()}-{v.format()}" for k, v in data.items())
        return f"[{cells}]"

    def __str__(self) -> str:
        return self.format()

    def __format__(self, spec: str) -> str:
        if spec == "#":
            return self.format(alternate=True)
        return format(self.format(), spec)


def _wire_uuid(value: uuid.UUID) -> bytes:
    raw = value.bytes
    return raw[:8][::-1] + raw[8:][::-1]
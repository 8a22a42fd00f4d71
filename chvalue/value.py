"""Owned client-side representation of a single column value."""

from __future__ import annotations

import datetime as _dt
import decimal as _decimal
import email.utils
import enum
import ipaddress
import math
import struct
import uuid
from dataclasses import dataclass
from typing import Any
from zoneinfo import ZoneInfo

from chvalue.sqltype import (
    ConversionError,
    Decimal,
    SqlType,
    TypeKind,
    decode_ipv4,
    decode_ipv6,
    uuid_from_wire,
    uuid_to_wire,
)

DEFAULT_TZ = "UTC"

_EPOCH_DATE = _dt.date(1970, 1, 1)
_EPOCH = _dt.datetime(1970, 1, 1, tzinfo=_dt.timezone.utc)
_FLOAT32 = struct.Struct("<f")


class Kind(enum.Enum):
    """The variants a value can take."""

    BOOL = "Bool"
    UINT8 = "UInt8"
    UINT16 = "UInt16"
    UINT32 = "UInt32"
    UINT64 = "UInt64"
    UINT128 = "UInt128"
    INT8 = "Int8"
    INT16 = "Int16"
    INT32 = "Int32"
    INT64 = "Int64"
    INT128 = "Int128"
    STRING = "String"
    FLOAT32 = "Float32"
    FLOAT64 = "Float64"
    DATE = "Date"
    DATETIME = "DateTime"
    DATETIME64 = "DateTime64"
    CHRONO_DATETIME = "ChronoDateTime"
    IPV4 = "Ipv4"
    IPV6 = "Ipv6"
    UUID = "Uuid"
    NULLABLE = "Nullable"
    ARRAY = "Array"
    DECIMAL = "Decimal"
    ENUM8 = "Enum8"
    ENUM16 = "Enum16"
    MAP = "Map"


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
    Kind.CHRONO_DATETIME: TypeKind.DATETIME,
    Kind.IPV4: TypeKind.IPV4,
    Kind.IPV6: TypeKind.IPV6,
    Kind.UUID: TypeKind.UUID,
}

_ZEROS: dict[TypeKind, tuple[Kind, Any]] = {
    TypeKind.BOOL: (Kind.BOOL, False),
    TypeKind.UINT8: (Kind.UINT8, 0),
    TypeKind.UINT16: (Kind.UINT16, 0),
    TypeKind.UINT32: (Kind.UINT32, 0),
    TypeKind.UINT64: (Kind.UINT64, 0),
    TypeKind.UINT128: (Kind.UINT128, 0),
    TypeKind.INT8: (Kind.INT8, 0),
    TypeKind.INT16: (Kind.INT16, 0),
    TypeKind.INT32: (Kind.INT32, 0),
    TypeKind.INT64: (Kind.INT64, 0),
    TypeKind.INT128: (Kind.INT128, 0),
    TypeKind.STRING: (Kind.STRING, b""),
    TypeKind.FLOAT32: (Kind.FLOAT32, 0.0),
    TypeKind.FLOAT64: (Kind.FLOAT64, 0.0),
    TypeKind.DATE: (Kind.DATE, 0),
    TypeKind.IPV4: (Kind.IPV4, bytes(4)),
    TypeKind.IPV6: (Kind.IPV6, bytes(16)),
    TypeKind.UUID: (Kind.UUID, bytes(16)),
}

_HASHABLE = frozenset(_INT_RANGES) | {Kind.STRING, Kind.DATE, Kind.DATETIME}

# Order in which a plain Python int is fitted into an integer kind.
_INT_CHOICES = (Kind.INT64, Kind.UINT64, Kind.INT128, Kind.UINT128)


def _zone(name: str) -> _dt.tzinfo:
    if name == "UTC":
        return _dt.timezone.utc
    return ZoneInfo(name)


def _check_range(kind: Kind, value: int, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{kind.value} needs an int, got {type(value).__name__}")
    if not low <= value <= high:
        raise OverflowError(f"{value} is out of range for {kind.value}")


def _to_f32(value: float) -> float:
    return _FLOAT32.unpack(_FLOAT32.pack(value))[0]


def _shortest_f32(value: float) -> str:
    for digits in range(1, 10):
        text = f"{value:.{digits}g}"
        if _to_f32(float(text)) == value:
            return text
    return repr(value)


def _format_float(value: float, single: bool) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = _shortest_f32(value) if single else repr(value)
    return format(_decimal.Decimal(text).normalize(), "f")


def _rfc2822(moment: _dt.datetime) -> str:
    return email.utils.format_datetime(moment)


@dataclass(frozen=True, eq=False)
class Value:
    """A single column value together with what is needed to know its type.

    ``data`` holds the payload: ints, floats and bools as such; strings as
    bytes; dates as days since the epoch; ``DATETIME`` as whole seconds and
    ``DATETIME64`` as ticks of ``10**-precision`` seconds; addresses and
    UUIDs as their wire bytes; arrays as a tuple of values; maps as a dict;
    a nullable as the inner value or ``None``. ``item_type`` is the element
    type of arrays, the key type of maps and the type of a null.
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
            _check_range(kind, data, *_INT_RANGES[kind])
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
            if len(raw) != _BYTE_WIDTHS[kind]:
                raise ValueError(f"{kind.value} needs {_BYTE_WIDTHS[kind]} bytes, got {len(raw)}")
            self._set("data", raw)
        elif kind is Kind.DATE:
            _check_range(kind, data, *_unsigned(16))
        elif kind is Kind.DATETIME:
            _check_range(kind, data, *_unsigned(32))
            if self.tz is None:
                self._set("tz", DEFAULT_TZ)
        elif kind is Kind.DATETIME64:
            _check_range(kind, data, *_signed(64))
            if self.precision is None or not 0 <= self.precision <= 9:
                raise ValueError(f"DateTime64 precision must be in 0..9, got {self.precision}")
            if self.tz is None:
                self._set("tz", DEFAULT_TZ)
        elif kind is Kind.CHRONO_DATETIME:
            if not isinstance(data, _dt.datetime) or data.utcoffset() is None:
                raise TypeError("ChronoDateTime needs a timezone-aware datetime")
        elif kind is Kind.NULLABLE:
            if data is None and self.item_type is None:
                raise ValueError("a NULL needs the type it stands for")
            if data is not None and not isinstance(data, Value):
                raise TypeError("Nullable wraps a Value")
        elif kind is Kind.ARRAY:
            items = tuple(data or ())
            if self.item_type is None:
                raise ValueError("Array needs an element type")
            if not all(isinstance(item, Value) for item in items):
                raise TypeError("Array items must be Values")
            self._set("data", items)
        elif kind is Kind.DECIMAL:
            if not isinstance(data, Decimal):
                raise TypeError("Decimal needs a Decimal")
        elif kind in _ENUM_RANGES:
            _check_range(kind, data, *_ENUM_RANGES[kind])
            self._set("enum_values", tuple(tuple(pair) for pair in self.enum_values))
        elif kind is Kind.MAP:
            if self.item_type is None or self.value_type is None:
                raise ValueError("Map needs key and value types")
            entries = dict(data or {})
            if not all(isinstance(k, Value) and isinstance(v, Value) for k, v in entries.items()):
                raise TypeError("Map entries must be Values")
            self._set("data", entries)

    def _set(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)

    # ----------------------------------------------------------- construction

    @classmethod
    def of(cls, obj: Any) -> Value:
        """Build a value from a plain Python object, inferring its type."""
        if isinstance(obj, Value):
            return obj
        if obj is None:
            raise ValueError("the type of NULL cannot be inferred; use Value.nullable")
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
        if isinstance(obj, _dt.datetime):
            if obj.tzinfo is None or obj.utcoffset() is None:
                raise TypeError("a naive datetime has no time zone")
            if obj.tzinfo is _dt.timezone.utc:
                return cls(Kind.DATETIME, math.floor(obj.timestamp()), tz="UTC")
            return cls(Kind.CHRONO_DATETIME, obj)
        if isinstance(obj, _dt.date):
            return cls(Kind.DATE, (obj - _EPOCH_DATE).days)
        if isinstance(obj, Decimal):
            return cls(Kind.DECIMAL, obj)
        if isinstance(obj, uuid.UUID):
            return cls.from_uuid(obj)
        if isinstance(obj, ipaddress.IPv4Address):
            return cls(Kind.IPV4, obj.packed[::-1])
        if isinstance(obj, ipaddress.IPv6Address):
            return cls(Kind.IPV6, obj.packed)
        if isinstance(obj, (list, tuple)):
            items = [cls.of(item) for item in obj]
            return cls(Kind.ARRAY, tuple(items), item_type=_common_type(items, "array"))
        if isinstance(obj, dict):
            entries = {cls.of(k): cls.of(v) for k, v in obj.items()}
            key_type = _common_type(list(entries), "map key")
            value_type = _common_type(list(entries.values()), "map value")
            return cls(Kind.MAP, entries, item_type=key_type, value_type=value_type)
        raise TypeError(f"cannot build a Value from {type(obj).__name__}")

    @classmethod
    def nullable(cls, inner: Any, sql_type: SqlType | None = None) -> Value:
        """A nullable value: ``inner`` wrapped, or NULL of ``sql_type``."""
        if inner is None:
            if sql_type is None:
                raise ValueError("a NULL needs the type it stands for")
            return cls(Kind.NULLABLE, None, item_type=sql_type)
        value = cls.of(inner)
        if sql_type is not None and value.sql_type() != sql_type:
            raise ValueError(f"{value.sql_type()} does not match {sql_type}")
        return cls(Kind.NULLABLE, value)

    @classmethod
    def array(cls, item_type: SqlType, items: Any) -> Value:
        """An array of ``items`` whose elements are of ``item_type``."""
        return cls(Kind.ARRAY, tuple(cls.of(item) for item in items), item_type=item_type)

    @classmethod
    def from_uuid(cls, uuid_value: uuid.UUID) -> Value:
        return cls(Kind.UUID, uuid_to_wire(uuid_value))

    @classmethod
    def default(cls, sql_type: SqlType) -> Value:
        """The zero value of a column type."""
        kind = sql_type.kind
        if kind in _ZEROS:
            value_kind, zero = _ZEROS[kind]
            return cls(value_kind, zero)
        if kind in (TypeKind.LOW_CARDINALITY, TypeKind.SIMPLE_AGGREGATE_FUNCTION):
            return cls.default(sql_type.inner)
        if kind is TypeKind.FIXED_STRING:
            return cls(Kind.STRING, bytes(sql_type.length or 0))
        if kind is TypeKind.DATETIME:
            return cls(Kind.CHRONO_DATETIME, _EPOCH.astimezone(_zone(DEFAULT_TZ)))
        if kind is TypeKind.DATETIME64:
            return cls(Kind.DATETIME64, 0, tz=DEFAULT_TZ, precision=1)
        if kind is TypeKind.NULLABLE:
            return cls(Kind.NULLABLE, None, item_type=sql_type.inner)
        if kind is TypeKind.ARRAY:
            return cls(Kind.ARRAY, (), item_type=sql_type.inner)
        if kind is TypeKind.DECIMAL:
            return cls(Kind.DECIMAL, Decimal(0, sql_type.precision, sql_type.scale))
        if kind is TypeKind.ENUM8:
            return cls(Kind.ENUM8, 0, enum_values=sql_type.enum_values)
        if kind is TypeKind.ENUM16:
            return cls(Kind.ENUM16, 0, enum_values=sql_type.enum_values)
        if kind is TypeKind.MAP:
            return cls(Kind.MAP, {}, item_type=sql_type.inner, value_type=sql_type.value_type)
        raise ValueError(f"no default for {sql_type}")

    # ------------------------------------------------------------------ type

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

    # ----------------------------------------------------------- conversions

    def _fail(self, dst: str) -> ConversionError:
        return ConversionError(f"Value::{self.sql_type()}", dst)

    def as_int(self) -> int:
        if self.kind not in _INT_RANGES:
            raise self._fail("int")
        return self.data

    def as_float(self) -> float:
        if self.kind not in (Kind.FLOAT32, Kind.FLOAT64):
            raise self._fail("float")
        return self.data

    def as_bool(self) -> bool:
        if self.kind is not Kind.BOOL:
            raise self._fail("bool")
        return self.data

    def as_str(self) -> str:
        if self.kind is Kind.STRING:
            try:
                return self.data.decode("utf-8")
            except UnicodeDecodeError:
                pass
        raise self._fail("str")

    def as_bytes(self) -> bytes:
        if self.kind is not Kind.STRING:
            raise self._fail("bytes")
        return self.data

    def as_date(self) -> _dt.date:
        if self.kind is not Kind.DATE:
            raise self._fail("date")
        return _EPOCH_DATE + _dt.timedelta(days=self.data)

    def as_datetime(self) -> _dt.datetime:
        """The moment this value names, in its own time zone."""
        if self.kind is Kind.DATETIME:
            return (_EPOCH + _dt.timedelta(seconds=self.data)).astimezone(_zone(self.tz))
        if self.kind is Kind.DATETIME64:
            seconds, ticks = divmod(self.data, 10**self.precision)
            micros = ticks * 1_000_000 // 10**self.precision
            moment = _EPOCH + _dt.timedelta(seconds=seconds, microseconds=micros)
            return moment.astimezone(_zone(self.tz))
        if self.kind is Kind.CHRONO_DATETIME:
            return self.data
        raise self._fail("datetime")

    def as_ipv4(self) -> ipaddress.IPv4Address:
        if self.kind is not Kind.IPV4:
            raise self._fail("IPv4Address")
        return decode_ipv4(self.data)

    # ------------------------------------------------------------ comparison

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        if self.kind is not other.kind:
            return False
        kind = self.kind
        if kind is Kind.MAP:
            return False
        if kind is Kind.DATETIME64:
            return self.precision == other.precision and self.data == other.data
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
            return self.enum_values == other.enum_values and self.data == other.data
        return self.data == other.data

    def __hash__(self) -> int:
        if self.kind in _HASHABLE:
            return hash(self.data)
        if self.kind is Kind.DATETIME64:
            return hash((self.data, self.precision))
        raise TypeError(f"unhashable Value kind: {self.kind.value}")

    # ------------------------------------------------------------ formatting

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
        if kind is Kind.DATETIME:
            moment = self.as_datetime()
            if alternate:
                return f"{moment:%Y-%m-%d %H:%M:%S} {moment.tzname()}"
            return _rfc2822(moment)
        if kind in (Kind.DATETIME64, Kind.CHRONO_DATETIME):
            return _rfc2822(self.as_datetime())
        if kind is Kind.DATE:
            return self.as_date().isoformat()
        if kind is Kind.NULLABLE:
            return "NULL" if data is None else data.format(alternate)
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
            return f"{kind.value}, {data}"
        cells = ", ".join(f"key=>{k.format()} value=>{v.format()}" for k, v in data.items())
        return f"[{cells}]"

    def __str__(self) -> str:
        return self.format()

    def __format__(self, spec: str) -> str:
        if spec == "#":
            return self.format(alternate=True)
        return format(self.format(), spec)


def _common_type(values: list[Value], what: str) -> SqlType:
    if not values:
        raise ValueError(f"the {what} type of an empty collection cannot be inferred")
    first = values[0].sql_type()
    for value in values[1:]:
        if value.sql_type() != first:
            raise ValueError(f"mixed {what} types: {first} and {value.sql_type()}")
    return first
"""Column type descriptions, decimals and wire helpers for addresses and UUIDs."""

from __future__ import annotations

import decimal as _decimal
import enum
import ipaddress
import uuid
from dataclasses import dataclass


class TypeKind(enum.Enum):
    """The kinds of column type a server can report."""

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
    FIXED_STRING = "FixedString"
    FLOAT32 = "Float32"
    FLOAT64 = "Float64"
    DATE = "Date"
    DATETIME = "DateTime"
    DATETIME64 = "DateTime64"
    IPV4 = "IPv4"
    IPV6 = "IPv6"
    UUID = "UUID"
    NULLABLE = "Nullable"
    ARRAY = "Array"
    DECIMAL = "Decimal"
    ENUM8 = "Enum8"
    ENUM16 = "Enum16"
    MAP = "Map"
    LOW_CARDINALITY = "LowCardinality"
    SIMPLE_AGGREGATE_FUNCTION = "SimpleAggregateFunction"


_SCALAR_KINDS = frozenset(
    {
        TypeKind.BOOL,
        TypeKind.UINT8,
        TypeKind.UINT16,
        TypeKind.UINT32,
        TypeKind.UINT64,
        TypeKind.UINT128,
        TypeKind.INT8,
        TypeKind.INT16,
        TypeKind.INT32,
        TypeKind.INT64,
        TypeKind.INT128,
        TypeKind.STRING,
        TypeKind.FLOAT32,
        TypeKind.FLOAT64,
        TypeKind.DATE,
        TypeKind.DATETIME,
        TypeKind.IPV4,
        TypeKind.IPV6,
        TypeKind.UUID,
    }
)

_WRAPPER_KINDS = frozenset({TypeKind.NULLABLE, TypeKind.ARRAY, TypeKind.LOW_CARDINALITY})


@dataclass(frozen=True)
class SqlType:
    """A column type, possibly parameterised or wrapping other types."""

    kind: TypeKind
    inner: SqlType | None = None
    value_type: SqlType | None = None
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    tz: str | None = None
    enum_values: tuple[tuple[str, int], ...] = ()
    function: str | None = None

    @classmethod
    def scalar(cls, kind: TypeKind) -> SqlType:
        """A type that takes no parameters."""
        if kind not in _SCALAR_KINDS:
            raise ValueError(f"{kind.value} is not a parameterless type")
        return cls(kind)

    @classmethod
    def nullable(cls, inner: SqlType) -> SqlType:
        return cls(TypeKind.NULLABLE, inner=inner)

    @classmethod
    def array(cls, inner: SqlType) -> SqlType:
        return cls(TypeKind.ARRAY, inner=inner)

    @classmethod
    def map(cls, key: SqlType, value: SqlType) -> SqlType:
        return cls(TypeKind.MAP, inner=key, value_type=value)

    @classmethod
    def fixed_string(cls, length: int) -> SqlType:
        if length < 0:
            raise ValueError("fixed string length must not be negative")
        return cls(TypeKind.FIXED_STRING, length=length)

    @classmethod
    def decimal(cls, precision: int, scale: int) -> SqlType:
        if precision <= 0 or scale < 0 or scale > precision:
            raise ValueError(f"invalid decimal precision/scale: {precision}, {scale}")
        return cls(TypeKind.DECIMAL, precision=precision, scale=scale)

    @classmethod
    def datetime64(cls, precision: int, tz: str) -> SqlType:
        if not 0 <= precision <= 9:
            raise ValueError(f"DateTime64 precision must be in 0..9, got {precision}")
        return cls(TypeKind.DATETIME64, precision=precision, tz=tz)

    def __str__(self) -> str:
        kind = self.kind
        if kind in _SCALAR_KINDS:
            return kind.value
        if kind in _WRAPPER_KINDS:
            return f"{kind.value}({self.inner})"
        if kind is TypeKind.FIXED_STRING:
            return f"FixedString({self.length})"
        if kind is TypeKind.DATETIME64:
            if self.tz:
                return f"DateTime64({self.precision}, '{self.tz}')"
            return f"DateTime64({self.precision})"
        if kind is TypeKind.DECIMAL:
            return f"Decimal({self.precision}, {self.scale})"
        if kind is TypeKind.MAP:
            return f"Map({self.inner}, {self.value_type})"
        if kind in (TypeKind.ENUM8, TypeKind.ENUM16):
            items = ", ".join(f"'{name}' = {code}" for name, code in self.enum_values)
            return f"{kind.value}({items})"
        return f"SimpleAggregateFunction({self.function}, {self.inner})"


@dataclass(frozen=True)
class Decimal:
    """A fixed-point number stored as a scaled integer."""

    underlying: int
    precision: int
    scale: int

    @classmethod
    def of(cls, source: int | float | _decimal.Decimal | str, scale: int) -> Decimal:
        """Build a decimal holding ``source`` with ``scale`` fractional digits."""
        if scale < 0:
            raise ValueError("scale must not be negative")
        if isinstance(source, int):
            underlying = source * 10**scale
        else:
            exact = _decimal.Decimal(str(source) if isinstance(source, float) else source)
            underlying = int(
                exact.scaleb(scale).to_integral_value(rounding=_decimal.ROUND_HALF_EVEN)
            )
        return cls(underlying=underlying, precision=18, scale=scale)

    def __float__(self) -> float:
        return float(_decimal.Decimal(self.underlying).scaleb(-self.scale))

    def __str__(self) -> str:
        sign = "-" if self.underlying < 0 else ""
        digits = str(abs(self.underlying))
        if self.scale == 0:
            return sign + digits
        digits = digits.rjust(self.scale + 1, "0")
        return f"{sign}{digits[:-self.scale]}.{digits[-self.scale:]}"


class ConversionError(TypeError):
    """Raised when a value cannot be turned into the requested type."""

    def __init__(self, src: object, dst: object) -> None:
        self.src = str(src)
        self.dst = str(dst)
        super().__init__(f"Can't convert {self.src} into {self.dst}.")


def _exact(octets: bytes, size: int, what: str) -> bytes:
    data = bytes(octets)
    if len(data) != size:
        raise ValueError(f"{what} needs {size} bytes, got {len(data)}")
    return data


def decode_ipv4(octets: bytes) -> ipaddress.IPv4Address:
    """Turn four wire bytes (least significant first) into an address."""
    return ipaddress.IPv4Address(_exact(octets, 4, "IPv4")[::-1])


def decode_ipv6(octets: bytes) -> ipaddress.IPv6Address:
    """Turn sixteen wire bytes (network order) into an address."""
    return ipaddress.IPv6Address(_exact(octets, 16, "IPv6"))


def _swap_halves(data: bytes) -> bytes:
    return data[:8][::-1] + data[8:][::-1]


def uuid_to_wire(uuid_value: uuid.UUID) -> bytes:
    """The wire layout of a UUID: each 8-byte half reversed."""
    return _swap_halves(uuid_value.bytes)


def uuid_from_wire(octets: bytes) -> uuid.UUID:
    """Rebuild a UUID from its wire layout."""
    return uuid.UUID(bytes=_swap_halves(_exact(octets, 16, "UUID")))
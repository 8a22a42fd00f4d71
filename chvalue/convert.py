"""Conversions between owned values and block references, and typed extraction."""

from __future__ import annotations

import datetime as _dt

from chvalue.sqltype import ConversionError
from chvalue.value import Kind, Value
from chvalue.value_ref import ValueRef

_INT_KINDS = frozenset(
    {
        Kind.UINT8,
        Kind.UINT16,
        Kind.UINT32,
        Kind.UINT64,
        Kind.UINT128,
        Kind.INT8,
        Kind.INT16,
        Kind.INT32,
        Kind.INT64,
        Kind.INT128,
    }
)

_FLOAT_KINDS = frozenset({Kind.FLOAT32, Kind.FLOAT64})
_TIME_KINDS = frozenset({Kind.DATETIME, Kind.DATETIME64})
_ENUM_KINDS = frozenset({Kind.ENUM8, Kind.ENUM16})


def ref_from_value(value: Value) -> ValueRef:
    """A reference view of an owned value.

    Values holding a Python datetime (``CHRONO_DATETIME``) have no reference
    form and raise ``ValueError``.
    """
    kind = value.kind
    if kind is Kind.CHRONO_DATETIME:
        raise ValueError("a ChronoDateTime value has no ValueRef form")
    if kind is Kind.NULLABLE:
        if value.data is None:
            return ValueRef(Kind.NULLABLE, None, item_type=value.item_type)
        return ValueRef(Kind.NULLABLE, ref_from_value(value.data))
    if kind is Kind.ARRAY:
        items = tuple(ref_from_value(item) for item in value.data)
        return ValueRef(Kind.ARRAY, items, item_type=value.item_type)
    if kind is Kind.MAP:
        entries = {ref_from_value(k): ref_from_value(v) for k, v in value.data.items()}
        return ValueRef(
            Kind.MAP, entries, item_type=value.item_type, value_type=value.value_type
        )
    return ValueRef(
        kind,
        value.data,
        tz=value.tz,
        precision=value.precision,
        enum_values=value.enum_values,
    )


def value_from_ref(value_ref: ValueRef) -> Value:
    """An owned copy of a reference."""
    kind = value_ref.kind
    if kind is Kind.NULLABLE:
        if value_ref.data is None:
            return Value(Kind.NULLABLE, None, item_type=value_ref.item_type)
        return Value(Kind.NULLABLE, value_from_ref(value_ref.data))
    if kind is Kind.ARRAY:
        items = tuple(value_from_ref(item) for item in value_ref.data)
        return Value(Kind.ARRAY, items, item_type=value_ref.item_type)
    if kind is Kind.MAP:
        entries = {value_from_ref(k): value_from_ref(v) for k, v in value_ref.data.items()}
        return Value(
            Kind.MAP, entries, item_type=value_ref.item_type, value_type=value_ref.value_type
        )
    return Value(
        kind,
        value_ref.data,
        tz=value_ref.tz,
        precision=value_ref.precision,
        enum_values=value_ref.enum_values,
    )


def _fail(value_ref: ValueRef, dst: str) -> ConversionError:
    return ConversionError(f"ValueRef::{value_ref.sql_type()}", dst)


def ref_as_int(value_ref: ValueRef) -> int:
    if value_ref.kind not in _INT_KINDS:
        raise _fail(value_ref, "int")
    return value_ref.data


def ref_as_float(value_ref: ValueRef) -> float:
    if value_ref.kind not in _FLOAT_KINDS:
        raise _fail(value_ref, "float")
    return value_ref.data


def ref_as_bool(value_ref: ValueRef) -> bool:
    if value_ref.kind is not Kind.BOOL:
        raise _fail(value_ref, "bool")
    return value_ref.data


def ref_as_date(value_ref: ValueRef) -> _dt.date:
    if value_ref.kind is not Kind.DATE:
        raise _fail(value_ref, "date")
    return _dt.date(1970, 1, 1) + _dt.timedelta(days=value_ref.data)


def ref_as_datetime(value_ref: ValueRef) -> _dt.datetime:
    """The moment a ``DATETIME`` or ``DATETIME64`` reference names."""
    if value_ref.kind not in _TIME_KINDS:
        raise _fail(value_ref, "datetime")
    return value_from_ref(value_ref).as_datetime()


def ref_as_enum(value_ref: ValueRef) -> int:
    """The numeric code of an ``ENUM8`` or ``ENUM16`` reference."""
    if value_ref.kind not in _ENUM_KINDS:
        raise _fail(value_ref, "enum")
    return value_ref.data
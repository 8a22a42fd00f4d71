# chvalue

Typed values for the cells of a columnar analytics database. A value knows
its column type and covers integers from 8 to 128 bits (signed and
unsigned), 32- and 64-bit floats, bools, strings (held as bytes), dates,
date-times with a time zone (whole seconds or sub-second `DateTime64`
ticks), decimals, IPv4/IPv6 addresses, UUIDs, `Enum8`/`Enum16`, nullables,
arrays and maps.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

The package has no runtime dependencies beyond the standard library.

## Modules

- `chvalue.sqltype`
  - `TypeKind`: the kinds of column type (`UInt8`, `String`, `Nullable`, ...).
  - `SqlType`: a frozen column type description with the constructors
    `scalar(kind)`, `nullable(inner)`, `array(inner)`, `map(key, value)`,
    `fixed_string(length)`, `decimal(precision, scale)` and
    `datetime64(precision, tz)`. `str()` gives the type's name, e.g.
    `Nullable(UInt8)` or `DateTime64(3, 'UTC')`.
  - `Decimal`: a fixed-point number kept as a scaled integer.
    `Decimal.of(source, scale)` accepts an int, float, `decimal.Decimal` or
    string and uses precision 18; `str()` prints exactly `scale` fractional
    digits (`Decimal.of(2.0, 2)` prints `2.00`) and `float()` converts back.
  - `ConversionError`: a `TypeError` raised when a value is asked for a type
    it does not hold; it carries `src` and `dst`.
  - `decode_ipv4(octets)`, `decode_ipv6(octets)`: wire bytes to
    `ipaddress` objects (IPv4 wire bytes are least significant first).
  - `uuid_to_wire(uuid_value)`, `uuid_from_wire(octets)`: the wire layout of
    a UUID, each 8-byte half reversed.
- `chvalue.unmarshal`
  - `unmarshal(kind, scratch)`: decodes little-endian bytes as `u8`..`u128`,
    `i8`..`i128`, `f32`, `f64` or `bool`. The buffer must be exactly the
    width of the kind (for `bool` only the first byte is read); otherwise
    `ValueError`.
- `chvalue.value`
  - `Kind`: the variants a value can take.
  - `Value`: an owned, immutable cell value. Build it directly
    (`Value(Kind.INT32, 7)`), from a Python object with `Value.of(obj)`, or
    with `Value.nullable(inner, sql_type)`, `Value.array(item_type, items)`,
    `Value.from_uuid(uuid_value)` and `Value.default(sql_type)` (the zero
    value of a column type). Payloads are range-checked on construction.
    `sql_type()` returns the column type; `as_int`, `as_float`, `as_bool`,
    `as_str`, `as_bytes`, `as_date`, `as_datetime` and `as_ipv4` extract
    Python objects; `format(alternate)` renders it (also `str()` and
    `format(v, "#")`).
- `chvalue.value_ref`
  - `ValueRef`: a lightweight cell value as read from a block, with
    `of(obj)` for bools, numbers, strings and bytes, `sql_type()`,
    `as_str()`, `as_string()`, `as_bytes()` and `format(alternate)`. Its
    rendering of date-times differs from `Value`: the plain form is
    `YYYY-MM-DD HH:MM:SS` and the alternate form is RFC 2822.
- `chvalue.convert`
  - `ref_from_value(value)` and `value_from_ref(value_ref)` move between the
    two forms (a `Value` holding a Python datetime has no `ValueRef` form and
    raises `ValueError`).
  - `ref_as_int`, `ref_as_float`, `ref_as_bool`, `ref_as_date`,
    `ref_as_datetime` and `ref_as_enum` extract Python objects from a
    `ValueRef`.

## Example

```python
from chvalue.sqltype import SqlType, TypeKind
from chvalue.value import Kind, Value
from chvalue.convert import ref_from_value, ref_as_int

v = Value.of(42)
print(v)                         # 42
print(v.sql_type())              # Int64

null = Value.nullable(None, SqlType.scalar(TypeKind.UINT8))
print(null)                      # NULL
print(null.sql_type())           # Nullable(UInt8)

arr = Value.array(SqlType.scalar(TypeKind.INT32),
                  [Value(Kind.INT32, 1), Value(Kind.INT32, 2)])
print(arr)                       # [1, 2]

blank = Value.default(SqlType.fixed_string(4))
print(blank.as_bytes())          # b'\x00\x00\x00\x00'

print(ref_as_int(ref_from_value(Value(Kind.UINT8, 7))))   # 7
```

Asking a value for the wrong Python type (for example `as_str()` on an
integer) raises `ConversionError`, whose message names the value's SQL type.
`Value.as_str()` also raises `ConversionError` for bytes that are not valid
UTF-8, while `ValueRef.as_str()` lets the `UnicodeDecodeError` through.

## What this package does not do

It only represents and converts single cell values. It has no network
client, no connection pool, no query execution, no blocks or columns, and
no wire encoding of whole columns beyond `unmarshal` for single scalars.
import datetime as dt
import ipaddress
import math
import random
import struct
import uuid

import pytest

from chvalue.sqltype import ConversionError, Decimal, SqlType, TypeKind
from chvalue.value import Kind, Value

UTC = dt.timezone.utc

_INT_KINDS = {
    Kind.UINT8: (0, 2**8 - 1),
    Kind.UINT16: (0, 2**16 - 1),
    Kind.UINT32: (0, 2**32 - 1),
    Kind.UINT64: (0, 2**64 - 1),
    Kind.INT8: (-(2**7), 2**7 - 1),
    Kind.INT16: (-(2**15), 2**15 - 1),
    Kind.INT32: (-(2**31), 2**31 - 1),
    Kind.INT64: (-(2**63), 2**63 - 1),
}


@pytest.mark.parametrize("kind", list(_INT_KINDS))
def test_random_int_round_trip(kind):
    rng = random.Random(kind.value)
    low, high = _INT_KINDS[kind]
    for _ in range(100):
        x = rng.randint(low, high)
        assert Value(kind, x).as_int() == x


def test_random_f64_round_trip():
    rng = random.Random(1)
    for _ in range(100):
        x = rng.uniform(-1e12, 1e12)
        assert Value.of(x).as_float() == x


def test_random_f32_round_trip():
    rng = random.Random(2)
    checked = 0
    while checked < 100:
        (x,) = struct.unpack("<f", rng.randbytes(4))
        if math.isnan(x):
            continue
        assert Value(Kind.FLOAT32, x).as_float() == x
        checked += 1


def test_random_ipv4_round_trip():
    rng = random.Random(3)
    for _ in range(100):
        addr = ipaddress.IPv4Address(rng.randbytes(4))
        assert Value.of(addr).as_ipv4() == addr


def test_string():
    text = "284222f9-aba2-4b05-bcf5-e4e727fe34d1"
    assert Value.of(text).as_str() == text


def test_from_u32():
    assert Value(Kind.UINT32, 32).as_int() == 32


def test_uuid():
    u = uuid.UUID("936da01f-9abd-4d9d-80c7-02af85c822a8")
    assert str(Value.from_uuid(u)) == "936da01f-9abd-4d9d-80c7-02af85c822a8"


def test_from_datetime_utc():
    moment = dt.datetime(2014, 7, 8, 14, 0, 0, tzinfo=UTC)
    assert Value.of(moment) == Value(Kind.DATETIME, 1404828000, tz="UTC")


def test_from_date():
    assert Value.of(dt.date(2016, 10, 22)) == Value(Kind.DATE, 17096)
    moment = dt.datetime(2014, 7, 8, 14, tzinfo=dt.timezone(dt.timedelta(hours=8)))
    value = Value.of(moment)
    assert value == Value(Kind.CHRONO_DATETIME, moment)
    assert value.kind is Kind.CHRONO_DATETIME


def test_boolean():
    assert Value.of(False) == Value(Kind.BOOL, False)
    assert Value.of(True) == Value(Kind.BOOL, True)


def test_string_from():
    value = Value(Kind.STRING, b"df47a455-bb3c-4bd6-b2f2-a24be3db36ab")
    assert value.as_str() == "df47a455-bb3c-4bd6-b2f2-a24be3db36ab"


def test_into_bytes():
    assert Value(Kind.STRING, bytes([1, 2, 3])).as_bytes() == b"\x01\x02\x03"


@pytest.mark.parametrize(
    "kind",
    [Kind.UINT8, Kind.UINT16, Kind.UINT32, Kind.UINT64, Kind.UINT128,
     Kind.INT8, Kind.INT16, Kind.INT32, Kind.INT64, Kind.INT128],
)
def test_display_ints(kind):
    assert str(Value(kind, 42)) == "42"


def test_display():
    assert str(Value(Kind.STRING, b"text")) == "text"
    assert str(Value(Kind.STRING, bytes([1, 2, 3]))) == "\x01\x02\x03"
    assert str(Value.nullable(None, SqlType.scalar(TypeKind.UINT8))) == "NULL"
    assert str(Value.nullable(Value(Kind.UINT8, 42))) == "42"
    array = Value.array(SqlType.scalar(TypeKind.INT32), [Value(Kind.INT32, i) for i in (1, 2, 3)])
    assert str(array) == "[1, 2, 3]"


def test_display_invalid_utf8():
    assert str(Value(Kind.STRING, bytes([0, 159, 146, 150]))) == "[0, 159, 146, 150]"


def test_display_floats():
    assert str(Value(Kind.FLOAT32, 42.0)) == "42"
    assert str(Value(Kind.FLOAT64, 42.0)) == "42"
    assert str(Value(Kind.FLOAT32, 0.1)) == "0.1"
    assert str(Value(Kind.FLOAT64, 1e-5)) == "0.00001"


def test_display_times():
    assert str(Value(Kind.DATE, 0)) == "1970-01-01"
    assert f"{Value(Kind.DATE, 0):#}" == "1970-01-01"
    assert str(Value(Kind.DATETIME, 0, tz="UTC")) == "Thu, 01 Jan 1970 00:00:00 +0000"
    assert f"{Value(Kind.DATETIME, 0, tz='UTC'):#}" == "1970-01-01 00:00:00 UTC"
    value = Value(Kind.DATETIME64, 1500, tz="UTC", precision=3)
    assert str(value) == "Thu, 01 Jan 1970 00:00:01 +0000"
    moment = dt.datetime(2014, 7, 8, 14, tzinfo=dt.timezone(dt.timedelta(hours=8)))
    assert str(Value.of(moment)) == "Tue, 08 Jul 2014 14:00:00 +0800"


def test_display_other_kinds():
    assert str(Value.of(Decimal.of(2.0, 2))) == "2.00"
    assert str(Value.of(ipaddress.IPv4Address("10.0.0.1"))) == "10.0.0.1"
    assert str(Value.of(ipaddress.IPv6Address("::1"))) == "::1"
    assert str(Value(Kind.ENUM8, 3)) == "Enum8, 3"
    assert str(Value.of({"a": 1})) == "[key=>a value=>1]"
    assert str(Value.of(True)) == "true"


def test_default_fixed_str():
    for n in range(1000):
        text = Value.default(SqlType.fixed_string(n)).as_str()
        assert len(text) == n
        assert set(text) <= {"\0"}


def test_defaults():
    assert Value.default(SqlType.scalar(TypeKind.UINT8)) == Value(Kind.UINT8, 0)
    assert Value.default(SqlType.scalar(TypeKind.STRING)).as_bytes() == b""
    assert Value.default(SqlType.scalar(TypeKind.DATE)).as_date() == dt.date(1970, 1, 1)
    epoch = dt.datetime(1970, 1, 1, tzinfo=UTC)
    assert Value.default(SqlType.scalar(TypeKind.DATETIME)).as_datetime() == epoch
    default64 = Value.default(SqlType.datetime64(3, "UTC"))
    assert default64 == Value(Kind.DATETIME64, 0, tz="UTC", precision=1)
    assert Value.default(SqlType.decimal(8, 3)) == Value(Kind.DECIMAL, Decimal(0, 8, 3))
    inner = SqlType.scalar(TypeKind.INT32)
    assert Value.default(SqlType.nullable(inner)) == Value.nullable(None, inner)
    assert Value.default(SqlType.array(inner)) == Value.array(inner, [])
    assert Value.default(SqlType(TypeKind.LOW_CARDINALITY, inner=inner)) == Value(Kind.INT32, 0)


def test_from_some():
    assert Value.nullable(Value(Kind.UINT32, 1)) == Value(Kind.NULLABLE, Value(Kind.UINT32, 1))
    assert Value.nullable("text") == Value(Kind.NULLABLE, Value(Kind.STRING, b"text"))
    assert Value.nullable(3.1) == Value(Kind.NULLABLE, Value(Kind.FLOAT64, 3.1))
    moment = dt.datetime(2019, 1, 1, tzinfo=dt.timezone(dt.timedelta(hours=3)))
    assert Value.nullable(moment) == Value(Kind.NULLABLE, Value(Kind.CHRONO_DATETIME, moment))


def test_null_needs_type():
    with pytest.raises(ValueError):
        Value.nullable(None)


def test_value_array_from():
    assert Value.of([1, 2, 3]).sql_type() == SqlType.array(SqlType.scalar(TypeKind.INT64))
    assert Value.of([1.0, 2.0]).sql_type() == SqlType.array(SqlType.scalar(TypeKind.FLOAT64))
    with pytest.raises(ValueError):
        Value.of([])
    with pytest.raises(ValueError):
        Value.of([1, "a"])


def test_sql_types():
    assert Value.of(Decimal.of(2.0, 4)).sql_type() == SqlType.decimal(18, 4)
    assert Value(Kind.DATETIME, 5).sql_type() == SqlType.scalar(TypeKind.DATETIME)
    assert Value.nullable(Value(Kind.INT8, 42)).sql_type() == SqlType.nullable(
        SqlType.scalar(TypeKind.INT8)
    )
    value = Value(Kind.DATETIME64, 7, tz="UTC", precision=3)
    assert value.sql_type() == SqlType.datetime64(3, "UTC")


def test_datetime_equality_ignores_zone():
    assert Value(Kind.DATETIME, 42, tz="UTC") == Value(Kind.DATETIME, 42, tz="Asia/Istanbul")
    assert Value(Kind.DATETIME, 42) != Value(Kind.DATETIME, 43)


def test_datetime64_equality_needs_same_precision():
    a = Value(Kind.DATETIME64, 10, tz="UTC", precision=1)
    b = Value(Kind.DATETIME64, 10, tz="UTC", precision=2)
    assert a != b
    assert a == Value(Kind.DATETIME64, 10, tz="Asia/Istanbul", precision=1)


def test_datetime64_as_datetime():
    value = Value(Kind.DATETIME64, 1500, tz="UTC", precision=3)
    assert value.as_datetime() == dt.datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=UTC)


def test_maps_never_compare_equal():
    m = Value.of({"a": 1})
    assert (m == m) is False
    assert (m == Value.of({"a": 1})) is False
    assert str(m) == "[key=>a value=>1]"


def test_hashing():
    assert {Value.of("a"): 1}[Value(Kind.STRING, b"a")] == 1
    with pytest.raises(TypeError):
        hash(Value(Kind.FLOAT64, 1.0))


def test_conversion_errors():
    with pytest.raises(ConversionError):
        Value(Kind.UINT8, 1).as_str()
    with pytest.raises(ConversionError):
        Value(Kind.STRING, bytes([0, 159, 146, 150])).as_str()
    with pytest.raises(ConversionError):
        Value(Kind.STRING, b"x").as_int()
    with pytest.raises(ConversionError):
        Value(Kind.INT8, 1).as_date()


def test_range_checks():
    with pytest.raises(OverflowError):
        Value(Kind.UINT8, 256)
    with pytest.raises(OverflowError):
        Value(Kind.INT8, -129)
    with pytest.raises(ValueError):
        Value(Kind.IPV4, b"\x00")


def test_naive_datetime_rejected():
    with pytest.raises(TypeError):
        Value.of(dt.datetime(2020, 1, 1))
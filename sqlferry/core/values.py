#!/usr/bin/env python3
"""
sqlferry Value Model - Provider-Neutral Column Values

Every column value read from a source database is converted into exactly one
of the variants below before it is rendered back into SQL text:

- NullValue, BoolValue, IntValue, FloatValue
- DecimalValue (numeric text carried verbatim, never reparsed)
- StringValue, BytesValue
- DateValue, TimeValue, TimestampValue

Usage:
    value = from_python(datetime.date(2024, 1, 31))
    dialect.to_literal(value)
"""

import datetime
import decimal
import json
from dataclasses import dataclass
from typing import Any, List, Sequence, Union


@dataclass(frozen=True)
class NullValue:
    pass


@dataclass(frozen=True)
class BoolValue:
    value: bool


@dataclass(frozen=True)
class IntValue:
    value: int


@dataclass(frozen=True)
class FloatValue:
    value: float


@dataclass(frozen=True)
class DecimalValue:
    """Exact numeric kept as the text the driver produced"""
    text: str


@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class BytesValue:
    value: bytes


@dataclass(frozen=True)
class DateValue:
    year: int
    month: int
    day: int


@dataclass(frozen=True)
class TimeValue:
    """Time of day or duration; hours may exceed 23 for interval-like columns"""
    negative: bool
    hour: int
    minute: int
    second: int
    microsecond: int = 0


@dataclass(frozen=True)
class TimestampValue:
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    microsecond: int = 0


Value = Union[
    NullValue, BoolValue, IntValue, FloatValue, DecimalValue,
    StringValue, BytesValue, DateValue, TimeValue, TimestampValue,
]

Row = List[Value]

NULL = NullValue()

_PRINTABLE_CONTROL = (9, 10, 13)


def is_likely_text(data: bytes) -> bool:
    """Return True when bytes are valid UTF-8 and at least 90% printable ASCII."""
    try:
        data.decode('utf-8')
    except UnicodeDecodeError:
        return False

    printable = sum(1 for b in data if 32 <= b < 127 or b in _PRINTABLE_CONTROL)
    return printable * 10 >= len(data) * 9


def _time_from_timedelta(delta: datetime.timedelta) -> TimeValue:
    total_us = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    negative = total_us < 0
    total_us = abs(total_us)
    seconds, microsecond = divmod(total_us, 1_000_000)
    minutes, second = divmod(seconds, 60)
    hour, minute = divmod(minutes, 60)
    return TimeValue(negative, hour, minute, second, microsecond)


def from_python(obj: Any) -> Value:
    """Convert a DB-API driver value into a neutral Value."""
    if obj is None:
        return NULL
    # bool is a subclass of int
    if isinstance(obj, bool):
        return BoolValue(obj)
    if isinstance(obj, int):
        return IntValue(obj)
    if isinstance(obj, float):
        return FloatValue(obj)
    if isinstance(obj, decimal.Decimal):
        if not obj.is_finite():
            return FloatValue(float(obj))
        return DecimalValue(format(obj, 'f'))
    if isinstance(obj, str):
        return StringValue(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        data = bytes(obj)
        if is_likely_text(data):
            return StringValue(data.decode('utf-8'))
        return BytesValue(data)
    # datetime is a subclass of date
    if isinstance(obj, datetime.datetime):
        return TimestampValue(obj.year, obj.month, obj.day,
                              obj.hour, obj.minute, obj.second, obj.microsecond)
    if isinstance(obj, datetime.date):
        return DateValue(obj.year, obj.month, obj.day)
    if isinstance(obj, datetime.time):
        return TimeValue(False, obj.hour, obj.minute, obj.second, obj.microsecond)
    if isinstance(obj, datetime.timedelta):
        return _time_from_timedelta(obj)
    if isinstance(obj, (dict, list)):
        return StringValue(json.dumps(obj))
    return StringValue(str(obj))


def from_python_row(row: Sequence[Any]) -> Row:
    return [from_python(item) for item in row]


def describe(value: Value) -> str:
    """Short diagnostic form of a value, e.g. Int(3) or String('abc')."""
    if isinstance(value, NullValue):
        return "Null"
    if isinstance(value, BoolValue):
        return f"Bool({value.value})"
    if isinstance(value, IntValue):
        return f"Int({value.value})"
    if isinstance(value, FloatValue):
        return f"Float({value.value!r})"
    if isinstance(value, DecimalValue):
        return f"Decimal({value.text})"
    if isinstance(value, StringValue):
        return f"String({value.value!r})"
    if isinstance(value, BytesValue):
        return f"Bytes({value.value.hex()})"
    if isinstance(value, DateValue):
        return f"Date({format_date(value)})"
    if isinstance(value, TimeValue):
        return f"Time({format_time(value)})"
    if isinstance(value, TimestampValue):
        return f"Timestamp({format_timestamp(value)})"
    return repr(value)


def _fraction(microsecond: int) -> str:
    return f".{microsecond:06d}" if microsecond else ""


def format_date(value: DateValue) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def format_time(value: TimeValue) -> str:
    sign = "-" if value.negative else ""
    return f"{sign}{value.hour:02d}:{value.minute:02d}:{value.second:02d}{_fraction(value.microsecond)}"


def format_timestamp(value: TimestampValue) -> str:
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}{_fraction(value.microsecond)}"
    )

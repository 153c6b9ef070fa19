#!/usr/bin/env python3
"""
CSV Import Tests

Column mapping, per-cell type detection, majority-vote inference and typed
value parsing.
"""

from collections import Counter

import pandas as pd
import pytest

from sqlferry.core.csv_import import (choose_type, detect_value_type, infer_column_types,
                                      parse_column_mapping, parse_row, parse_value)
from sqlferry.core.errors import ConfigurationError, InputError
from sqlferry.core.session import SqlType
from sqlferry.core.values import (NULL, BoolValue, DateValue, FloatValue, IntValue, StringValue,
                                  TimestampValue)


@pytest.mark.unit
class TestColumnMapping:

    def test_pairs(self):
        assert parse_column_mapping("Full Name:name, E-mail:email") == {"Full Name": "name", "E-mail": "email"}

    @pytest.mark.parametrize("mapping", ["a", "a:b:c", ":b", "a:", "a:b,,c:d"])
    def test_malformed(self, mapping):
        with pytest.raises(ConfigurationError, match="Invalid column mapping format"):
            parse_column_mapping(mapping)


@pytest.mark.unit
class TestDetectValueType:

    @pytest.mark.parametrize("text,expected", [
        ("", None),
        ("  ", None),
        ("NULL", None),
        ("none", None),
        ("1", SqlType.INTEGER),
        ("0", SqlType.INTEGER),
        ("-42", SqlType.INTEGER),
        ("True", SqlType.BOOLEAN),
        ("no", SqlType.BOOLEAN),
        ("2024-01-31 12:30:00", SqlType.TIMESTAMP),
        ("2024-01-31T12:30:00.5", SqlType.TIMESTAMP),
        ("2024-01-31", SqlType.DATE),
        ("2024-02-30", SqlType.TEXT),
        ("3.14", SqlType.FLOAT),
        ("-0.5e3", SqlType.FLOAT),
        ("1e5", SqlType.TEXT),
        ("1_000", SqlType.TEXT),
        ("12:30:00", SqlType.TEXT),
        ("hello", SqlType.TEXT),
    ])
    def test_classification(self, text, expected):
        assert detect_value_type(text) == expected


@pytest.mark.unit
class TestInference:

    def test_majority_wins(self):
        votes = Counter({SqlType.INTEGER: 3, SqlType.TEXT: 1})
        assert choose_type(votes) == SqlType.INTEGER

    def test_tie_goes_to_more_general_type(self):
        assert choose_type(Counter({SqlType.DATE: 2, SqlType.TEXT: 2})) == SqlType.TEXT
        assert choose_type(Counter({SqlType.BOOLEAN: 1, SqlType.TIMESTAMP: 1})) == SqlType.BOOLEAN

    def test_integers_mixed_with_floats_widen(self):
        assert choose_type(Counter({SqlType.INTEGER: 9, SqlType.FLOAT: 1})) == SqlType.FLOAT

    def test_no_votes_is_text(self):
        assert choose_type(Counter()) == SqlType.TEXT

    def test_frame(self):
        frame = pd.DataFrame({
            "id": ["1", "2", "3"],
            "price": ["9.99", "10", "0.5"],
            "active": ["yes", "no", ""],
            "joined": ["2024-01-01", "2024-02-01", "null"],
            "note": ["", "", ""],
        })
        assert infer_column_types(frame) == [
            SqlType.INTEGER, SqlType.FLOAT, SqlType.BOOLEAN, SqlType.DATE, SqlType.TEXT,
        ]


@pytest.mark.unit
class TestParseValue:

    def test_null_words(self):
        for text in ("", " NULL ", "None"):
            assert parse_value(text, SqlType.INTEGER, "id") == NULL

    def test_typed_values(self):
        assert parse_value(" 42 ", SqlType.INTEGER, "id") == IntValue(42)
        assert parse_value("2.5", SqlType.FLOAT, "price") == FloatValue(2.5)
        assert parse_value("YES", SqlType.BOOLEAN, "active") == BoolValue(True)
        assert parse_value("0", SqlType.BOOLEAN, "active") == BoolValue(False)
        assert parse_value("2024-01-31", SqlType.DATE, "joined") == DateValue(2024, 1, 31)
        assert parse_value("hello", SqlType.TEXT, "note") == StringValue("hello")

    def test_timestamps(self):
        assert parse_value("2024-01-31 12:30", SqlType.TIMESTAMP, "at") == \
            TimestampValue(2024, 1, 31, 12, 30, 0)
        assert parse_value("2024-01-31T12:30:05.250000", SqlType.TIMESTAMP, "at") == \
            TimestampValue(2024, 1, 31, 12, 30, 5, 250000)

    def test_failure_names_value_and_column(self):
        with pytest.raises(InputError, match="Failed to parse 'abc' as integer for column 'id'"):
            parse_value("abc", SqlType.INTEGER, "id")

    def test_bad_boolean(self):
        with pytest.raises(InputError):
            parse_value("maybe", SqlType.BOOLEAN, "active")

    def test_short_row_padded_with_null(self):
        row = parse_row(["1"], [SqlType.INTEGER, SqlType.TEXT], ["id", "name"])
        assert row == [IntValue(1), NULL]

    def test_long_row_rejected(self):
        with pytest.raises(InputError, match="Expected 1 fields, found 2"):
            parse_row(["1", "2"], [SqlType.INTEGER], ["id"])

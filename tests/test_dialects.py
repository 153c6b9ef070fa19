#!/usr/bin/env python3
"""
Dialect Rendering Tests

Identifier quoting, value literals and INSERT construction for MySQL,
PostgreSQL and SQLite, plus the dialect registry.
"""

from datetime import timedelta

import pytest

from sqlferry.core.dialect import get_dialect, split_table_name
from sqlferry.core.errors import ConfigurationError
from sqlferry.core.values import (NULL, BoolValue, BytesValue, DateValue, DecimalValue, FloatValue,
                                  IntValue, StringValue, TimestampValue, TimeValue, from_python)
from sqlferry.plugins.mysql_adapter import MYSQL_DIALECT, escape_string
from sqlferry.plugins.postgresql_adapter import POSTGRES_DIALECT
from sqlferry.plugins.sqlite_adapter import SQLITE_DIALECT


@pytest.mark.unit
class TestRegistry:
    """Shared dialect instances looked up by provider name"""

    def test_lookup_returns_singletons(self):
        assert get_dialect("mysql") is MYSQL_DIALECT
        assert get_dialect("MySQL") is MYSQL_DIALECT
        assert get_dialect("postgres") is POSTGRES_DIALECT
        assert get_dialect("postgresql") is POSTGRES_DIALECT
        assert get_dialect("sqlite") is SQLITE_DIALECT

    def test_aliases(self):
        assert get_dialect("mariadb") is MYSQL_DIALECT
        assert get_dialect("pg") is POSTGRES_DIALECT

    def test_unknown_dialect(self):
        with pytest.raises(ConfigurationError, match="Unknown dialect 'oracle'"):
            get_dialect("oracle")

    def test_names(self):
        assert MYSQL_DIALECT.name == "MySQL"
        assert POSTGRES_DIALECT.name == "PostgreSQL"
        assert SQLITE_DIALECT.name == "SQLite"


@pytest.mark.unit
class TestTableNames:

    def test_split_schema(self):
        assert split_table_name("shop.orders") == ("shop", "orders")
        assert split_table_name("orders") == (None, "orders")
        assert split_table_name(".orders") == (None, ".orders")

    def test_qualified_insert_quotes_each_part(self):
        sql = POSTGRES_DIALECT.insert_values_sql("sales.orders", ["id"], [[IntValue(1)]])
        assert sql == 'INSERT INTO "sales"."orders" ("id") VALUES (1);'


@pytest.mark.unit
class TestMySQLDialect:
    """Backtick quoting and backslash-aware literals"""

    def test_quote_identifier_doubles_backticks(self):
        assert MYSQL_DIALECT.quote_identifier("we`ird") == "`we``ird`"

    def test_string_escapes(self):
        assert escape_string("O'Brien") == "'O''Brien'"
        assert escape_string("a\\b") == "'a\\\\b'"
        assert escape_string("line\nnext\ttab\r\0") == "'line\\nnext\\ttab\\r\\0'"

    def test_scalars(self):
        assert MYSQL_DIALECT.to_literal(NULL) == "NULL"
        assert MYSQL_DIALECT.to_literal(BoolValue(True)) == "TRUE"
        assert MYSQL_DIALECT.to_literal(BoolValue(False)) == "FALSE"
        assert MYSQL_DIALECT.to_literal(IntValue(-7)) == "-7"
        assert MYSQL_DIALECT.to_literal(DecimalValue("10.50")) == "10.50"

    def test_floats(self):
        assert MYSQL_DIALECT.to_literal(FloatValue(0.1)) == "0.1"
        assert MYSQL_DIALECT.to_literal(FloatValue(float("nan"))) == "'NaN'"
        assert MYSQL_DIALECT.to_literal(FloatValue(float("-inf"))) == "'-Infinity'"

    def test_binary_bytes_render_as_hex(self):
        assert MYSQL_DIALECT.to_literal(BytesValue(b"\xff\xfe")) == "0xfffe"

    def test_text_bytes_render_as_string(self):
        assert MYSQL_DIALECT.to_literal(BytesValue(b"it's")) == "'it''s'"

    def test_empty_bytes(self):
        assert MYSQL_DIALECT.to_literal(BytesValue(b"")) == "''"

    def test_temporal(self):
        assert MYSQL_DIALECT.to_literal(DateValue(2024, 1, 31)) == "'2024-01-31'"
        assert MYSQL_DIALECT.to_literal(TimeValue(True, 100, 0, 1)) == "'-100:00:01'"
        assert MYSQL_DIALECT.to_literal(TimestampValue(2024, 1, 31, 1, 2, 3, 450000)) == \
            "'2024-01-31 01:02:03.450000'"

    def test_multi_row_insert(self):
        sql = MYSQL_DIALECT.insert_values_sql(
            "t", ["id", "name"], [[IntValue(1), StringValue("a")], [IntValue(2), NULL]]
        )
        assert sql == "INSERT INTO `t` (`id`, `name`) VALUES (1, 'a'), (2, NULL);"

    def test_drop(self):
        assert MYSQL_DIALECT.drop_table_statement("shop.t") == "DROP TABLE IF EXISTS `shop`.`t`"

    def test_preamble_and_postamble_pair_up(self):
        preamble = "\n".join(MYSQL_DIALECT.dump_preamble())
        postamble = "\n".join(MYSQL_DIALECT.dump_postamble())
        assert "FOREIGN_KEY_CHECKS=0" in preamble
        assert "SET NAMES utf8mb4" in preamble
        assert "FOREIGN_KEY_CHECKS=@OLD_FOREIGN_KEY_CHECKS" in postamble
        assert "SQL_MODE=@OLD_SQL_MODE" in postamble


@pytest.mark.unit
class TestPostgreSQLDialect:
    """Double-quote identifiers, standard-conforming strings, typed literals"""

    def test_quote_identifier(self):
        assert POSTGRES_DIALECT.quote_identifier('say "hi"') == '"say ""hi"""'

    def test_strings_keep_backslashes(self):
        assert POSTGRES_DIALECT.to_literal(StringValue("a\\b'c")) == "'a\\b''c'"

    def test_bytes_always_hex(self):
        assert POSTGRES_DIALECT.to_literal(BytesValue(b"\xff\xfe")) == "'\\xfffe'::bytea"
        assert POSTGRES_DIALECT.to_literal(BytesValue(b"abc")) == "'\\x616263'::bytea"

    def test_non_finite_floats_are_cast(self):
        assert POSTGRES_DIALECT.to_literal(FloatValue(float("inf"))) == "'Infinity'::float8"
        assert POSTGRES_DIALECT.to_literal(FloatValue(2.5)) == "2.5"

    def test_typed_temporal_literals(self):
        assert POSTGRES_DIALECT.to_literal(DateValue(2024, 1, 31)) == "DATE '2024-01-31'"
        assert POSTGRES_DIALECT.to_literal(TimeValue(False, 9, 5, 0)) == "TIME '09:05:00'"
        assert POSTGRES_DIALECT.to_literal(TimestampValue(2024, 1, 31, 0, 0, 0)) == \
            "TIMESTAMP '2024-01-31 00:00:00'"

    def test_out_of_range_durations_become_intervals(self):
        assert POSTGRES_DIALECT.to_literal(from_python(timedelta(days=1, hours=2))) == "INTERVAL '26:00:00'"
        assert POSTGRES_DIALECT.to_literal(from_python(timedelta(hours=-1))) == "INTERVAL '-01:00:00'"
        assert POSTGRES_DIALECT.to_literal(from_python(timedelta(hours=23, minutes=59))) == "TIME '23:59:00'"

    def test_booleans(self):
        assert POSTGRES_DIALECT.to_literal(BoolValue(False)) == "FALSE"

    def test_preamble(self):
        assert "SET session_replication_role = replica;" in POSTGRES_DIALECT.dump_preamble()
        assert POSTGRES_DIALECT.dump_postamble() == ["SET session_replication_role = DEFAULT;"]


@pytest.mark.unit
class TestSQLiteDialect:
    """Blob literals and integer booleans"""

    def test_bytes_as_blob_literal(self):
        assert SQLITE_DIALECT.to_literal(BytesValue(b"\xff\xfe")) == "X'FFFE'"

    def test_infinities_parse_back_as_real(self):
        assert SQLITE_DIALECT.to_literal(FloatValue(float("inf"))) == "9e999"
        assert SQLITE_DIALECT.to_literal(FloatValue(float("-inf"))) == "-9e999"
        assert SQLITE_DIALECT.to_literal(FloatValue(float("nan"))) == "'NaN'"
        assert SQLITE_DIALECT.to_literal(FloatValue(0.25)) == "0.25"

    def test_booleans_are_integers(self):
        assert SQLITE_DIALECT.to_literal(BoolValue(True)) == "1"
        assert SQLITE_DIALECT.to_literal(BoolValue(False)) == "0"

    def test_string_quotes(self):
        assert SQLITE_DIALECT.to_literal(StringValue("it's")) == "'it''s'"

    def test_insert_with_many_rows(self):
        rows = [[IntValue(i)] for i in range(3)]
        assert SQLITE_DIALECT.insert_values_sql("n", ["v"], rows) == \
            'INSERT INTO "n" ("v") VALUES (0), (1), (2);'

    def test_unsupported_value(self):
        with pytest.raises(TypeError):
            SQLITE_DIALECT.to_literal(object())

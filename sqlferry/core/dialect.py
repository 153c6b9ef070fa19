#!/usr/bin/env python3
"""
sqlferry Dialects - SQL Rendering Rules per Provider

A dialect turns neutral values into SQL literal text for one provider:
identifier quoting, value literals and INSERT/DROP statement construction.
Dialects hold no state; each provider registers one shared instance that is
looked up by name.

Usage:
    dialect = get_dialect("mysql")
    sql = dialect.insert_values_sql("shop.orders", ["id", "note"], rows)
"""

import math
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from .errors import ConfigurationError
from .values import Value


class SqlDialect(Protocol):
    """Rendering contract every provider dialect satisfies"""

    name: str

    def quote_identifier(self, name: str) -> str:
        ...

    def to_literal(self, value: Value) -> str:
        ...

    def insert_values_sql(self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Value]]) -> str:
        ...

    def drop_table_statement(self, table: str) -> str:
        ...

    def dump_preamble(self) -> List[str]:
        ...

    def dump_postamble(self) -> List[str]:
        ...


def split_table_name(table: str) -> Tuple[Optional[str], str]:
    """Split 'schema.table' on the first dot; a leading dot is not a schema."""
    schema, sep, name = table.partition('.')
    if sep and schema:
        return schema, name
    return None, table


def format_qualified_table(dialect: SqlDialect, table: str) -> str:
    schema, name = split_table_name(table)
    if schema is None:
        return dialect.quote_identifier(name)
    return f"{dialect.quote_identifier(schema)}.{dialect.quote_identifier(name)}"


def render_insert(dialect: SqlDialect, table: str, columns: Sequence[str],
                  rows: Sequence[Sequence[Value]]) -> str:
    """Build one multi-row INSERT; statement length is bounded only by len(rows)."""
    column_list = ", ".join(dialect.quote_identifier(col) for col in columns)
    tuples = ", ".join(
        "(" + ", ".join(dialect.to_literal(value) for value in row) + ")"
        for row in rows
    )
    return f"INSERT INTO {format_qualified_table(dialect, table)} ({column_list}) VALUES {tuples};"


def render_drop(dialect: SqlDialect, table: str) -> str:
    return f"DROP TABLE IF EXISTS {format_qualified_table(dialect, table)}"


def float_literal(value: float, cast: str = "") -> str:
    """Finite floats use repr(); NaN and infinities become quoted sentinels."""
    if math.isnan(value):
        return f"'NaN'{cast}"
    if math.isinf(value):
        return f"'Infinity'{cast}" if value > 0 else f"'-Infinity'{cast}"
    return repr(value)


def double_quotes(value: str, quote: str = "'") -> str:
    return quote + value.replace(quote, quote * 2) + quote


# Process-wide dialect registry, keyed by provider name
_DIALECTS: Dict[str, SqlDialect] = {}

_ALIASES = {
    'postgresql': 'postgres',
    'pg': 'postgres',
    'mariadb': 'mysql',
    'sqlite3': 'sqlite',
}


def normalize_provider(name: str) -> str:
    key = name.strip().lower()
    return _ALIASES.get(key, key)


def register_dialect(provider: str, dialect: SqlDialect) -> None:
    _DIALECTS[normalize_provider(provider)] = dialect


def get_dialect(provider: str) -> SqlDialect:
    """Return the shared dialect instance for a provider name."""
    # Providers register themselves on import
    from .. import plugins  # noqa: F401

    key = normalize_provider(provider)
    try:
        return _DIALECTS[key]
    except KeyError:
        raise ConfigurationError(f"Unknown dialect '{provider}'. Available: {', '.join(available_dialects())}") from None


def available_dialects() -> List[str]:
    return sorted(_DIALECTS)

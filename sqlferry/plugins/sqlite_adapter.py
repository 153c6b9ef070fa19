#!/usr/bin/env python3
"""
sqlferry SQLite Adapter - Dialect and Session over sqlite3

Provides the session contract for SQLite database files:
- DDL taken verbatim from sqlite_master
- Cursor-based lazy row streaming
- X'..' blob literals and 1/0 booleans
- PRAGMA foreign_keys toggling

URLs follow the usual convention: sqlite:///relative.db, sqlite:////abs/path.db
and sqlite:///:memory:.
"""

import logging
import math
import sqlite3
from typing import Iterator, List, Optional, Sequence, Tuple
from urllib.parse import unquote

from ..config.settings import get_config
from ..core.dialect import (double_quotes, float_literal, format_qualified_table,
                            register_dialect, render_drop, render_insert, split_table_name)
from ..core.errors import (BatchInsertError, ConnectError, RowStreamError, SchemaError,
                           StatementError)
from ..core.session import (ColumnSpec, RowStream, SqlType, filter_tables, make_idempotent,
                            register_engine)
from ..core.values import (BoolValue, BytesValue, DateValue, DecimalValue, FloatValue, IntValue,
                           NullValue, Row, StringValue, TimestampValue, TimeValue, Value,
                           format_date, format_time, format_timestamp, from_python_row)
from ..utils.helpers import sanitize_error

logger = logging.getLogger(__name__)


class SQLiteDialect:
    """Rendering rules for SQLite"""

    name = "SQLite"

    def quote_identifier(self, name: str) -> str:
        return double_quotes(name, '"')

    def to_literal(self, value: Value) -> str:
        if isinstance(value, NullValue):
            return "NULL"
        if isinstance(value, BoolValue):
            return "1" if value.value else "0"
        if isinstance(value, IntValue):
            return str(value.value)
        if isinstance(value, FloatValue):
            # SQLite reads quoted infinities back as TEXT; an overflowing numeral parses as REAL
            if math.isinf(value.value):
                return "9e999" if value.value > 0 else "-9e999"
            return float_literal(value.value)
        if isinstance(value, DecimalValue):
            return value.text
        if isinstance(value, StringValue):
            return double_quotes(value.value)
        if isinstance(value, BytesValue):
            return f"X'{value.value.hex().upper()}'"
        if isinstance(value, DateValue):
            return f"'{format_date(value)}'"
        if isinstance(value, TimeValue):
            return f"'{format_time(value)}'"
        if isinstance(value, TimestampValue):
            return f"'{format_timestamp(value)}'"
        raise TypeError(f"Unsupported value type: {type(value).__name__}")

    def insert_values_sql(self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Value]]) -> str:
        return render_insert(self, table, columns, rows)

    def drop_table_statement(self, table: str) -> str:
        return render_drop(self, table)

    def dump_preamble(self) -> List[str]:
        return ["PRAGMA foreign_keys = OFF;"]

    def dump_postamble(self) -> List[str]:
        return ["PRAGMA foreign_keys = ON;"]

    def __repr__(self):
        return "SQLiteDialect()"


SQLITE_DIALECT = SQLiteDialect()

_COLUMN_TYPES = {
    SqlType.INTEGER: "INTEGER",
    SqlType.FLOAT: "REAL",
    SqlType.BOOLEAN: "BOOLEAN",
    SqlType.DATE: "DATE",
    SqlType.TIMESTAMP: "TIMESTAMP",
    SqlType.TEXT: "TEXT",
}


def database_path_from_url(url: str) -> str:
    """Extract the database file path from a sqlite URL."""
    for prefix in ('sqlite:///', 'sqlite://', 'sqlite:'):
        if url.startswith(prefix):
            url = url[len(prefix):]
            break
    path = unquote(url.split('?', 1)[0])
    return path or ':memory:'


class SQLiteSession:
    """One sqlite3 connection in autocommit mode"""

    def __init__(self, connection: sqlite3.Connection, path: str, fetch_size: int = 1000):
        self.connection = connection
        self.path = path
        self.fetch_size = fetch_size
        self.in_transaction = False

    def dialect(self) -> SQLiteDialect:
        return SQLITE_DIALECT

    def _master(self, table: str) -> Tuple[str, str]:
        schema, name = split_table_name(table)
        prefix = f"{SQLITE_DIALECT.quote_identifier(schema)}." if schema else ""
        return f"{prefix}sqlite_master", name

    def start_consistent_snapshot(self) -> None:
        logger.info("Starting consistent snapshot (deferred transaction)")
        self.execute("BEGIN")
        self.in_transaction = True

    def list_tables(self, include: Sequence[str] = (), exclude: Sequence[str] = ()) -> List[str]:
        try:
            rows = self.connection.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' "
                "AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\' ORDER BY name"
            ).fetchall()
        except sqlite3.Error as e:
            raise SchemaError(f"Failed to list tables: {e}") from e
        return filter_tables((row[0] for row in rows), include, exclude)

    def table_exists(self, table: str) -> bool:
        master, name = self._master(table)
        try:
            row = self.connection.execute(
                f"SELECT COUNT(*) FROM {master} WHERE type = 'table' AND name = ?", (name,)
            ).fetchone()
        except sqlite3.Error as e:
            raise SchemaError(f"Failed to check table '{table}': {e}", table) from e
        return bool(row and row[0])

    def show_create_table(self, table: str) -> str:
        master, name = self._master(table)
        try:
            row = self.connection.execute(
                f"SELECT sql FROM {master} WHERE type = 'table' AND name = ?", (name,)
            ).fetchone()
        except sqlite3.Error as e:
            raise SchemaError(f"Failed to read structure of table '{table}': {e}", table) from e
        if row is None or not row[0]:
            raise SchemaError(f"No CREATE TABLE result for table '{table}'", table)
        return make_idempotent(row[0])

    def stream_rows(self, table: str) -> Tuple[List[str], RowStream]:
        try:
            cursor = self.connection.execute(f"SELECT * FROM {format_qualified_table(SQLITE_DIALECT, table)}")
        except sqlite3.Error as e:
            raise RowStreamError(f"Failed to read rows from table '{table}': {e}", table) from e
        columns = [desc[0] for desc in cursor.description]
        return columns, self._iter_rows(cursor, table)

    def _iter_rows(self, cursor: sqlite3.Cursor, table: str) -> Iterator[Row]:
        try:
            while True:
                try:
                    chunk = cursor.fetchmany(self.fetch_size)
                except sqlite3.Error as e:
                    raise RowStreamError(f"Failed to read rows from table '{table}': {e}", table) from e
                if not chunk:
                    break
                for raw in chunk:
                    yield from_python_row(raw)
        finally:
            cursor.close()

    def approximate_row_count(self, table: str) -> int:
        try:
            row = self.connection.execute(
                f"SELECT COUNT(*) FROM {format_qualified_table(SQLITE_DIALECT, table)}"
            ).fetchone()
        except sqlite3.Error as e:
            logger.debug(f"Row count unavailable for {table}: {e}")
            return 0
        return int(row[0]) if row else 0

    def insert_batch(self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Value]]) -> None:
        if not rows:
            return
        sql = SQLITE_DIALECT.insert_values_sql(table, columns, rows)
        try:
            self.connection.execute(sql)
        except sqlite3.Error as e:
            raise BatchInsertError(str(e), table, len(rows)) from e

    def disable_constraints(self) -> None:
        self.execute("PRAGMA foreign_keys = OFF")

    def enable_constraints(self) -> None:
        self.execute("PRAGMA foreign_keys = ON")

    def execute(self, sql: str) -> None:
        try:
            self.connection.execute(sql)
        except sqlite3.Error as e:
            raise StatementError(str(e), sql) from e

    def commit(self) -> None:
        if not self.in_transaction:
            return
        self.execute("COMMIT")
        self.in_transaction = False

    def create_table_from_columns(self, table: str, columns: Sequence[ColumnSpec]) -> None:
        definitions = ", ".join(
            f"{SQLITE_DIALECT.quote_identifier(name)} {_COLUMN_TYPES[sql_type]} NULL"
            for name, sql_type in columns
        )
        self.execute(
            f"CREATE TABLE IF NOT EXISTS {format_qualified_table(SQLITE_DIALECT, table)} ({definitions})"
        )

    def close(self) -> None:
        if self.connection is not None:
            self.connection.close()
        self.connection = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class SQLiteEngine:
    """Opens SQLite sessions from sqlite:// URLs"""

    name = "sqlite"

    def __init__(self, fetch_size: Optional[int] = None, timeout: float = 30.0):
        self.fetch_size = fetch_size
        self.timeout = timeout

    def dialect(self) -> SQLiteDialect:
        return SQLITE_DIALECT

    def connect(self, url: str) -> SQLiteSession:
        path = database_path_from_url(url)
        logger.info(f"Opening SQLite database: {path}")
        try:
            # isolation_level=None leaves transaction control to explicit statements
            connection = sqlite3.connect(path, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            raise ConnectError(f"Failed to open SQLite database '{path}': {sanitize_error(str(e))}") from None
        return SQLiteSession(connection, path, self.fetch_size or get_config().fetch_size)


register_dialect('sqlite', SQLITE_DIALECT)
register_engine(SQLiteEngine())

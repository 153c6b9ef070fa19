#!/usr/bin/env python3
"""
sqlferry Dump - Write Schema and Data to a SQL File

Produces a UTF-8 SQL script (optionally gzip-compressed) that restore can
replay:

    -- <Dialect> database dump
    <dialect preamble: session settings saved and overridden>
    -- Table structure for <table>
    DROP TABLE IF EXISTS ...;
    CREATE TABLE IF NOT EXISTS ...;
    -- Data for table <table>
    INSERT INTO ... VALUES (...), (...);     one per flushed batch
    <dialect postamble: session settings restored>
"""

import gzip
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence, TextIO

from .dialect import SqlDialect
from .errors import DumpFileError
from .session import DbEngine
from .transfer import TableReport, TransferOptions, TransferPipeline
from .values import Value
from .. import __version__
from ..utils.helpers import redact_url

logger = logging.getLogger(__name__)


def wants_gzip(path: str, compress: bool = False) -> bool:
    return compress or path.lower().endswith('.gz')


class DumpWriter:
    """Line-oriented writer for dump files, plain or gzip"""

    def __init__(self, path: str, compress: bool = False):
        self.path = path
        self.compress = wants_gzip(path, compress)
        self._handle: Optional[TextIO] = None

    def open(self) -> 'DumpWriter':
        try:
            if self.compress:
                self._handle = gzip.open(self.path, 'wt', encoding='utf-8', newline='\n')
            else:
                self._handle = open(self.path, 'w', encoding='utf-8', newline='\n')
        except OSError as e:
            raise DumpFileError(f"Failed to create output file {self.path}: {e}", self.path) from e
        return self

    def write_line(self, text: str = "") -> None:
        if self._handle is None:
            raise DumpFileError(f"Dump file {self.path} is not open", self.path)
        try:
            self._handle.write(text + "\n")
        except OSError as e:
            raise DumpFileError(f"Failed to write to {self.path}: {e}", self.path) from e

    def write_header(self, dialect: SqlDialect) -> None:
        self.write_line(f"-- {dialect.name} database dump")
        self.write_line(f"-- Generated by sqlferry {__version__}")
        self.write_line(f"-- Date: {datetime.now(timezone.utc).isoformat()}")
        self.write_line()
        for statement in dialect.dump_preamble():
            self.write_line(statement)

    def write_footer(self, dialect: SqlDialect) -> None:
        self.write_line()
        for statement in dialect.dump_postamble():
            self.write_line(statement)

    def close(self) -> None:
        if self._handle is None:
            return
        try:
            self._handle.close()
        except OSError as e:
            raise DumpFileError(f"Failed to finish {self.path}: {e}", self.path) from e
        finally:
            self._handle = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class DumpFileSink:
    """Transfer sink that renders statements into a dump file"""

    def __init__(self, writer: DumpWriter, dialect: SqlDialect):
        self.writer = writer
        self.dialect = dialect

    def write_schema(self, table: str, create_sql: str) -> None:
        self.writer.write_line()
        self.writer.write_line(f"-- Table structure for {table}")
        self.writer.write_line(f"{self.dialect.drop_table_statement(table)};")
        self.writer.write_line(f"{create_sql};")

    def begin_data(self, table: str) -> None:
        self.writer.write_line()
        self.writer.write_line(f"-- Data for table {table}")

    def insert_batch(self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Value]]) -> None:
        if rows:
            self.writer.write_line(self.dialect.insert_values_sql(table, columns, rows))

    def end_data(self, table: str) -> None:
        pass


class DumpRunner:
    """Dumps selected tables of one database into a SQL file"""

    def __init__(self, engine: DbEngine, url: str, output: str,
                 options: TransferOptions, compress: bool = False):
        options.validate()
        self.engine = engine
        self.url = url
        self.output = output
        self.options = options
        self.compress = compress

    def run(self) -> List[TableReport]:
        logger.info(f"Starting dump of {redact_url(self.url)} to {self.output}")

        with self.engine.connect(self.url) as session:
            if self.options.consistent_snapshot:
                session.start_consistent_snapshot()

            dialect = session.dialect()
            with DumpWriter(self.output, self.compress) as writer:
                writer.write_header(dialect)
                pipeline = TransferPipeline(session, DumpFileSink(writer, dialect), self.options)
                reports = pipeline.run()
                writer.write_footer(dialect)

            session.commit()

        logger.info(f"Dump completed: {len(reports)} tables written to {self.output}")
        return reports

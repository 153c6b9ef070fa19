#!/usr/bin/env python3
"""
sqlferry CSV Import - Load a CSV File into a Table

Column types are inferred from the first rows of the file, the destination
table is created when it does not exist yet, and the rows are streamed into
it with the same batch-then-row-by-row insert strategy used by migrate.

Usage:
    importer = CsvImporter(create_engine("sqlite"), "sqlite:///app.db",
                           ImportOptions(input="people.csv", table="people"))
    report = importer.run()
"""

import logging
import re
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence

import pandas as pd
from tqdm import tqdm

from .errors import ConfigurationError, DumpFileError, InputError, RowInsertError
from .session import DbEngine, SqlType
from .transfer import MAX_REPORTED_FAILURES, Batch, RowFailure, SessionSink, flush_batch
from .values import (NULL, BoolValue, DateValue, FloatValue, IntValue, Row, StringValue,
                     TimestampValue, Value)
from ..utils.helpers import format_count, format_execution_time, redact_url

logger = logging.getLogger(__name__)

SAMPLE_ROWS = 100

_NULL_WORDS = ('', 'null', 'none')
_TRUE_WORDS = ('true', 'yes', '1')
_FALSE_WORDS = ('false', 'no', '0')

_INTEGER = re.compile(r'^[+-]?\d+$')
_FLOAT = re.compile(r'^[+-]?(\d+\.\d*|\.\d+)([eE][+-]?\d+)?$')
_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}$')

_TIMESTAMP_FORMATS = (
    '%Y-%m-%d %H:%M:%S.%f',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y-%m-%dT%H:%M:%S.%f',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M',
)

# Ties between vote counts go to the more general type
_TYPE_PRECEDENCE = (
    SqlType.TEXT, SqlType.FLOAT, SqlType.INTEGER,
    SqlType.BOOLEAN, SqlType.TIMESTAMP, SqlType.DATE,
)


def parse_column_mapping(mapping: str) -> Dict[str, str]:
    """Parse 'csv_col:db_col,csv_col2:db_col2' into a dict."""
    result = {}
    for pair in mapping.split(','):
        parts = pair.strip().split(':')
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            raise ConfigurationError(
                "Invalid column mapping format. Expected 'csv_col:db_col,csv_col2:db_col2'"
            )
        result[parts[0].strip()] = parts[1].strip()
    return result


def is_null_text(text: str) -> bool:
    return text.strip().lower() in _NULL_WORDS


def _is_date(text: str) -> bool:
    if not _DATE.match(text):
        return False
    try:
        datetime.strptime(text, '%Y-%m-%d')
    except ValueError:
        return False
    return True


def detect_value_type(text: str) -> Optional[SqlType]:
    """Classify one CSV cell; None for empty or null-like cells."""
    trimmed = text.strip()
    if trimmed.lower() in _NULL_WORDS:
        return None
    if trimmed in ('1', '0'):
        return SqlType.INTEGER
    if trimmed.lower() in ('true', 'false', 'yes', 'no'):
        return SqlType.BOOLEAN
    if trimmed.count(':') >= 2 and '-' in trimmed:
        return SqlType.TIMESTAMP
    if _is_date(trimmed):
        return SqlType.DATE
    if _FLOAT.match(trimmed):
        return SqlType.FLOAT
    if _INTEGER.match(trimmed):
        return SqlType.INTEGER
    return SqlType.TEXT


def choose_type(votes: Counter) -> SqlType:
    """Pick the column type with most votes; integers mixed with floats widen to float."""
    if not votes:
        return SqlType.TEXT
    if set(votes) == {SqlType.INTEGER, SqlType.FLOAT}:
        return SqlType.FLOAT
    best = max(votes.values())
    for sql_type in _TYPE_PRECEDENCE:
        if votes.get(sql_type) == best:
            return sql_type
    return SqlType.TEXT


def infer_column_types(frame: pd.DataFrame) -> List[SqlType]:
    """Infer one SqlType per column of a string-typed sample frame."""
    types = []
    for column in frame.columns:
        votes = Counter()
        for cell in frame[column]:
            if not isinstance(cell, str):
                continue
            detected = detect_value_type(cell)
            if detected is not None:
                votes[detected] += 1
        types.append(choose_type(votes))
    return types


def _parse_timestamp(text: str) -> TimestampValue:
    for fmt in _TIMESTAMP_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return TimestampValue(parsed.year, parsed.month, parsed.day,
                              parsed.hour, parsed.minute, parsed.second, parsed.microsecond)
    raise ValueError("invalid format")


def parse_value(text: str, sql_type: SqlType, column: str) -> Value:
    """Convert one CSV cell into a Value of the column's inferred type."""
    value = text.strip()
    if value.lower() in _NULL_WORDS:
        return NULL

    try:
        if sql_type == SqlType.INTEGER:
            if not _INTEGER.match(value):
                raise ValueError("not an integer")
            return IntValue(int(value))
        if sql_type == SqlType.FLOAT:
            return FloatValue(float(value))
        if sql_type == SqlType.BOOLEAN:
            lowered = value.lower()
            if lowered in _TRUE_WORDS:
                return BoolValue(True)
            if lowered in _FALSE_WORDS:
                return BoolValue(False)
            raise ValueError("not a boolean")
        if sql_type == SqlType.DATE:
            parsed = datetime.strptime(value, '%Y-%m-%d')
            return DateValue(parsed.year, parsed.month, parsed.day)
        if sql_type == SqlType.TIMESTAMP:
            return _parse_timestamp(value)
    except ValueError:
        raise InputError(
            f"Failed to parse '{value}' as {sql_type.value} for column '{column}'",
            {'column': column, 'value': value},
        ) from None
    return StringValue(value)


def parse_row(cells: Sequence[str], types: Sequence[SqlType], columns: Sequence[str]) -> Row:
    """Convert a CSV record; missing trailing cells become NULL."""
    if len(cells) > len(columns):
        raise InputError(f"Expected {len(columns)} fields, found {len(cells)}")
    padded = list(cells) + [''] * (len(columns) - len(cells))
    return [parse_value(cell, sql_type, column)
            for cell, sql_type, column in zip(padded, types, columns)]


@dataclass
class ImportOptions:
    input: str
    table: str
    batch_rows: int = 1000
    disable_fk_checks: bool = True
    skip_errors: bool = False
    column_mapping: Optional[Dict[str, str]] = None
    show_progress: bool = True
    encoding: str = 'utf-8'
    delimiter: str = ','


@dataclass
class ImportReport:
    source: str
    table: str
    rows_read: int = 0
    inserted: int = 0
    failures: List[RowFailure] = field(default_factory=list)
    created_table: bool = False
    columns: List[str] = field(default_factory=list)
    types: List[SqlType] = field(default_factory=list)
    elapsed: float = 0.0

    def format_summary(self) -> str:
        lines = [
            "=" * 60,
            "CSV Import Summary",
            "=" * 60,
            f"Source:        {self.source}",
            f"Table:         {self.table}",
            f"Rows read:     {format_count(self.rows_read)}",
            f"Inserted:      {format_count(self.inserted)} rows",
            f"Failed:        {format_count(len(self.failures))} rows",
            f"Elapsed:       {format_execution_time(self.elapsed)}",
            "=" * 60,
        ]
        if self.failures:
            lines.append("Failed rows:")
            for failure in self.failures[:MAX_REPORTED_FAILURES]:
                lines.append(f"  Line {failure.ordinal}: {failure.error}")
            if len(self.failures) > MAX_REPORTED_FAILURES:
                lines.append(f"  ... and {len(self.failures) - MAX_REPORTED_FAILURES} more errors")
        return "\n".join(lines)


class CsvImporter:
    """Imports one CSV file into one table"""

    def __init__(self, engine: DbEngine, url: str, options: ImportOptions):
        if options.batch_rows <= 0:
            raise ConfigurationError(f"Batch size must be positive, got {options.batch_rows}")
        self.engine = engine
        self.url = url
        self.options = options

    def read_sample(self) -> pd.DataFrame:
        try:
            return pd.read_csv(self.options.input, dtype=str, keep_default_na=False, index_col=False,
                               nrows=SAMPLE_ROWS, sep=self.options.delimiter,
                               encoding=self.options.encoding)
        except FileNotFoundError:
            raise DumpFileError(f"Input file not found: {self.options.input}", self.options.input) from None
        except pd.errors.EmptyDataError:
            raise InputError(f"CSV file has no columns: {self.options.input}") from None
        except pd.errors.ParserError as e:
            raise InputError(f"Failed to read CSV sample: {e}") from e

    def destination_columns(self, csv_columns: Sequence[str]) -> List[str]:
        mapping = self.options.column_mapping or {}
        unknown = set(mapping) - set(csv_columns)
        if unknown:
            logger.warning(f"Column mapping names columns not in the CSV header: {', '.join(sorted(unknown))}")
        return [mapping.get(column, column) for column in csv_columns]

    def run(self) -> ImportReport:
        start = time.time()
        options = self.options
        report = ImportReport(options.input, options.table)

        logger.info(f"Inferring column types from {options.input}")
        sample = self.read_sample()
        csv_columns = [str(column) for column in sample.columns]
        report.columns = self.destination_columns(csv_columns)
        report.types = infer_column_types(sample)
        logger.info("Inferred columns: " + ", ".join(
            f"{name} {sql_type.value}" for name, sql_type in zip(report.columns, report.types)))

        logger.info(f"Importing into {options.table} at {redact_url(self.url)}")
        with self.engine.connect(self.url) as session:
            if not session.table_exists(options.table):
                logger.info(f"Creating table '{options.table}'")
                session.create_table_from_columns(options.table, list(zip(report.columns, report.types)))
                report.created_table = True
            else:
                logger.info(f"Table '{options.table}' already exists, inserting data")

            if options.disable_fk_checks:
                session.disable_constraints()

            self._load_rows(SessionSink(session), report)

            if options.disable_fk_checks:
                session.enable_constraints()
            session.commit()

        report.elapsed = time.time() - start
        logger.info(f"Imported {format_count(report.inserted)} rows into {options.table}, "
                    f"{len(report.failures)} failed")
        return report

    def _record_failure(self, report: ImportReport, ordinal: int, error: str) -> None:
        report.failures.append(RowFailure(ordinal, error, ""))
        if not self.options.skip_errors:
            raise RowInsertError(self.options.table, ordinal, error)

    def _flush(self, sink: SessionSink, batch: Batch, report: ImportReport) -> None:
        outcome = flush_batch(sink, self.options.table, report.columns, batch,
                              stop_on_failure=not self.options.skip_errors)
        report.inserted += outcome.inserted
        report.failures.extend(outcome.failures)
        if outcome.failures and not self.options.skip_errors:
            failure = outcome.failures[0]
            raise RowInsertError(self.options.table, failure.ordinal, failure.describe())

    def read_chunks(self) -> Iterator[pd.DataFrame]:
        try:
            yield from pd.read_csv(self.options.input, dtype=str, keep_default_na=False, index_col=False,
                                   chunksize=self.options.batch_rows, sep=self.options.delimiter,
                                   encoding=self.options.encoding)
        except pd.errors.EmptyDataError:
            return
        except pd.errors.ParserError as e:
            raise InputError(f"Malformed CSV in {self.options.input}: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise DumpFileError(f"Failed to read {self.options.input}: {e}", self.options.input) from e

    def _load_rows(self, sink: SessionSink, report: ImportReport) -> None:
        options = self.options
        with tqdm(desc=options.table, unit="rows", disable=not options.show_progress,
                  leave=False) as progress:
            for chunk in self.read_chunks():
                batch: Batch = []
                for cells in chunk.itertuples(index=False, name=None):
                    report.rows_read += 1
                    # The header is line 1
                    line_number = report.rows_read + 1
                    cells = [cell if isinstance(cell, str) else '' for cell in cells]
                    try:
                        row = parse_row(cells, report.types, report.columns)
                    except InputError as e:
                        self._record_failure(report, line_number, e.message)
                        continue
                    batch.append((line_number, row))

                if batch:
                    self._flush(sink, batch, report)
                progress.update(len(chunk))

#!/usr/bin/env python3
"""
sqlferry Transfer Pipeline - Streamed, Batched Table Copy

Moves table structure and rows from a source session into a sink, one table
at a time. Shared by the dump command (sink writes SQL text to a file) and
the migrate command (sink executes against a destination session).

Rows are pulled lazily from the source and grouped into batches. Each batch
is flushed with one multi-row INSERT; when that is rejected, the batch is
replayed one row at a time so the defective rows can be identified by their
1-based position in the source scan.

Usage:
    pipeline = TransferPipeline(source_session, SessionSink(dest_session), options)
    reports = pipeline.run()
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from tqdm import tqdm

from .errors import BatchInsertError, ConfigurationError, RowInsertError, SchemaError, StatementError
from .session import DbSession
from .values import Row, Value
from ..utils.helpers import format_count, format_execution_time, summarize_record

logger = logging.getLogger(__name__)

MAX_REPORTED_FAILURES = 10

Batch = List[Tuple[int, Row]]


@dataclass
class TransferOptions:
    """Options shared by dump and migrate"""
    tables: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    schema_only: bool = False
    data_only: bool = False
    batch_rows: int = 1000
    consistent_snapshot: bool = False
    disable_fk_checks: bool = True
    skip_errors: bool = False
    show_progress: bool = True

    def validate(self) -> None:
        if self.schema_only and self.data_only:
            raise ConfigurationError("--schema-only and --data-only cannot be used together")
        if self.batch_rows <= 0:
            raise ConfigurationError(f"Batch size must be positive, got {self.batch_rows}")


@dataclass
class RowFailure:
    """A row that could not be inserted even on its own"""
    ordinal: int
    error: str
    record: str

    def describe(self) -> str:
        return f"Insert error: {self.error} | record: {self.record}"


@dataclass
class FlushOutcome:
    inserted: int = 0
    failures: List[RowFailure] = field(default_factory=list)
    used_fallback: bool = False


@dataclass
class TableReport:
    """Per-table result of a transfer"""
    table: str
    rows_transferred: int = 0
    failures: List[RowFailure] = field(default_factory=list)
    schema_written: bool = False
    elapsed: float = 0.0

    @property
    def failed_count(self) -> int:
        return len(self.failures)


class TransferSink(Protocol):
    """Destination of a transfer: a live session or a dump file"""

    def write_schema(self, table: str, create_sql: str) -> None:
        ...

    def begin_data(self, table: str) -> None:
        ...

    def insert_batch(self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Value]]) -> None:
        ...

    def end_data(self, table: str) -> None:
        ...


class SessionSink:
    """Sink that executes DDL and INSERTs against a destination session"""

    def __init__(self, session: DbSession):
        self.session = session

    def write_schema(self, table: str, create_sql: str) -> None:
        dialect = self.session.dialect()
        try:
            self.session.execute(dialect.drop_table_statement(table))
            self.session.execute(create_sql)
        except StatementError as e:
            raise SchemaError(f"Failed to create table '{table}' on destination: {e.message}", table) from e

    def begin_data(self, table: str) -> None:
        pass

    def insert_batch(self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Value]]) -> None:
        self.session.insert_batch(table, columns, rows)

    def end_data(self, table: str) -> None:
        pass


def _attempt_insert(sink: TransferSink, table: str, columns: Sequence[str],
                    rows: Sequence[Sequence[Value]]) -> Optional[str]:
    """Run one INSERT; return the rejection message, or None on success."""
    try:
        sink.insert_batch(table, columns, rows)
    except BatchInsertError as e:
        return e.message
    return None


def flush_batch(sink: TransferSink, table: str, columns: Sequence[str], batch: Batch,
                stop_on_failure: bool = True) -> FlushOutcome:
    """
    Insert a batch, degrading to row-by-row inserts when the bulk insert fails.

    Args:
        sink: Destination receiving the INSERT statements
        table: Destination table name
        columns: Column names in row order
        batch: (ordinal, row) pairs in source order
        stop_on_failure: Stop at the first row that fails on its own

    Returns:
        FlushOutcome with the inserted count and one RowFailure per rejected row
    """
    if not batch:
        return FlushOutcome()

    error = _attempt_insert(sink, table, columns, [row for _, row in batch])
    if error is None:
        return FlushOutcome(inserted=len(batch))

    logger.debug(f"Batch insert into {table} failed ({error}); retrying {len(batch)} rows individually")
    outcome = FlushOutcome(used_fallback=True)
    for ordinal, row in batch:
        row_error = _attempt_insert(sink, table, columns, [row])
        if row_error is None:
            outcome.inserted += 1
            continue
        outcome.failures.append(RowFailure(ordinal, row_error, summarize_record(row)))
        if stop_on_failure:
            break
    return outcome


def log_table_report(report: TableReport) -> None:
    """Log the row total and up to the first ten failures of a table."""
    logger.info(f"{report.table}: {format_count(report.rows_transferred)} rows transferred "
                f"in {format_execution_time(report.elapsed)}")
    if not report.failures:
        return
    logger.warning(f"{report.table}: {report.failed_count} rows failed")
    for failure in report.failures[:MAX_REPORTED_FAILURES]:
        logger.warning(f"  Row {failure.ordinal}: {failure.describe()}")
    if report.failed_count > MAX_REPORTED_FAILURES:
        logger.warning(f"  ... and {report.failed_count - MAX_REPORTED_FAILURES} more errors")


def format_summary(title: str, reports: Iterable[TableReport]) -> str:
    """Render a plain-text summary block for the end of a command."""
    reports = list(reports)
    total_rows = sum(r.rows_transferred for r in reports)
    total_failed = sum(r.failed_count for r in reports)
    lines = [
        "=" * 60,
        title,
        "=" * 60,
        f"Tables:        {len(reports)}",
        f"Rows:          {format_count(total_rows)}",
        f"Failed rows:   {format_count(total_failed)}",
        "-" * 60,
    ]
    for report in reports:
        status = f"{format_count(report.rows_transferred)} rows"
        if report.failures:
            status += f", {report.failed_count} failed"
        lines.append(f"  {report.table:<40} {status}")
    lines.append("=" * 60)
    return "\n".join(lines)


class TransferPipeline:
    """Copies structure and rows table by table from a source session into a sink"""

    def __init__(self, source: DbSession, sink: TransferSink, options: TransferOptions):
        options.validate()
        self.source = source
        self.sink = sink
        self.options = options

    def select_tables(self) -> List[str]:
        tables = self.source.list_tables(self.options.tables, self.options.exclude)
        missing = sorted(set(self.options.tables) - set(tables) - set(self.options.exclude))
        if missing:
            logger.warning(f"Requested tables not found: {', '.join(missing)}")
        return tables

    def run(self, tables: Optional[List[str]] = None) -> List[TableReport]:
        if tables is None:
            tables = self.select_tables()
        logger.info(f"Transferring {len(tables)} tables")
        return [self.transfer_table(table) for table in tables]

    def transfer_table(self, table: str) -> TableReport:
        start = time.time()
        report = TableReport(table)

        if not self.options.data_only:
            logger.info(f"Transferring structure of {table}")
            self.sink.write_schema(table, self.source.show_create_table(table))
            report.schema_written = True

        if not self.options.schema_only:
            self._transfer_rows(table, report)

        report.elapsed = time.time() - start
        log_table_report(report)
        return report

    def _transfer_rows(self, table: str, report: TableReport) -> None:
        estimate = self.source.approximate_row_count(table)
        columns, rows = self.source.stream_rows(table)
        self.sink.begin_data(table)

        batch: Batch = []
        progress = tqdm(total=estimate or None, desc=table, unit="rows",
                        disable=not self.options.show_progress, leave=False)
        try:
            for ordinal, row in enumerate(rows, start=1):
                batch.append((ordinal, row))
                if len(batch) >= self.options.batch_rows:
                    self._flush(table, columns, batch, report, progress)
                    batch = []
            if batch:
                self._flush(table, columns, batch, report, progress)
        finally:
            progress.close()
            close = getattr(rows, 'close', None)
            if close is not None:
                close()

        self.sink.end_data(table)

    def _flush(self, table: str, columns: Sequence[str], batch: Batch,
               report: TableReport, progress: tqdm) -> None:
        outcome = flush_batch(self.sink, table, columns, batch,
                              stop_on_failure=not self.options.skip_errors)
        report.rows_transferred += outcome.inserted
        report.failures.extend(outcome.failures)
        progress.update(len(batch))

        if outcome.failures and not self.options.skip_errors:
            failure = outcome.failures[0]
            raise RowInsertError(table, failure.ordinal, failure.describe())

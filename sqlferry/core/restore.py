#!/usr/bin/env python3
"""
sqlferry Restore - Replay a Dump File into a Database

The reader is line oriented, not a SQL tokenizer: a statement is every line
up to and including the first line whose trimmed text ends with ';'. Blank
lines and '--' comment lines between statements are skipped. This matches the
files written by the dump command, where every CREATE and INSERT is a single
logical line.
"""

import gzip
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Iterator, TextIO, Tuple

from .errors import DumpFileError, RestoreError, StatementError
from .session import DbEngine
from .dump import wants_gzip
from ..utils.helpers import format_count, format_execution_time, redact_url

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 100


def iter_statements(lines: Iterable[str]) -> Iterator[Tuple[str, int]]:
    """
    Group input lines into statements.

    Args:
        lines: Input lines, with or without trailing newlines

    Yields:
        (statement, line_number) where line_number is where the statement starts
    """
    buffer = []
    start_line = 0
    for line_number, line in enumerate(lines, start=1):
        line = line.rstrip('\r\n')
        trimmed = line.strip()

        if not buffer:
            if not trimmed or trimmed.startswith('--'):
                continue
            start_line = line_number

        buffer.append(line)
        if trimmed.endswith(';'):
            yield "\n".join(buffer).strip(), start_line
            buffer = []

    # A final statement without a terminating ';'
    if buffer:
        statement = "\n".join(buffer).strip()
        if statement:
            yield statement, start_line


@dataclass
class RestoreOptions:
    gzip: bool = False
    disable_fk_checks: bool = True


@dataclass
class RestoreReport:
    source: str
    statements: int = 0
    elapsed: float = 0.0


def open_dump(path: str, compress: bool = False) -> TextIO:
    try:
        if wants_gzip(path, compress):
            return gzip.open(path, 'rt', encoding='utf-8')
        return open(path, 'r', encoding='utf-8')
    except OSError as e:
        raise DumpFileError(f"Failed to open input file {path}: {e}", path) from e


class RestoreRunner:
    """Executes the statements of a dump file against one database"""

    def __init__(self, engine: DbEngine, url: str, input_path: str, options: RestoreOptions):
        self.engine = engine
        self.url = url
        self.input_path = input_path
        self.options = options

    def run(self) -> RestoreReport:
        logger.info(f"Restoring {self.input_path} into {redact_url(self.url)}")
        start = time.time()
        report = RestoreReport(self.input_path)

        with self.engine.connect(self.url) as session:
            if self.options.disable_fk_checks:
                logger.info("Disabling foreign key checks")
                session.disable_constraints()

            with open_dump(self.input_path, self.options.gzip) as handle:
                try:
                    for statement, line_number in iter_statements(handle):
                        try:
                            session.execute(statement)
                        except StatementError as e:
                            raise RestoreError(
                                f"Statement starting at line {line_number} failed: {e.message}", line_number
                            ) from e
                        report.statements += 1
                        if report.statements % PROGRESS_EVERY == 0:
                            logger.info(f"Executed {format_count(report.statements)} statements")
                except (OSError, EOFError, UnicodeDecodeError) as e:
                    raise DumpFileError(f"Failed to read {self.input_path}: {e}", self.input_path) from e

            if self.options.disable_fk_checks:
                logger.info("Re-enabling foreign key checks")
                session.enable_constraints()

            session.commit()

        report.elapsed = time.time() - start
        logger.info(f"Restore completed: {format_count(report.statements)} statements "
                    f"in {format_execution_time(report.elapsed)}")
        return report

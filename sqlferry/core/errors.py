#!/usr/bin/env python3
"""
sqlferry Error Hierarchy
Canonical exception classes for dump, restore, migrate and import commands.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    UNKNOWN = "UNKNOWN_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    SCHEMA_ERROR = "SCHEMA_ERROR"
    STREAM_ERROR = "STREAM_ERROR"
    BATCH_INSERT_ERROR = "BATCH_INSERT_ERROR"
    ROW_INSERT_ERROR = "ROW_INSERT_ERROR"
    STATEMENT_ERROR = "STATEMENT_ERROR"
    IO_ERROR = "IO_ERROR"
    RESTORE_ERROR = "RESTORE_ERROR"
    INPUT_ERROR = "INPUT_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    DIALECT_MISMATCH = "DIALECT_MISMATCH"


class SQLFerryError(Exception):
    """Base class for all sqlferry exceptions"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConnectError(SQLFerryError):
    """Raised when a session cannot be opened"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CONNECTION_ERROR, details)


class SchemaError(SQLFerryError):
    """Raised when table introspection fails"""
    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message, ErrorCode.SCHEMA_ERROR, {'table': table})
        self.table = table


class RowStreamError(SQLFerryError):
    """Raised when reading rows from the source fails mid-stream"""
    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message, ErrorCode.STREAM_ERROR, {'table': table})
        self.table = table


class BatchInsertError(SQLFerryError):
    """Raised by a session when an INSERT statement is rejected"""
    def __init__(self, message: str, table: Optional[str] = None, rows: int = 0):
        super().__init__(message, ErrorCode.BATCH_INSERT_ERROR, {'table': table, 'rows': rows})
        self.table = table
        self.rows = rows


class RowInsertError(SQLFerryError):
    """Raised when a single row cannot be inserted and errors are not skipped"""
    def __init__(self, table: str, ordinal: int, detail: str):
        super().__init__(
            f"Error at row {ordinal} of table '{table}': {detail}",
            ErrorCode.ROW_INSERT_ERROR,
            {'table': table, 'ordinal': ordinal},
        )
        self.table = table
        self.ordinal = ordinal
        self.detail = detail


class StatementError(SQLFerryError):
    """Raised when a raw SQL statement is rejected by the database"""
    def __init__(self, message: str, sql: Optional[str] = None):
        super().__init__(message, ErrorCode.STATEMENT_ERROR, {'sql': sql})
        self.sql = sql


class DumpFileError(SQLFerryError):
    """Raised when the dump file cannot be created, read or written"""
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, ErrorCode.IO_ERROR, {'path': path})
        self.path = path


class RestoreError(SQLFerryError):
    """Raised when a statement from a dump file fails to execute"""
    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message, ErrorCode.RESTORE_ERROR, {'line': line})
        self.line = line


class InputError(SQLFerryError):
    """Raised when an imported record cannot be converted"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.INPUT_ERROR, details)


class ConfigurationError(SQLFerryError):
    """Raised for invalid options or missing connection settings"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CONFIG_ERROR, details)


class DialectMismatchError(SQLFerryError):
    """Raised when source and destination speak different dialects"""
    def __init__(self, source: str, destination: str):
        super().__init__(
            f"Cross-dialect migration is not supported: source is '{source}', destination is '{destination}'",
            ErrorCode.DIALECT_MISMATCH,
            {'source': source, 'destination': destination},
        )
        self.source = source
        self.destination = destination

"""
Provider adapters. Importing this package registers every dialect and engine.
"""

from . import mysql_adapter, postgresql_adapter, sqlite_adapter  # noqa: F401

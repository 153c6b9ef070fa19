#!/usr/bin/env python3
"""
sqlferry Test Configuration - PyTest Configuration and Fixtures

Shared fixtures for the unit and integration suites: temporary directories,
file-backed SQLite databases populated with sample data, and a clean
configuration for every test.
"""

import os
import sqlite3
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlferry.config.settings import ConfigManager

SAMPLE_SCHEMA = """
    CREATE TABLE customers (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT UNIQUE,
        balance REAL,
        avatar BLOB
    );

    CREATE TABLE orders (
        id INTEGER PRIMARY KEY,
        customer_id INTEGER REFERENCES customers (id),
        product TEXT NOT NULL,
        quantity INTEGER DEFAULT 1,
        ordered_at TIMESTAMP
    );

    CREATE TABLE audit_log (
        id INTEGER PRIMARY KEY,
        message TEXT
    );
"""

CUSTOMERS = [
    (1, 'Alice Johnson', 'alice@example.com', 75.5, None),
    (2, "Bob O'Brien", 'bob@example.com', -12.25, b'\xff\xfe\x00\x01'),
    (3, 'Carol Davis', None, 0.0, b'plain text'),
]

ORDERS = [
    (1, 1, 'Laptop Pro', 1, '2024-01-31 12:30:00'),
    (2, 1, 'Mouse Wireless', 2, '2024-02-01 08:00:00'),
    (3, 2, 'Keyboard; Mechanical', 1, None),
    (4, 3, 'Monitor 4K', 3, '2024-03-15 17:45:10'),
]


def create_sample_database(path: str) -> str:
    """Create a SQLite file with the sample schema and rows; return its URL"""
    with sqlite3.connect(path) as conn:
        conn.executescript(SAMPLE_SCHEMA)
        conn.executemany("INSERT INTO customers VALUES (?, ?, ?, ?, ?)", CUSTOMERS)
        conn.executemany("INSERT INTO orders VALUES (?, ?, ?, ?, ?)", ORDERS)
        conn.commit()
    conn.close()
    return f"sqlite:///{path}"


def fetch_all(path: str, sql: str):
    conn = sqlite3.connect(path)
    try:
        return conn.execute(sql).fetchall()
    finally:
        conn.close()


@pytest.fixture
def temp_dir(tmp_path):
    """Per-test temporary directory as a string"""
    return str(tmp_path)


@pytest.fixture
def source_db(temp_dir):
    """File-backed SQLite database with sample data: (path, url)"""
    path = os.path.join(temp_dir, "source.db")
    return path, create_sample_database(path)


@pytest.fixture
def empty_db(temp_dir):
    """Empty SQLite database file: (path, url)"""
    path = os.path.join(temp_dir, "destination.db")
    sqlite3.connect(path).close()
    return path, f"sqlite:///{path}"


@pytest.fixture(autouse=True)
def clean_config(monkeypatch, tmp_path):
    """Isolate every test from SQLFERRY_* variables and .env files"""
    for key in list(os.environ):
        if key.startswith("SQLFERRY_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SQLFERRY_ENV_FILE", str(tmp_path / "missing.env"))
    ConfigManager.reset()
    yield
    ConfigManager.reset()


# Custom markers for test organization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that run whole commands against SQLite"
    )

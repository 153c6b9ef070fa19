#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
sqlferry - Dump, Restore, Migrate and Import for SQL Databases

Streams tables between MySQL, PostgreSQL and SQLite databases and SQL dump
files, batching inserts and isolating rows the destination rejects.

Version: 0.1.0
"""

__version__ = "0.1.0"

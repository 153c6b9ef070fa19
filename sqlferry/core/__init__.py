#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
sqlferry Core Package
Value model, dialect and session contracts, and the dump, restore, migrate
and import runners.
"""

"""
Board Archiver Test Suite.

This package contains:
- unit/: Unit tests (in-memory stores, mocked Postgres connections)
"""

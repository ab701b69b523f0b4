#!/usr/bin/env python3
"""
Test suite configuration and utilities.

All tests run without external services: Redis is mocked and repository
tests use an in-memory SQLite database.

    # Run all tests
    python -m pytest tests/ -v

    # Run only repository tests
    python -m pytest tests/ -v -m "db"

    # Using unittest
    python -m unittest discover tests -v
"""

import os

# In-memory SQLite by default; point at PostgreSQL to run repository tests there
TEST_DB_URL = os.environ.get("TEST_DATABASE_URL", "sqlite://")


def get_test_db_url() -> str:
    return TEST_DB_URL

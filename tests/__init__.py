"""
Test suite for branch-schema.

- Unit tests run against an in-memory fake of asyncpg (see conftest.py)
- Integration tests need a real PostgreSQL server via BRANCH_SCHEMA_TEST_DSN
"""

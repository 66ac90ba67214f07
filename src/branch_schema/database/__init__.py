"""
Database integration package for branch-schema.

This package provides:
- One-shot asyncpg connections scoped to a single target
- Connection string parsing and redaction
- Table, column and row-count introspection
"""

from .connection import ConnectionConfig, open_connection, redact_dsn
from .introspection import SchemaIntrospector, quote_ident, qualified_name

__all__ = [
    "ConnectionConfig",
    "open_connection",
    "redact_dsn",
    "SchemaIntrospector",
    "quote_ident",
    "qualified_name",
]

"""
Database schema introspection for branch-schema.

Thin wrappers over ``information_schema`` used by the reconciler to decide
whether a table, its columns, or any rows already exist.
"""

import logging
from typing import List

import asyncpg

from ..exceptions import DatabaseError


logger = logging.getLogger(__name__)


def quote_ident(name: str) -> str:
    """Quote a PostgreSQL identifier, preserving its case."""
    return '"' + name.replace('"', '""') + '"'


def qualified_name(schema: str, table: str) -> str:
    """Get the quoted, schema-qualified table name."""
    return f"{quote_ident(schema)}.{quote_ident(table)}"


class SchemaIntrospector:
    """Catalog lookups against a single open connection."""

    def __init__(self, connection: asyncpg.Connection):
        self.connection = connection

    async def table_exists(self, schema: str, table: str) -> bool:
        """Check if a table exists."""
        query = """
            SELECT EXISTS (
                SELECT 1 FROM information_schema.tables
                WHERE table_schema = $1 AND table_name = $2
            )
        """

        try:
            result = await self.connection.fetchval(query, schema, table)
            return bool(result)
        except Exception as e:
            logger.error(f"Error checking table existence for {schema}.{table}: {e}")
            raise DatabaseError(f"Failed to check table existence: {e}") from e

    async def get_column_names(self, schema: str, table: str) -> List[str]:
        """Get the column names of a table in ordinal order."""
        query = """
            SELECT column_name
            FROM information_schema.columns
            WHERE table_schema = $1 AND table_name = $2
            ORDER BY ordinal_position
        """

        try:
            rows = await self.connection.fetch(query, schema, table)
            return [row["column_name"] for row in rows]
        except Exception as e:
            logger.error(f"Error getting columns for {schema}.{table}: {e}")
            raise DatabaseError(f"Failed to get columns: {e}") from e

    async def count_rows(self, schema: str, table: str) -> int:
        """Count all rows in a table."""
        query = f"SELECT COUNT(*) FROM {qualified_name(schema, table)}"

        try:
            return await self.connection.fetchval(query) or 0
        except Exception as e:
            logger.error(f"Error counting rows in {schema}.{table}: {e}")
            raise DatabaseError(f"Failed to count rows: {e}") from e

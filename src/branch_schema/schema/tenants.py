"""
Tenant directory reader.

The master database keeps one row per tenant with that tenant's connection
string. The directory is owned by tenant provisioning; it is only read here.
"""

import logging
from typing import List, Optional

import asyncpg

from ..config import TenantDirectoryConfig
from ..database.introspection import quote_ident, qualified_name
from ..exceptions import TenantDirectoryError


logger = logging.getLogger(__name__)


class TenantDirectory:
    """Reads tenant connection strings from the master database."""

    def __init__(self, config: Optional[TenantDirectoryConfig] = None):
        self.config = config or TenantDirectoryConfig()

    @property
    def query(self) -> str:
        return (
            f"SELECT {quote_ident(self.config.column)} "
            f"FROM {qualified_name(self.config.schema_name, self.config.table)}"
        )

    async def get_connection_strings(self, connection: asyncpg.Connection) -> List[str]:
        """
        Get every usable tenant connection string, in result order.

        Null and empty values are skipped. Any error reading the directory is
        raised as TenantDirectoryError; a partial list is never returned.
        """
        try:
            records = await connection.fetch(self.query)
        except Exception as e:
            logger.error(
                f"Failed to read tenant directory {self.config.full_table_name}: {e}"
            )
            raise TenantDirectoryError(self.config.full_table_name, e) from e

        connection_strings = []
        for record in records:
            value = record[0]
            if value is None:
                continue
            value = str(value)
            if value:
                connection_strings.append(value)

        skipped = len(records) - len(connection_strings)
        if skipped:
            logger.warning(
                f"Skipped {skipped} tenant rows without a connection string "
                f"in {self.config.full_table_name}"
            )

        logger.info(
            f"Found {len(connection_strings)} tenant databases "
            f"in {self.config.full_table_name}"
        )
        return connection_strings

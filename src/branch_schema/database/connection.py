"""
Database connection handling for branch-schema.

Every reconciliation target gets its own short-lived asyncpg connection that is
closed as soon as the target has been processed. There is no pooling.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from urllib.parse import urlparse

import asyncpg
from pydantic import BaseModel, Field, field_validator

from ..exceptions import DatabaseConnectionError, DatabaseConfigurationError


logger = logging.getLogger(__name__)


class ConnectionConfig(BaseModel):
    """
    Connection target parsed from a connection string.

    Credentials and query options stay in the DSN handed to asyncpg.
    """

    host: str = Field(..., description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field(..., description="Database name")

    @field_validator('database')
    @classmethod
    def validate_database(cls, v):
        if not v or not v.strip():
            raise ValueError("Database name is required")
        return v

    @classmethod
    def from_url(cls, url: str) -> "ConnectionConfig":
        """Create configuration from database URL."""
        try:
            parsed = urlparse(url)
            port = parsed.port
        except ValueError as e:
            raise DatabaseConfigurationError(f"Invalid database URL: {e}") from e

        if parsed.scheme not in ("postgresql", "postgres"):
            raise DatabaseConfigurationError(f"Invalid database URL scheme: {parsed.scheme}")

        if not parsed.path or parsed.path == "/":
            raise DatabaseConfigurationError("Database name is required")

        return cls(
            host=parsed.hostname or "localhost",
            port=port or 5432,
            database=parsed.path.lstrip("/"),
        )

    @property
    def display_name(self) -> str:
        """Connection identifier safe for logs (no credentials)."""
        return f"{self.host}:{self.port}/{self.database}"


def redact_dsn(url: str) -> str:
    """Render a connection string as host:port/database for logging."""
    try:
        return ConnectionConfig.from_url(url).display_name
    except Exception:
        return "<invalid connection string>"


@asynccontextmanager
async def open_connection(
    dsn: str,
    connect_timeout: float = 30.0,
    command_timeout: Optional[float] = 60.0,
) -> AsyncIterator[asyncpg.Connection]:
    """
    Open a single connection for the duration of the block.

    The connection is closed unconditionally on exit, including when the
    block raises.
    """
    config = ConnectionConfig.from_url(dsn)

    try:
        logger.debug(f"Opening connection to {config.display_name}")
        connection = await asyncpg.connect(
            dsn,
            timeout=connect_timeout,
            command_timeout=command_timeout,
            server_settings={"application_name": "branch-schema"},
        )
    except Exception as e:
        logger.error(f"Failed to connect to {config.display_name}: {e}")
        raise DatabaseConnectionError(
            f"Failed to connect to {config.display_name}: {e}"
        ) from e

    try:
        yield connection
    finally:
        await connection.close()
        logger.debug(f"Closed connection to {config.display_name}")


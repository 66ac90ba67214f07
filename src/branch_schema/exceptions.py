"""
Exception classes for branch-schema.
"""

from typing import Any, Dict, Optional


class BranchSchemaError(Exception):
    """Base exception for all branch-schema errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(BranchSchemaError):
    """Raised when there's an error in configuration."""

    pass


class DatabaseError(BranchSchemaError):
    """Raised when there's an error with database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when a database connection cannot be opened."""

    pass


class DatabaseConfigurationError(DatabaseError):
    """Raised when a connection string is malformed."""

    pass


class SchemaError(DatabaseError):
    """Raised when there's an error with database schema operations."""

    pass


class TenantDirectoryError(DatabaseError):
    """Raised when the tenant directory cannot be read from the master database."""

    def __init__(
        self,
        table_name: str,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            f"Failed to read tenant directory '{table_name}'",
            {"table": table_name},
            cause,
        )
        self.table_name = table_name


class ReconciliationError(BranchSchemaError):
    """Raised when a single target cannot be reconciled."""

    def __init__(
        self,
        target: str,
        reason: str,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(f"Reconciliation failed for {target}: {reason}", cause=cause)
        self.target = target
        self.reason = reason

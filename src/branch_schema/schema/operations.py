"""
Schema change records and their executor.

A SchemaChange is created for every statement the reconciler decides to issue.
In dry-run mode the change is recorded with its SQL but never sent.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

import asyncpg

from ..exceptions import SchemaError


logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    """Types of schema changes."""

    CREATE_TABLE = "create_table"
    ADD_COLUMN = "add_column"
    SEED_ROWS = "seed_rows"


class OperationMode(str, Enum):
    """Schema operation modes."""

    APPLY = "apply"        # Execute every change
    DRY_RUN = "dry_run"    # Record SQL but don't execute


@dataclass
class SchemaChange:
    """Represents a schema or seed-data change."""

    change_type: ChangeType
    schema: str
    table: str
    description: str
    sql: str
    target_object: Optional[str] = None  # Column name for ADD_COLUMN

    # Execution results
    executed: bool = False
    execution_time_ms: Optional[float] = None
    rows_affected: int = 0
    error: Optional[str] = None

    @property
    def full_table_name(self) -> str:
        """Get fully qualified table name."""
        return f"{self.schema}.{self.table}"

    @property
    def has_error(self) -> bool:
        return self.error is not None


class SchemaOperations:
    """Executes SchemaChange records on one connection."""

    def __init__(
        self,
        connection: asyncpg.Connection,
        operation_mode: OperationMode = OperationMode.APPLY,
    ):
        self.connection = connection
        self.operation_mode = operation_mode

    @property
    def is_dry_run(self) -> bool:
        return self.operation_mode == OperationMode.DRY_RUN

    async def execute(self, change: SchemaChange) -> SchemaChange:
        """Execute a single-statement change."""
        if self.is_dry_run:
            logger.info(f"[dry run] {change.description}: {change.sql}")
            return change

        start_time = time.perf_counter()
        try:
            await self.connection.execute(change.sql)
        except Exception as e:
            change.error = str(e)
            change.execution_time_ms = _elapsed_ms(start_time)
            logger.error(f"{change.description} failed: {e}")
            raise SchemaError(
                f"{change.description} failed",
                {"table": change.full_table_name},
                e,
            ) from e

        change.executed = True
        change.execution_time_ms = _elapsed_ms(start_time)
        logger.info(f"{change.description} ({change.execution_time_ms:.1f}ms)")
        return change

    async def execute_many(
        self, change: SchemaChange, rows: Sequence[Sequence[Any]]
    ) -> SchemaChange:
        """Execute a parameterised statement once per row."""
        if self.is_dry_run:
            logger.info(
                f"[dry run] {change.description}: {change.sql} x {len(rows)} rows"
            )
            return change

        start_time = time.perf_counter()
        try:
            await self.connection.executemany(change.sql, rows)
        except Exception as e:
            change.error = str(e)
            change.execution_time_ms = _elapsed_ms(start_time)
            logger.error(f"{change.description} failed: {e}")
            raise SchemaError(
                f"{change.description} failed",
                {"table": change.full_table_name},
                e,
            ) from e

        change.executed = True
        change.rows_affected = len(rows)
        change.execution_time_ms = _elapsed_ms(start_time)
        logger.info(f"{change.description}: {change.rows_affected} rows")
        return change


def _elapsed_ms(start_time: float) -> float:
    return (time.perf_counter() - start_time) * 1000

"""
Branches table reconciliation for master and tenant databases.

For each target database the reconciler makes sure the Branches table exists,
adds any missing expected columns, and seeds default rows into an empty table.
Targets are processed one at a time, each on its own connection.
"""

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

import asyncpg

from ..config import BranchSchemaSettings, TenantDirectoryConfig
from ..database.connection import open_connection, redact_dsn
from ..database.introspection import SchemaIntrospector
from ..exceptions import ReconciliationError
from .branches import (
    EXPECTED_COLUMNS,
    SEED_ROWS,
    TABLE_NAME,
    add_column_sql,
    advisory_lock_key,
    create_table_sql,
    insert_seed_sql,
)
from .operations import ChangeType, OperationMode, SchemaChange, SchemaOperations
from .tenants import TenantDirectory


logger = logging.getLogger(__name__)


class ReconciliationStatus(str, Enum):
    """Status of reconciliation operations."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


class TargetRole(str, Enum):
    """Which kind of database a target is."""

    MASTER = "master"
    TENANT = "tenant"


@dataclass
class TargetResult:
    """Outcome of reconciling one database."""

    target: str
    role: TargetRole
    status: ReconciliationStatus = ReconciliationStatus.SUCCESS
    changes: List[SchemaChange] = field(default_factory=list)
    error: Optional[str] = None
    execution_time_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        """Whether the target was processed without error, dry runs included."""
        return self.status in (ReconciliationStatus.SUCCESS, ReconciliationStatus.SKIPPED)

    @property
    def applied_changes(self) -> int:
        """Count of changes actually executed against the database."""
        return sum(1 for c in self.changes if c.executed)

    @property
    def pending_changes(self) -> int:
        """Count of changes recorded but not executed (dry run)."""
        return sum(1 for c in self.changes if not c.executed and not c.has_error)

    def mark_failed(self, error: Exception) -> None:
        self.status = ReconciliationStatus.FAILED
        self.error = str(error)


@dataclass
class ReconciliationReport:
    """Outcome of a master or tenant reconciliation run."""

    results: List[TargetResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.status == ReconciliationStatus.SUCCESS)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status == ReconciliationStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == ReconciliationStatus.FAILED)

    @property
    def status(self) -> ReconciliationStatus:
        if self.failed == 0:
            return ReconciliationStatus.SUCCESS
        if self.failed == len(self.results):
            return ReconciliationStatus.FAILED
        return ReconciliationStatus.PARTIAL

    @property
    def failed_targets(self) -> List[str]:
        return [r.target for r in self.results if r.status == ReconciliationStatus.FAILED]

    @property
    def total_changes(self) -> int:
        return sum(r.applied_changes for r in self.results)

    def summary(self) -> Dict[str, Any]:
        """Get summary of reconciliation results."""
        total = len(self.results)
        return {
            "status": self.status.value,
            "total_targets": total,
            "successful": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "success_rate": (total - self.failed) / total if total > 0 else 1.0,
            "total_changes": self.total_changes,
            "failed_targets": self.failed_targets,
        }


class BranchesReconciler:
    """
    Brings the Branches table of one or more databases to the expected shape.

    Schema evolution is additive only: a missing table is created, missing
    expected columns are added, and an empty table is seeded. Nothing is
    dropped, renamed or retyped.

    Existence checks and the statements that follow them are not atomic.
    Two concurrent runs against the same database can race; enable
    ``advisory_lock`` to serialise them through ``pg_advisory_lock``.
    """

    def __init__(
        self,
        master_connection_string: str,
        schema: str = "public",
        tenant_directory: Optional[TenantDirectoryConfig] = None,
        operation_mode: OperationMode = OperationMode.APPLY,
        advisory_lock: bool = False,
        connect_timeout: float = 30.0,
        command_timeout: float = 60.0,
    ):
        self.master_connection_string = master_connection_string
        self.schema = schema
        self.tenant_directory = TenantDirectory(tenant_directory)
        self.operation_mode = operation_mode
        self.advisory_lock = advisory_lock
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout

    @classmethod
    def from_settings(
        cls, master_connection_string: str, settings: BranchSchemaSettings
    ) -> "BranchesReconciler":
        """Create a reconciler from loaded settings."""
        reconciliation = settings.reconciliation
        return cls(
            master_connection_string,
            schema=reconciliation.schema_name,
            tenant_directory=settings.tenant_directory,
            operation_mode=OperationMode(reconciliation.mode),
            advisory_lock=reconciliation.advisory_lock,
            connect_timeout=reconciliation.connect_timeout,
            command_timeout=reconciliation.command_timeout,
        )

    @property
    def is_dry_run(self) -> bool:
        return self.operation_mode == OperationMode.DRY_RUN

    async def reconcile_master(self) -> ReconciliationReport:
        """
        Reconcile the master database.

        Errors are logged and recorded in the report; this never raises.
        """
        report = ReconciliationReport()
        result = TargetResult(
            target=redact_dsn(self.master_connection_string),
            role=TargetRole.MASTER,
        )

        try:
            await self._reconcile_into(self.master_connection_string, result)
            logger.info(f"Branches table processed (master database {result.target})")
        except Exception as e:
            result.mark_failed(e)
            logger.error(f"Error processing master database {result.target}: {e}")

        report.results.append(result)
        return report

    async def reconcile_tenants(self) -> ReconciliationReport:
        """
        Reconcile every tenant database listed in the master's directory.

        A failing tenant is logged and recorded, and the remaining tenants
        are still processed. Failure to read the directory itself propagates.
        """
        async with self._connect(self.master_connection_string) as connection:
            connection_strings = await self.tenant_directory.get_connection_strings(
                connection
            )

        report = ReconciliationReport()
        for connection_string in connection_strings:
            result = TargetResult(
                target=redact_dsn(connection_string),
                role=TargetRole.TENANT,
            )

            try:
                await self._reconcile_into(connection_string, result)
                logger.info(f"Branches table processed (tenant database {result.target})")
            except Exception as e:
                result.mark_failed(e)
                logger.error(f"[{result.target}] Error processing tenant database: {e}")

            report.results.append(result)

        logger.info(
            f"Tenant reconciliation finished: {report.succeeded} succeeded, "
            f"{report.skipped} skipped, {report.failed} failed"
        )
        return report

    async def reconcile_connection(
        self,
        connection_string: str,
        role: TargetRole = TargetRole.MASTER,
    ) -> TargetResult:
        """Reconcile a single database, raising ReconciliationError on failure."""
        result = TargetResult(target=redact_dsn(connection_string), role=role)
        try:
            await self._reconcile_into(connection_string, result)
        except Exception as e:
            raise ReconciliationError(result.target, str(e), e) from e
        return result

    async def ensure_table(self, connection: asyncpg.Connection) -> Optional[SchemaChange]:
        """Create the Branches table if it does not exist."""
        introspector = SchemaIntrospector(connection)
        if await introspector.table_exists(self.schema, TABLE_NAME):
            logger.debug(f"Table {self.schema}.{TABLE_NAME} already exists")
            return None

        change = SchemaChange(
            change_type=ChangeType.CREATE_TABLE,
            schema=self.schema,
            table=TABLE_NAME,
            description=f"Create table {self.schema}.{TABLE_NAME}",
            sql=create_table_sql(self.schema),
        )
        return await SchemaOperations(connection, self.operation_mode).execute(change)

    async def ensure_columns(
        self,
        connection: asyncpg.Connection,
        table_created: bool = False,
    ) -> List[SchemaChange]:
        """Add every expected column that is missing from the table."""
        if table_created and self.is_dry_run:
            # The pending CREATE TABLE already carries every column
            return []

        existing = await SchemaIntrospector(connection).get_column_names(
            self.schema, TABLE_NAME
        )
        operations = SchemaOperations(connection, self.operation_mode)
        changes = []

        for column, definition in EXPECTED_COLUMNS.items():
            if column in existing:
                continue

            change = SchemaChange(
                change_type=ChangeType.ADD_COLUMN,
                schema=self.schema,
                table=TABLE_NAME,
                description=f"Add column {column} ({definition}) to {self.schema}.{TABLE_NAME}",
                sql=add_column_sql(self.schema, column, definition),
                target_object=column,
            )
            changes.append(await operations.execute(change))

        return changes

    async def ensure_seed_rows(
        self,
        connection: asyncpg.Connection,
        table_created: bool = False,
    ) -> Optional[SchemaChange]:
        """Insert the default branches when the table is empty."""
        if table_created and self.is_dry_run:
            row_count = 0
        else:
            row_count = await SchemaIntrospector(connection).count_rows(
                self.schema, TABLE_NAME
            )

        if row_count > 0:
            logger.debug(
                f"Table {self.schema}.{TABLE_NAME} has {row_count} rows, not seeding"
            )
            return None

        change = SchemaChange(
            change_type=ChangeType.SEED_ROWS,
            schema=self.schema,
            table=TABLE_NAME,
            description=f"Insert default branches into {self.schema}.{TABLE_NAME}",
            sql=insert_seed_sql(self.schema),
        )
        return await SchemaOperations(connection, self.operation_mode).execute_many(
            change, SEED_ROWS
        )

    async def _reconcile_into(self, connection_string: str, result: TargetResult) -> None:
        """Run the create/alter/seed sequence, recording changes as they happen."""
        start_time = time.perf_counter()

        try:
            async with self._connect(connection_string) as connection:
                async with self._locked(connection):
                    created = await self.ensure_table(connection)
                    if created:
                        result.changes.append(created)

                    result.changes.extend(
                        await self.ensure_columns(connection, table_created=created is not None)
                    )

                    seeded = await self.ensure_seed_rows(
                        connection, table_created=created is not None
                    )
                    if seeded:
                        result.changes.append(seeded)

            if self.is_dry_run and result.applied_changes == 0:
                result.status = ReconciliationStatus.SKIPPED
        finally:
            result.execution_time_ms = (time.perf_counter() - start_time) * 1000

    def _connect(self, connection_string: str):
        return open_connection(
            connection_string,
            connect_timeout=self.connect_timeout,
            command_timeout=self.command_timeout,
        )

    @asynccontextmanager
    async def _locked(self, connection: asyncpg.Connection) -> AsyncIterator[None]:
        """Hold a session advisory lock for the block when enabled."""
        if not self.advisory_lock:
            yield
            return

        key = advisory_lock_key(self.schema)
        await connection.execute("SELECT pg_advisory_lock(hashtext($1))", key)
        try:
            yield
        finally:
            try:
                await connection.execute("SELECT pg_advisory_unlock(hashtext($1))", key)
            except Exception as e:
                # The lock is released when the session closes
                logger.warning(f"Failed to release advisory lock {key}: {e}")

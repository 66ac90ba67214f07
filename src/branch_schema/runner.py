"""
Entry point for running Branches reconciliation from an application.

``run`` resolves the master connection string, builds the reconciler and runs
either the master or the tenant pass. It never raises: every failure is logged
and reported as a ``None`` result.
"""

import asyncio
import logging
from typing import Optional

from .config import BranchSchemaSettings
from .schema.operations import OperationMode
from .schema.reconciler import BranchesReconciler, ReconciliationReport


logger = logging.getLogger(__name__)


def resolve_connection_string(
    settings: BranchSchemaSettings,
    connection_string: Optional[str] = None,
) -> str:
    """Pick the explicit connection string, else the configured default one."""
    if connection_string and connection_string.strip():
        return connection_string
    return settings.require_connection_string(settings.default_connection_name)


async def run_async(
    settings: BranchSchemaSettings,
    for_master: bool,
    connection_string: Optional[str] = None,
    operation_mode: Optional[OperationMode] = None,
) -> Optional[ReconciliationReport]:
    """Coroutine form of ``run``."""
    try:
        master_connection_string = resolve_connection_string(settings, connection_string)

        reconciler = BranchesReconciler.from_settings(master_connection_string, settings)
        if operation_mode is not None:
            reconciler.operation_mode = operation_mode

        if for_master:
            return await reconciler.reconcile_master()
        return await reconciler.reconcile_tenants()

    except Exception:
        logger.exception("Error while processing Branches table")
        return None


def run(
    settings: BranchSchemaSettings,
    for_master: bool,
    connection_string: Optional[str] = None,
    operation_mode: Optional[OperationMode] = None,
) -> Optional[ReconciliationReport]:
    """
    Reconcile the Branches table in the master or in every tenant database.

    Args:
        settings: Loaded settings, used for the default connection string,
            the tenant directory location and reconciliation options
        for_master: Reconcile the master database when True, the tenant
            databases listed in it when False
        connection_string: Master connection string overriding the configured one
        operation_mode: Overrides the configured reconciliation mode

    Returns:
        The reconciliation report, or None if the run could not complete
    """
    coroutine = run_async(settings, for_master, connection_string, operation_mode)
    try:
        return asyncio.run(coroutine)
    except RuntimeError as e:
        # asyncio.run refuses to start inside a running event loop
        coroutine.close()
        logger.error(f"Cannot run Branches reconciliation: {e}; use run_async instead")
        return None

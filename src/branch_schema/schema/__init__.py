"""
Schema management package for branch-schema.

This package provides:
- The fixed Branches table definition and its seed rows
- Schema change records with apply and dry-run execution
- The tenant directory reader
- Master and tenant reconciliation
"""

from .reconciler import (
    BranchesReconciler,
    ReconciliationReport,
    ReconciliationStatus,
    TargetResult,
    TargetRole,
)
from .operations import SchemaOperations, SchemaChange, ChangeType, OperationMode
from .tenants import TenantDirectory

__all__ = [
    "BranchesReconciler",
    "ReconciliationReport",
    "ReconciliationStatus",
    "TargetResult",
    "TargetRole",
    "SchemaOperations",
    "SchemaChange",
    "ChangeType",
    "OperationMode",
    "TenantDirectory",
]

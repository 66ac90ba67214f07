"""
branch-schema: Branches table bootstrap for master and tenant PostgreSQL databases.

Creates the Branches table where it is missing, adds missing expected columns,
and seeds default rows into empty tables, for a master database and for every
tenant database listed in it.
"""

__version__ = "0.1.0"

from .config import BranchSchemaSettings
from .exceptions import BranchSchemaError, ConfigurationError, DatabaseError
from .runner import run, run_async
from .schema.reconciler import BranchesReconciler, ReconciliationReport

__all__ = [
    "__version__",
    "BranchSchemaSettings",
    "BranchSchemaError",
    "ConfigurationError",
    "DatabaseError",
    "BranchesReconciler",
    "ReconciliationReport",
    "run",
    "run_async",
]

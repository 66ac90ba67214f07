"""
Definition of the Branches table.

The shape, the additive column set and the seed rows are fixed; the only
variable is the schema the table lives in.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Tuple

from ..database.introspection import quote_ident, qualified_name


TABLE_NAME = "Branches"


@dataclass(frozen=True)
class ColumnDefinition:
    """A column of the Branches table as issued in CREATE TABLE."""

    name: str
    definition: str

    @property
    def ddl(self) -> str:
        return f"{quote_ident(self.name)} {self.definition}"


COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("Id", "INTEGER GENERATED BY DEFAULT AS IDENTITY NOT NULL PRIMARY KEY"),
    ColumnDefinition("BranchName", "VARCHAR(100) NULL"),
    ColumnDefinition("Location", "VARCHAR(255) NULL"),
    ColumnDefinition("ContactNumber", "VARCHAR(20) NULL"),
    ColumnDefinition("EstablishedDate", "DATE NULL"),
    ColumnDefinition("IsActive", "BOOLEAN NULL DEFAULT TRUE"),
]

# Columns added to pre-existing tables when missing. Additive only: nothing
# here is ever dropped, renamed or retyped.
EXPECTED_COLUMNS: Dict[str, str] = {
    "IsActive": "BOOLEAN NULL DEFAULT TRUE",
}

SEED_COLUMNS: Tuple[str, ...] = (
    "BranchName",
    "Location",
    "ContactNumber",
    "EstablishedDate",
    "IsActive",
)

SEED_ROWS: List[Tuple[str, str, str, date, bool]] = [
    ("Head Office", "Initial City A", "123-456-7890", date(2020, 1, 1), True),
    ("Branch #2", "Initial City B", "987-654-3210", date(2022, 5, 15), True),
]


def create_table_sql(schema: str) -> str:
    columns = ",\n    ".join(column.ddl for column in COLUMNS)
    return f"CREATE TABLE {qualified_name(schema, TABLE_NAME)} (\n    {columns}\n)"


def add_column_sql(schema: str, column: str, definition: str) -> str:
    return (
        f"ALTER TABLE {qualified_name(schema, TABLE_NAME)} "
        f"ADD COLUMN {quote_ident(column)} {definition}"
    )


def insert_seed_sql(schema: str) -> str:
    columns = ", ".join(quote_ident(name) for name in SEED_COLUMNS)
    placeholders = ", ".join(f"${i}" for i in range(1, len(SEED_COLUMNS) + 1))
    return (
        f"INSERT INTO {qualified_name(schema, TABLE_NAME)} ({columns}) "
        f"VALUES ({placeholders})"
    )


def advisory_lock_key(schema: str) -> str:
    """Text key hashed by PostgreSQL into the advisory lock id."""
    return f"branch_schema:{schema}.{TABLE_NAME}"

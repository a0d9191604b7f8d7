"""
Schema Reconciler

Diffs the configured field list against the columns PostgreSQL reports for the
table and produces the minimal list of ADD / MODIFY / DROP statements.

Columns are always matched by name, so the order of the configured fields
does not have to follow the table's column order.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Union

from models import FieldSpec
from .types import TypeMapping, resolve_type, column_definition


@dataclass(frozen=True)
class ColumnMeta:
    """One live column as reported by information_schema."""
    name: str
    data_type: str
    max_length: Optional[int] = None


@dataclass(frozen=True)
class AddColumn:
    name: str
    storage_type: str
    length: Optional[int] = None


@dataclass(frozen=True)
class ModifyColumn:
    name: str
    storage_type: str
    length: Optional[int] = None


@dataclass(frozen=True)
class DropColumn:
    name: str


MigrationStatement = Union[AddColumn, ModifyColumn, DropColumn]


def _matches(mapping: TypeMapping, column: ColumnMeta) -> bool:
    return (
        mapping.reported_type.lower() == (column.data_type or "").lower()
        and mapping.length == column.max_length
    )


def compute_migration(
    desired_fields: list[FieldSpec],
    actual_columns: list[ColumnMeta],
    preserved_names: Iterable[str],
    timestamp_column: str,
) -> list[MigrationStatement]:
    """
    Compute the statements that bring the live table in line with the fields.

    Adds/modifies come first, in configured field order; drops follow in the
    reported column order. An empty list means the table already matches.

    Raises:
        TypeResolutionError: if any field type cannot be resolved (no
            statements are returned in that case)
    """
    preserved = set(preserved_names)
    columns_by_name = {column.name: column for column in actual_columns}
    desired_names = {field.name for field in desired_fields}

    statements: list[MigrationStatement] = []
    for field in desired_fields:
        mapping = resolve_type(field.type)
        column = columns_by_name.get(field.name)
        if column is None:
            statements.append(AddColumn(field.name, mapping.storage_type, mapping.length))
        elif not _matches(mapping, column):
            statements.append(ModifyColumn(field.name, mapping.storage_type, mapping.length))

    for column in actual_columns:
        if column.name in preserved or column.name == timestamp_column:
            continue
        if column.name not in desired_names:
            statements.append(DropColumn(column.name))

    return statements


def _column_type(statement: Union[AddColumn, ModifyColumn]) -> str:
    if statement.length:
        return f"{statement.storage_type}({statement.length})"
    return statement.storage_type


def render_statement(statement: MigrationStatement, table: str) -> str:
    """Render one migration statement as PostgreSQL DDL."""
    if isinstance(statement, AddColumn):
        return f"ALTER TABLE {table} ADD COLUMN {statement.name} {_column_type(statement)}"
    if isinstance(statement, ModifyColumn):
        column_type = _column_type(statement)
        return (
            f"ALTER TABLE {table} ALTER COLUMN {statement.name} TYPE {column_type} "
            f"USING {statement.name}::{column_type}"
        )
    if isinstance(statement, DropColumn):
        return f"ALTER TABLE {table} DROP COLUMN {statement.name}"
    raise TypeError(f"Unknown migration statement: {statement!r}")


def render_migration(statements: list[MigrationStatement], table: str) -> list[str]:
    return [render_statement(statement, table) for statement in statements]


def create_table_sql(fields: list[FieldSpec], table: str, timestamp_column: str) -> str:
    """
    CREATE TABLE for a fresh table: serial id, one column per field, and the
    timestamp column defaulting to the insert time.
    """
    columns = ["id SERIAL PRIMARY KEY"]
    for field in fields:
        columns.append(f"{field.name} {column_definition(resolve_type(field.type))}")
    columns.append(f"{timestamp_column} TIMESTAMP DEFAULT CURRENT_TIMESTAMP")
    return f"CREATE TABLE {table} ({', '.join(columns)})"

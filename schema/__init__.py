"""
Table schema management

Resolves declarative field types to PostgreSQL column types, diffs the desired
field list against the live table and applies the resulting ALTER statements.
"""

from .types import TypeMapping, resolve_type, column_definition, get_type_names
from .reconciler import (
    ColumnMeta, AddColumn, ModifyColumn, DropColumn,
    compute_migration, render_statement, render_migration, create_table_sql,
)
from .migrator import SchemaMigrator

__all__ = [
    'TypeMapping',
    'resolve_type',
    'column_definition',
    'get_type_names',
    'ColumnMeta',
    'AddColumn',
    'ModifyColumn',
    'DropColumn',
    'compute_migration',
    'render_statement',
    'render_migration',
    'create_table_sql',
    'SchemaMigrator',
]

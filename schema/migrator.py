"""
Schema Migrator

Brings the managed table in line with the configured fields at startup:
creates it when missing, otherwise applies the statements computed by the
reconciler inside a single transaction.
"""

import logging

from errors import SchemaMigrationError
from models import FieldSpec, PRESERVED_FIELD_NAMES
from .reconciler import ColumnMeta, compute_migration, render_migration, create_table_sql

logger = logging.getLogger(__name__)


TABLE_EXISTS_QUERY = """
    SELECT EXISTS (
        SELECT 1
        FROM information_schema.tables
        WHERE table_schema = current_schema()
        AND table_name = $1
    )
"""

# numeric columns report their precision instead of a character length
TABLE_COLUMNS_QUERY = """
    SELECT
        column_name,
        data_type,
        COALESCE(
            character_maximum_length,
            CASE WHEN data_type = 'numeric' THEN numeric_precision END
        ) AS max_length
    FROM information_schema.columns
    WHERE table_schema = current_schema()
    AND table_name = $1
    ORDER BY ordinal_position
"""


class SchemaMigrator:
    """
    Reconciles one table against the configured field list.

    Usage:
        migrator = SchemaMigrator(db, table="data", timestamp_column="date")
        applied = await migrator.reconcile(fields)
    """

    def __init__(self, db, table: str, timestamp_column: str, allow_alter: bool = True):
        self.db = db
        self.table = table
        self.timestamp_column = timestamp_column
        self.allow_alter = allow_alter

    async def table_exists(self) -> bool:
        return bool(await self.db.fetchval(TABLE_EXISTS_QUERY, self.table))

    async def get_columns(self) -> list[ColumnMeta]:
        """Live columns of the table, in ordinal order"""
        rows = await self.db.fetch(TABLE_COLUMNS_QUERY, self.table)
        return [
            ColumnMeta(
                name=row['column_name'],
                data_type=row['data_type'],
                max_length=row['max_length'],
            )
            for row in rows
        ]

    async def plan(self, fields: list[FieldSpec]) -> list[str]:
        """SQL that reconcile() would apply, without applying it"""
        if not await self.table_exists():
            return [create_table_sql(fields, self.table, self.timestamp_column)]
        statements = compute_migration(
            fields,
            await self.get_columns(),
            PRESERVED_FIELD_NAMES,
            self.timestamp_column,
        )
        return render_migration(statements, self.table)

    async def reconcile(self, fields: list[FieldSpec]) -> list[str]:
        """
        Create or alter the table so it matches `fields`.

        Returns:
            The SQL statements that were applied (empty if nothing changed)

        Raises:
            SchemaMigrationError: if PostgreSQL rejects a statement
        """
        if not await self.table_exists():
            sql = create_table_sql(fields, self.table, self.timestamp_column)
            await self._apply([sql])
            logger.info(f"✅ Created table '{self.table}' with {len(fields)} field(s)")
            return [sql]

        if not self.allow_alter:
            logger.info(f"Table '{self.table}' exists and altering is disabled; skipping reconciliation")
            return []

        statements = compute_migration(
            fields,
            await self.get_columns(),
            PRESERVED_FIELD_NAMES,
            self.timestamp_column,
        )
        if not statements:
            logger.info(f"Table '{self.table}' already matches the configured fields")
            return []

        sql_statements = render_migration(statements, self.table)
        await self._apply(sql_statements)
        logger.info(f"✅ Applied {len(sql_statements)} schema change(s) to '{self.table}'")
        return sql_statements

    async def _apply(self, sql_statements: list[str]):
        async with self.db.transaction() as conn:
            for sql in sql_statements:
                logger.info(f"Applying: {sql}")
                try:
                    await conn.execute(sql)
                except Exception as e:
                    logger.error(f"❌ Schema statement failed: {e}")
                    raise SchemaMigrationError(sql, e) from e

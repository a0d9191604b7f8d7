"""
Gateway Entry Point
Run with: python server.py --config gateway.json

The Gateway object wires everything together: it validates the configured
fields, compiles the query templates, reconciles the table at startup and
executes bound statements for the route handlers.
"""

import asyncio
import logging
import sys
from typing import Any, Callable, Optional

from config import GatewayConfig, get_environment_mode, create_env_file
from database import DatabaseConnection
from errors import StorageError
from gate import RequestGate
from models import FieldSpec
from query import CompiledQuery, compile_query, rows_to_dicts
from schema import SchemaMigrator, TypeMapping, resolve_type
from utils.error_messages import enhance_error_message

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


class Gateway:
    """
    One configured gateway instance: a table, its compiled queries and the
    request gate guarding them.

    Construction validates the configuration and compiles every query, so a
    bad field or template fails before any connection is opened.
    """

    def __init__(
        self,
        config: GatewayConfig,
        db: Optional[DatabaseConnection] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        config.validate()
        self.config = config
        self.db = db if db is not None else DatabaseConnection(config.database)
        if clock is None:
            self.gate = RequestGate(config.secret, config.rate_limit)
        else:
            self.gate = RequestGate(config.secret, config.rate_limit, clock)

        self.fields: list[FieldSpec] = list(config.fields)
        self.field_types: dict[str, TypeMapping] = {
            spec.name: resolve_type(spec.type) for spec in self.fields
        }
        self.migrator = SchemaMigrator(
            self.db,
            table=config.database.table,
            timestamp_column=config.database.timestamp_column,
            allow_alter=config.allow_alter_table,
        )
        self.queries: dict[str, CompiledQuery] = self._compile_queries()
        self._closed = False

    @property
    def table(self) -> str:
        return self.config.database.table

    @property
    def timestamp_column(self) -> str:
        return self.config.database.timestamp_column

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self):
        if self._closed:
            raise StorageError("Gateway is closed")

    def _compile_queries(self) -> dict[str, CompiledQuery]:
        field_names = [spec.name for spec in self.fields]
        compiled = {}
        for name, definition in self.config.queries.items():
            compiled[name] = compile_query(
                definition,
                table_name=self.table,
                timestamp_column=self.timestamp_column,
                field_names=field_names,
                name=name,
            )
            logger.info(f"Compiled query '/{name}' ({len(compiled[name].variable_order)} parameter(s))")
        return compiled

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> list[str]:
        """
        Connect and reconcile the table. Returns the schema SQL applied.

        Raises:
            StorageError: the gateway has been closed
            SchemaMigrationError: the table could not be brought in line
        """
        self._ensure_open()
        await self.db.connect()
        applied = await self.migrator.reconcile(self.fields)
        logger.info(f"Gateway ready: table '{self.table}', {len(self.queries)} query route(s)")
        return applied

    async def plan(self) -> list[str]:
        """Schema SQL that start() would apply, without applying it"""
        self._ensure_open()
        await self.db.connect()
        try:
            return await self.migrator.plan(self.fields)
        finally:
            await self.db.disconnect()

    async def close(self):
        """Release the connection pool; later queries fail with StorageError"""
        if self._closed:
            return
        self._closed = True
        await self.db.disconnect()
        logger.info("Gateway closed")

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    def set_secret(self, secret: Any):
        self.gate.set_secret(secret)

    def get_rate_limit(self) -> float:
        return self.gate.rate_limit

    def get_query(self, name: str) -> Optional[CompiledQuery]:
        return self.queries.get(name)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def run(self, sql: str, args: list) -> list[dict]:
        """
        Execute a bound statement and return its rows as dicts.

        Raises:
            StorageError: gateway closed, or the database rejected the statement
        """
        self._ensure_open()
        try:
            rows = await self.db.fetch_coerced(sql, args)
        except Exception as e:
            logger.error(f"❌ Query failed: {e}")
            raise StorageError(enhance_error_message(e)) from e
        return rows_to_dicts(rows)

    def insert_sql(self) -> str:
        columns = [spec.name for spec in self.fields]
        placeholders = [f"${i}" for i in range(1, len(columns) + 1)]
        return (
            f"INSERT INTO {self.table} ({', '.join(columns)}) "
            f"VALUES ({', '.join(placeholders)}) "
            f"RETURNING id, {self.timestamp_column}"
        )

    async def insert(self, values: list) -> dict:
        """Insert one record (values in field order); returns its id and timestamp"""
        rows = await self.run(self.insert_sql(), values)
        return rows[0] if rows else {}


def cli_entry():
    """Entry point for console script"""
    import argparse

    parser = argparse.ArgumentParser(description="Config-driven table gateway")
    parser.add_argument('--version', '-v', action='store_true', help='Show version')
    parser.add_argument('--config', '-c', type=str, help='JSON config file (overrides GATEWAY_CONFIG_FILE)')
    parser.add_argument('--host', type=str, default=None, help='Host to bind to')
    parser.add_argument('--port', type=int, default=None, help='Port to listen on')
    parser.add_argument('--plan', action='store_true', help='Print the schema changes and exit')
    parser.add_argument('--init-env', action='store_true', help='Write a template .env file and exit')

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    if args.version:
        print(f"gateway-server version {__version__}")
        sys.exit(0)

    if args.init_env:
        create_env_file()
        print("Created template .env file")
        sys.exit(0)

    config = GatewayConfig.from_environment()
    if args.config:
        config = GatewayConfig.from_file(args.config, config.database)
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port

    logger.info(f"Environment: {get_environment_mode()}")
    gateway = Gateway(config)

    if args.plan:
        statements = asyncio.run(gateway.plan())
        if not statements:
            print(f"Table '{gateway.table}' already matches the configured fields")
        for sql in statements:
            print(f"{sql};")
        sys.exit(0)

    from transport.http import run_http_server
    run_http_server(gateway, host=config.host, port=config.port)


if __name__ == "__main__":
    cli_entry()

"""
Gateway Testing Utilities

In-memory stand-ins for the database connection and the clock, plus a sample
configuration shared by the test modules.
"""

from contextlib import asynccontextmanager

from config import DatabaseConfig, GatewayConfig
from models import FieldSpec
from schema.reconciler import ColumnMeta
from schema.types import resolve_type


class FakeDatabase:
    """
    Stand-in for DatabaseConnection.

    - `columns`: rows returned for the information_schema.columns query
    - `rows`: rows returned by fetch_coerced()
    - `error`: exception raised by fetch_coerced()
    - `fail_on`: substring; DDL containing it raises inside the transaction
    """

    def __init__(self, table_exists=True, columns=None, rows=None, error=None, fail_on=None):
        self.table_exists = table_exists
        self.columns = columns or []
        self.rows = rows or []
        self.error = error
        self.fail_on = fail_on
        self.connected = False
        self.executed = []
        self.queries = []
        self.transactions = 0

    async def connect(self):
        self.connected = True

    async def disconnect(self):
        self.connected = False

    async def fetchval(self, query, *args, **kwargs):
        if "information_schema.tables" in query:
            return self.table_exists
        if query.strip() == "SELECT 1":
            return 1
        raise AssertionError(f"Unexpected fetchval: {query}")

    async def fetch(self, query, *args, **kwargs):
        if "information_schema.columns" in query:
            return self.columns
        raise AssertionError(f"Unexpected fetch: {query}")

    async def fetch_coerced(self, query, args):
        self.queries.append((query, list(args)))
        if self.error is not None:
            raise self.error
        return self.rows

    async def execute(self, query, *args, **kwargs):
        if self.fail_on and self.fail_on in query:
            raise Exception(f'syntax error at or near "{self.fail_on}"')
        self.executed.append(query)
        return "OK"

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield self

    async def check_connection(self):
        return self.connected

    async def get_pool_stats(self):
        return {"status": "connected" if self.connected else "disconnected"}


class FakeClock:
    """Millisecond clock advanced by hand"""

    def __init__(self, now: float = 0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


def column_row(name, data_type, max_length=None):
    return {"column_name": name, "data_type": data_type, "max_length": max_length}


def columns_after_applying(fields, timestamp_column="date"):
    """ColumnMeta list PostgreSQL would report for a table created from `fields`"""
    columns = [ColumnMeta("id", "integer")]
    for spec in fields:
        mapping = resolve_type(spec.type)
        columns.append(ColumnMeta(spec.name, mapping.reported_type, mapping.length))
    columns.append(ColumnMeta(timestamp_column, "timestamp without time zone"))
    return columns


SAMPLE_FIELDS = [
    FieldSpec(name="temp", type="number"),
    FieldSpec(name="humidity", type="number"),
    FieldSpec(name="device", type="string(64)"),
]


def make_config(**overrides) -> GatewayConfig:
    values = dict(
        database=DatabaseConfig(table="data", timestamp_column="date"),
        fields=list(SAMPLE_FIELDS),
        queries={
            "latest": "SELECT * FROM {table} ORDER BY {date} DESC LIMIT 1",
            "above": {
                "query": "SELECT {fields[0]} FROM {table} WHERE {fields[0]} > {temp} AND {fields[1]} < {humidity}",
                "validators": {"temp": "number"},
                "preprocessor": {"temp": "number"},
            },
        },
    )
    values.update(overrides)
    return GatewayConfig(**values)

"""
Gateway configuration
Environment-aware configuration based on APP_ENV

Database settings come from DB_* variables. The field list, query templates,
secret and rate limit come from a JSON file (GATEWAY_CONFIG_FILE) or are passed
in directly by a host process through GatewayConfig.from_mapping().
"""

import json
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping, Optional
from urllib.parse import quote

from dotenv import load_dotenv

from errors import ConfigurationError
from gate import RATE_LIMIT_DISABLED
from models import FieldSpec, PRESERVED_FIELD_NAMES, is_identifier
from schema.types import resolve_type

# Routes served by the gateway itself; query names must not shadow them
RESERVED_ROUTES = frozenset({"insert", "getservertime", "healthz"})

# Environment modes
EnvironmentMode = Literal["development", "test", "production"]


def load_app_environment(mode: Optional[str] = None) -> str:
    """
    Load environment variables from the appropriate .env file.

    Priority:
    1. Explicit 'mode' argument
    2. APP_ENV environment variable
    3. Default to 'development'

    Loads .env.{mode} if it exists, falling back to .env
    """
    if not mode:
        mode = os.getenv('APP_ENV', 'development')

    base_path = Path(__file__).parent
    env_file = base_path / f'.env.{mode}'
    if not env_file.exists():
        env_file = base_path / '.env'

    if env_file.exists():
        # override=False lets variables set by the host take precedence
        load_dotenv(env_file, override=False)

    return mode


def get_environment_mode() -> EnvironmentMode:
    """Get current environment mode from APP_ENV variable"""
    mode = os.getenv('APP_ENV', 'development').lower()
    if mode not in ('development', 'test', 'production'):
        mode = 'development'
    return mode  # type: ignore


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes')


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration"""

    host: str = 'localhost'
    port: int = 5432
    database: str = 'iot'
    user: str = 'postgres'
    password: str = ''

    # Managed table
    table: str = 'data'
    timestamp_column: str = 'date'

    # Connection pool settings
    min_pool_size: int = 1
    max_pool_size: int = 10
    command_timeout: Optional[int] = None  # seconds; None = no per-query timeout

    ssl_mode: str = "prefer"

    @property
    def asyncpg_dsn(self) -> str:
        """Get asyncpg DSN format"""
        return (
            f"postgresql://{quote(self.user, safe='')}:{quote(self.password, safe='')}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    @classmethod
    def from_environment(cls, mode: Optional[EnvironmentMode] = None) -> 'DatabaseConfig':
        """
        Load configuration from environment variables

        Environment variables:
        - DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD
        - DB_TABLE: managed table (default: data)
        - DB_DATE_FIELD: timestamp column (default: date)
        - DB_SSL_MODE: disable, prefer or require (default: prefer)
        - DB_MIN_POOL_SIZE / DB_MAX_POOL_SIZE
        """
        load_app_environment(mode)
        return cls(
            host=os.getenv('DB_HOST', 'localhost'),
            port=int(os.getenv('DB_PORT', '5432')),
            database=os.getenv('DB_NAME', 'iot'),
            user=os.getenv('DB_USER', 'postgres'),
            password=os.getenv('DB_PASSWORD', ''),
            table=os.getenv('DB_TABLE', 'data'),
            timestamp_column=os.getenv('DB_DATE_FIELD', 'date'),
            ssl_mode=os.getenv('DB_SSL_MODE', 'prefer'),
            min_pool_size=int(os.getenv('DB_MIN_POOL_SIZE', '1')),
            max_pool_size=int(os.getenv('DB_MAX_POOL_SIZE', '10')),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'DatabaseConfig':
        """Build from a mapping; `name` and `date_field` are accepted as aliases"""
        data = dict(data)
        if 'name' in data:
            data.setdefault('database', data.pop('name'))
        if 'date_field' in data:
            data.setdefault('timestamp_column', data.pop('date_field'))
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown database setting(s): {', '.join(sorted(unknown))}")
        return cls(**data)

    def validate(self):
        for label, name in (('table', self.table), ('timestamp column', self.timestamp_column)):
            if not is_identifier(name):
                raise ConfigurationError(f"Invalid {label} name: {name!r}")
        if self.timestamp_column in PRESERVED_FIELD_NAMES:
            raise ConfigurationError(f"Timestamp column cannot be named {self.timestamp_column!r}")


def validate_fields(fields: list[FieldSpec], timestamp_column: str):
    """
    Check the field list before anything touches the database.

    Raises:
        ConfigurationError: empty list, duplicate or reserved field name
        TypeResolutionError: a field type does not resolve
    """
    if not fields:
        raise ConfigurationError("At least one field must be configured")

    reserved = set(PRESERVED_FIELD_NAMES) | {timestamp_column}
    seen = set()
    for spec in fields:
        if spec.name in reserved:
            raise ConfigurationError(f"Invalid field name: {spec.name} (reserved)")
        if spec.name in seen:
            raise ConfigurationError(f"Duplicate field name: {spec.name}")
        seen.add(spec.name)
        resolve_type(spec.type)


def _to_rate_limit(value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid rate_limit: {value!r}")
    try:
        window = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid rate_limit: {value!r} (milliseconds expected)") from None
    if not math.isfinite(window):
        raise ConfigurationError(f"Invalid rate_limit: {value!r}")
    return window


def _to_field(value: Any) -> FieldSpec:
    if isinstance(value, FieldSpec):
        return value
    if isinstance(value, Mapping):
        try:
            return FieldSpec(**value)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
    raise ConfigurationError(f"Invalid field definition: {value!r}")


@dataclass
class GatewayConfig:
    """
    Complete gateway configuration.

    - fields: ordered list of FieldSpec
    - queries: route name -> template string or query mapping
    - secret: str, mapping identity -> key, or callable (key, identity) -> bool
    - rate_limit: window in milliseconds, -1 to disable
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    fields: list[FieldSpec] = field(default_factory=list)
    queries: dict[str, Any] = field(default_factory=dict)
    secret: Any = None
    rate_limit: float = RATE_LIMIT_DISABLED
    allow_alter_table: bool = True
    pretty_json: bool = False
    host: str = '127.0.0.1'
    port: int = 3000

    def validate(self):
        self.database.validate()
        validate_fields(self.fields, self.database.timestamp_column)
        self.rate_limit = _to_rate_limit(self.rate_limit)
        for name in self.queries:
            if not name or "/" in name:
                raise ConfigurationError(f"Invalid query route name: {name!r}")
            if name in RESERVED_ROUTES:
                raise ConfigurationError(f"Query route name is reserved: {name!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'GatewayConfig':
        """Build from a plain dict (e.g. a parsed JSON config file)"""
        database = data.get('database') or {}
        if not isinstance(database, DatabaseConfig):
            database = DatabaseConfig.from_mapping(database)
        return cls(
            database=database,
            fields=[_to_field(f) for f in data.get('fields', [])],
            queries=dict(data.get('queries') or {}),
            secret=data.get('secret'),
            rate_limit=_to_rate_limit(data.get('rate_limit', RATE_LIMIT_DISABLED)),
            allow_alter_table=data.get('allow_alter_table', True),
            pretty_json=data.get('pretty_json', False),
            host=data.get('host', '127.0.0.1'),
            port=int(data.get('port', 3000)),
        )

    @classmethod
    def from_file(cls, path: str, database: Optional[DatabaseConfig] = None) -> 'GatewayConfig':
        """Load a JSON config file; DB_* environment settings fill in `database`"""
        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
        if database is not None and 'database' not in data:
            data['database'] = database
        return cls.from_mapping(data)

    @classmethod
    def from_environment(cls, mode: Optional[EnvironmentMode] = None) -> 'GatewayConfig':
        """
        Load configuration from environment variables

        Environment variables:
        - GATEWAY_CONFIG_FILE: JSON file with fields/queries/secret/rate_limit
        - GATEWAY_SECRET: static secret key (overrides the file)
        - GATEWAY_RATE_LIMIT: rate-limit window in ms (overrides the file)
        - GATEWAY_ALLOW_ALTER_TABLE, GATEWAY_PRETTY_JSON: true/false
        - GATEWAY_HOST / PORT
        """
        database = DatabaseConfig.from_environment(mode)
        config_file = os.getenv('GATEWAY_CONFIG_FILE')
        if config_file:
            config = cls.from_file(config_file, database)
        else:
            config = cls(database=database)

        if os.getenv('GATEWAY_SECRET') is not None:
            config.secret = os.getenv('GATEWAY_SECRET')
        if os.getenv('GATEWAY_RATE_LIMIT') is not None:
            config.rate_limit = _to_rate_limit(os.getenv('GATEWAY_RATE_LIMIT'))
        config.allow_alter_table = _env_bool('GATEWAY_ALLOW_ALTER_TABLE', config.allow_alter_table)
        config.pretty_json = _env_bool('GATEWAY_PRETTY_JSON', config.pretty_json)
        config.host = os.getenv('GATEWAY_HOST', config.host)
        config.port = int(os.getenv('PORT', config.port))
        return config


# Example .env file content
ENV_TEMPLATE = """
# Application Environment
# Options: development, test, production
APP_ENV=development

# Database Configuration
DB_HOST=localhost
DB_PORT=5432
DB_NAME=iot
DB_USER=postgres
DB_PASSWORD=your_password_here
DB_SSL_MODE=prefer
DB_TABLE=data
DB_DATE_FIELD=date

# Gateway
GATEWAY_CONFIG_FILE=gateway.json
# GATEWAY_SECRET=change-me
# GATEWAY_RATE_LIMIT=1000
PORT=3000
"""


def create_env_file(filepath: str = ".env"):
    """Create a template .env file"""
    with open(filepath, 'w') as f:
        f.write(ENV_TEMPLATE)

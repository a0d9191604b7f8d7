"""
Field Type Registry

Maps the logical field types used in the gateway configuration to PostgreSQL
column types, and provides the validate/parse pair used on incoming values.

A type descriptor is either a type name with an optional length suffix
("string", "string(64)", "decimal(12)") or an already-built TypeMapping, which
is passed through unchanged.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime, date, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, Union

import dateparser

from errors import TypeResolutionError


@dataclass(frozen=True)
class TypeMapping:
    """Resolved storage type for one field."""
    kind: str
    storage_type: str  # DDL keyword, e.g. VARCHAR
    reported_type: str  # information_schema.columns.data_type for the column
    length: Optional[int]
    validate: Callable[[Any], bool]
    parse: Callable[[Any], Any]


TypeSpec = Union[str, TypeMapping]


# ============================================================================
# Validators / parsers
# ============================================================================

# "1_000" parses with float(), int() and Decimal() but is not numeric text
def _has_separator(value: Any) -> bool:
    return isinstance(value, str) and "_" in value


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or _has_separator(value):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return value.is_integer()
    if isinstance(value, str):
        if _has_separator(value):
            return False
        try:
            int(value.strip())
        except ValueError:
            return False
        return True
    return False


def _parse_integer(value: Any) -> int:
    if isinstance(value, str):
        return int(value.strip())
    return int(value)


def _is_boolean(value: Any) -> bool:
    return isinstance(value, bool) or value in ("true", "false")


def _parse_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return value == "true"


def _to_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or _has_separator(value):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def _is_decimal(value: Any) -> bool:
    return _to_decimal(value) is not None


def _parse_decimal(value: Any) -> Decimal:
    result = _to_decimal(value)
    if result is None:
        raise ValueError(f"Not a decimal value: {value!r}")
    return result


def _read_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            result = datetime.fromisoformat(value.strip())
        except ValueError:
            result = dateparser.parse(value, languages=["en"])
        if result is None:
            return None
    else:
        return None
    # TIMESTAMP columns are timezone-naive; store aware values as UTC
    if result.tzinfo is not None:
        result = result.astimezone(timezone.utc).replace(tzinfo=None)
    return result


def _is_datetime(value: Any) -> bool:
    return _read_datetime(value) is not None


def _parse_datetime(value: Any) -> datetime:
    result = _read_datetime(value)
    if result is None:
        raise ValueError(f"Not a date: {value!r}")
    return result


def _string_validator(length: Optional[int]) -> Callable[[Any], bool]:
    def validate(value: Any) -> bool:
        if not isinstance(value, str):
            return False
        return length is None or len(value) <= length
    return validate


def _identity(value: Any) -> Any:
    return value


# ============================================================================
# Registry
# ============================================================================

@dataclass(frozen=True)
class _TypeKind:
    storage_type: str
    reported_type: str
    make_validator: Callable[[Optional[int]], Callable[[Any], bool]]
    parse: Callable[[Any], Any]
    default_length: Optional[int] = None
    sized: bool = False  # column type accepts a length/precision


def _fixed(func: Callable[[Any], bool]) -> Callable[[Optional[int]], Callable[[Any], bool]]:
    return lambda _length: func


FIELD_TYPES: dict[str, _TypeKind] = {
    "string": _TypeKind(
        storage_type="VARCHAR",
        reported_type="character varying",
        make_validator=_string_validator,
        parse=_identity,
        default_length=255,
        sized=True,
    ),
    "number": _TypeKind(
        storage_type="DOUBLE PRECISION",
        reported_type="double precision",
        make_validator=_fixed(_is_number),
        parse=float,
    ),
    "boolean": _TypeKind(
        storage_type="BOOLEAN",
        reported_type="boolean",
        make_validator=_fixed(_is_boolean),
        parse=_parse_boolean,
    ),
    "float": _TypeKind(
        storage_type="REAL",
        reported_type="real",
        make_validator=_fixed(_is_number),
        parse=float,
    ),
    "integer": _TypeKind(
        storage_type="INTEGER",
        reported_type="integer",
        make_validator=_fixed(_is_integer),
        parse=_parse_integer,
    ),
    "date": _TypeKind(
        storage_type="TIMESTAMP",
        reported_type="timestamp without time zone",
        make_validator=_fixed(_is_datetime),
        parse=_parse_datetime,
    ),
    "decimal": _TypeKind(
        storage_type="NUMERIC",
        reported_type="numeric",
        make_validator=_fixed(_is_decimal),
        parse=_parse_decimal,
        sized=True,
    ),
}

_DESCRIPTOR_RE = re.compile(r"^\s*(\w+)\s*(?:\((.*)\))?\s*$")


def get_type_names() -> list[str]:
    """Names of all registered base types."""
    return list(FIELD_TYPES.keys())


def _build(kind_name: str, length: Optional[int]) -> TypeMapping:
    kind = FIELD_TYPES[kind_name]
    return TypeMapping(
        kind=kind_name,
        storage_type=kind.storage_type,
        reported_type=kind.reported_type,
        length=length,
        validate=kind.make_validator(length),
        parse=kind.parse,
    )


def resolve_type(descriptor: TypeSpec) -> TypeMapping:
    """
    Resolve a type descriptor into a TypeMapping.

    Raises:
        TypeResolutionError: unknown base type, non-integer length, or a length
            suffix on a type whose column does not take one
    """
    if isinstance(descriptor, TypeMapping):
        return descriptor
    if not isinstance(descriptor, str):
        raise TypeResolutionError(descriptor)

    match = _DESCRIPTOR_RE.match(descriptor)
    if not match:
        raise TypeResolutionError(descriptor)

    base, raw_length = match.group(1), match.group(2)
    kind = FIELD_TYPES.get(base)
    if kind is None:
        raise TypeResolutionError(descriptor, f"valid types: {', '.join(FIELD_TYPES)}")

    if raw_length is None:
        return _build(base, kind.default_length)

    if not kind.sized:
        raise TypeResolutionError(descriptor, f"type '{base}' does not take a length")
    try:
        length = int(raw_length.strip())
    except ValueError:
        raise TypeResolutionError(descriptor, "length must be an integer") from None
    if length <= 0:
        raise TypeResolutionError(descriptor, "length must be positive")
    return _build(base, length)


def column_definition(mapping: TypeMapping) -> str:
    """DDL column type, e.g. VARCHAR(255) or DOUBLE PRECISION."""
    if mapping.length:
        return f"{mapping.storage_type}({mapping.length})"
    return mapping.storage_type


# PostgreSQL parameter type (pg_type.typname) -> registry kind used to coerce
# text request values before asyncpg encodes them
_PARAMETER_KINDS = {
    "float8": "number",
    "float4": "float",
    "int2": "integer",
    "int4": "integer",
    "int8": "integer",
    "numeric": "decimal",
    "bool": "boolean",
    "timestamp": "date",
    "timestamptz": "date",
    "date": "date",
}


def coerce_argument(value: Any, pg_type: str) -> Any:
    """
    Convert a text value to the Python type asyncpg expects for a parameter
    of type `pg_type`. Non-text values and text/unknown types pass through.

    Raises:
        ValueError: the text does not satisfy the target type
    """
    kind_name = _PARAMETER_KINDS.get(pg_type)
    if kind_name is None or not isinstance(value, str):
        return value
    kind = FIELD_TYPES[kind_name]
    if not kind.make_validator(None)(value):
        raise ValueError(f"invalid input for type {pg_type}: {value!r}")
    return kind.parse(value)

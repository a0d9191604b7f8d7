"""
Result Hydrator

Converts asyncpg records into JSON-friendly dicts before they reach a
serializer or the response body.
"""

from datetime import datetime, date, time
from decimal import Decimal
from typing import Any
from uuid import UUID


def serialize_value(obj: Any) -> Any:
    """Serialize non-JSON-native types."""
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, (list, tuple)):
        return [serialize_value(item) for item in obj]
    return str(obj)


def rows_to_dicts(rows) -> list[dict]:
    """Convert asyncpg Records (or plain mappings) to serializable dicts."""
    return [{k: serialize_value(v) for k, v in dict(row).items()} for row in rows]

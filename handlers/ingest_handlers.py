"""
Ingestion Handlers
Handles: insert one record into the managed table
"""

import logging
from typing import Any, Mapping, Optional

from errors import MissingFieldError, InvalidFieldError
from models import GatewayResponse
from .core_handlers import run_guarded

logger = logging.getLogger(__name__)


def parse_record(gateway, params: Mapping[str, Any]) -> list:
    """
    Validate and parse one value per configured field, in field order.

    Raises:
        MissingFieldError: a field is absent or empty
        InvalidFieldError: a value does not satisfy the field's type
    """
    values = []
    for spec in gateway.fields:
        value = params.get(spec.name)
        if value is None or value == "":
            raise MissingFieldError(spec.name)
        mapping = gateway.field_types[spec.name]
        if not mapping.validate(value):
            raise InvalidFieldError(spec.name)
        values.append(mapping.parse(value))
    return values


async def handle_ingest(
    gateway,
    identity: str,
    secret: Optional[str],
    params: Mapping[str, Any],
) -> GatewayResponse:
    """Insert one record; responds with the new row's id and timestamp"""

    async def execute():
        values = parse_record(gateway, params)
        return await gateway.insert(values)

    return await run_guarded(gateway, identity, secret, execute)

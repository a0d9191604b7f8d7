"""
Query Handlers
Handles: one route per compiled query template
"""

import logging
from typing import Any, Mapping, Optional

from models import GatewayResponse
from query import bind
from .core_handlers import run_guarded

logger = logging.getLogger(__name__)


async def handle_query(
    gateway,
    name: str,
    identity: str,
    secret: Optional[str],
    params: Mapping[str, Any],
) -> GatewayResponse:
    """
    Run the compiled query `name` with the caller's named parameters.

    Flow: gate -> bind (fail fast) -> execute -> optional serializer
    """
    compiled = gateway.get_query(name)
    if compiled is None:
        return GatewayResponse.failed(f"Unknown query: {name}")

    async def execute():
        values = bind(compiled, params)
        rows = await gateway.run(compiled.sql, values)
        return compiled.apply_serializer(rows)

    return await run_guarded(gateway, identity, secret, execute)

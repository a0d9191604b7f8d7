"""
Route Handlers

Each handler takes the Gateway plus the caller's identity, secret and named
parameters, and returns a GatewayResponse. Handlers never raise: every
per-request failure becomes a structured failure response.

Usage:
    from handlers import handle_query

    result = await handle_query(gateway, "latest", identity, secret, params)
    return JSONResponse(status_code=result.status_code, content=result.to_payload())
"""

from .core_handlers import handle_status, handle_server_time, handle_health, run_guarded
from .ingest_handlers import handle_ingest
from .query_handlers import handle_query

__all__ = [
    'handle_status',
    'handle_server_time',
    'handle_health',
    'handle_ingest',
    'handle_query',
    'run_guarded',
]

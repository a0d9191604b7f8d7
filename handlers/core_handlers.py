"""
Core Handlers
Handles: status probe, server time, health check, and the shared error mapping
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from errors import (
    AccessDeniedError, RateLimitedError, MissingFieldError, InvalidFieldError, StorageError,
)
from models import GatewayResponse

logger = logging.getLogger(__name__)


def server_time_ms() -> int:
    return int(datetime.now().timestamp() * 1000)


async def run_guarded(
    gateway,
    identity: str,
    secret: Optional[str],
    operation: Callable[[], Awaitable[Any]],
) -> GatewayResponse:
    """
    Authorize the caller, run `operation` and map the outcome to a response.

    The secret is checked before the rate limiter; nothing is bound or
    executed for a denied request.
    """
    try:
        gateway.gate.authorize(identity, secret)
        data = await operation()
    except AccessDeniedError:
        return GatewayResponse.access_denied()
    except RateLimitedError as e:
        return GatewayResponse.rate_limited(e.remaining)
    except (MissingFieldError, InvalidFieldError) as e:
        return GatewayResponse.failed(str(e))
    except StorageError as e:
        return GatewayResponse.failed(str(e))
    except Exception as e:
        # Preprocessor/serializer failures end the request, not the worker
        logger.error(f"Request failed: {e}", exc_info=True)
        return GatewayResponse.failed(str(e))
    return GatewayResponse.success(data)


async def handle_status(gateway) -> GatewayResponse:
    return GatewayResponse.success(message="Server is running")


async def handle_server_time(gateway) -> GatewayResponse:
    return GatewayResponse.success(date=server_time_ms())


async def handle_health(gateway) -> GatewayResponse:
    """Database connectivity check"""
    if gateway.closed or not await gateway.db.check_connection():
        return GatewayResponse.failed("Database not connected")
    return GatewayResponse.success(await gateway.db.get_pool_stats())

"""
HTTP transport for the gateway (FastAPI).

Routes:
- GET  /               status probe
- GET  /getservertime  server time in epoch milliseconds
- GET  /healthz        database connectivity
- GET|POST /insert     insert one record (query params and/or JSON body)
- GET  /<query name>   one route per configured query template

The caller's identity is its client address. The secret is read from the
`secret` query parameter or the X-Secret-Key header.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from handlers import handle_status, handle_server_time, handle_health, handle_ingest, handle_query
from models import GatewayResponse

logger = logging.getLogger(__name__)

SECRET_PARAM = "secret"
SECRET_HEADER = "X-Secret-Key"


class PrettyJSONResponse(JSONResponse):
    """JSON response indented with two spaces"""

    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, indent=2).encode("utf-8")


def get_identity(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def get_secret(request: Request) -> Optional[str]:
    return request.query_params.get(SECRET_PARAM) or request.headers.get(SECRET_HEADER)


def get_params(request: Request) -> dict[str, Any]:
    params = dict(request.query_params)
    params.pop(SECRET_PARAM, None)
    return params


def create_app(gateway) -> FastAPI:
    """Build the FastAPI app; the lifespan starts and closes the gateway"""
    response_class = PrettyJSONResponse if gateway.config.pretty_json else JSONResponse

    def respond(result: GatewayResponse):
        return response_class(status_code=result.status_code, content=result.to_payload())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Reconciliation completes before the server accepts traffic
        await gateway.start()
        try:
            yield
        finally:
            await gateway.close()

    app = FastAPI(title="Table Gateway", lifespan=lifespan)
    app.state.gateway = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def status_endpoint():
        return respond(await handle_status(gateway))

    @app.get("/getservertime")
    async def server_time_endpoint():
        return respond(await handle_server_time(gateway))

    @app.get("/healthz")
    async def health_endpoint():
        return respond(await handle_health(gateway))

    @app.api_route("/insert", methods=["GET", "POST"])
    async def insert_endpoint(request: Request):
        params = get_params(request)
        if request.method == "POST" and await request.body():
            try:
                body = await request.json()
            except json.JSONDecodeError as e:
                return respond(GatewayResponse.failed(f"Invalid JSON: {e}"))
            if not isinstance(body, dict):
                return respond(GatewayResponse.failed("Request body must be a JSON object"))
            params.update(body)
        result = await handle_ingest(gateway, get_identity(request), get_secret(request), params)
        return respond(result)

    def add_query_route(name: str):
        async def query_endpoint(request: Request):
            result = await handle_query(
                gateway, name, get_identity(request), get_secret(request), get_params(request)
            )
            return respond(result)

        app.add_api_route(f"/{name}", query_endpoint, methods=["GET"], name=f"query_{name}")

    for name in gateway.queries:
        add_query_route(name)
        logger.info(f"Registered query route GET /{name}")

    return app


def run_http_server(gateway, host: str = "127.0.0.1", port: int = 3000):
    """
    Run the gateway over HTTP.

    Args:
        gateway: a configured (not yet started) Gateway
        host: Host to bind to
        port: Port to listen on
    """
    app = create_app(gateway)
    logger.info(f"Gateway (HTTP) starting on http://{host}:{port}/")
    uvicorn.run(app, host=host, port=port, log_level="info")

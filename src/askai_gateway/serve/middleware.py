"""
Front half of the dispatcher for ``/v1/*`` calls.

Assigns the request id, answers CORS preflight and checks the bearer key
before any route runs, so a bad key is rejected whatever the path.
"""
from __future__ import annotations
import logging
import secrets
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from askai_gateway.common.errors import GatewayError, Unauthorized

LOGGER = logging.getLogger("askai.gateway.middleware")

API_PREFIX = "/v1/"
REQUEST_ID_HEADER = "X-Request-ID"
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


def error_response(err: GatewayError, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=err.status_code, content=err.envelope(), headers=headers)


def bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[len("Bearer "):]


class GatewayMiddleware(BaseHTTPMiddleware):
    """Request id, CORS, preflight and bearer-key check for API paths."""

    def __init__(self, app, api_key: str):
        super().__init__(app)
        self.api_key = api_key

    def is_authorized(self, request: Request) -> bool:
        token = bearer_token(request)
        if token is None:
            return False
        return secrets.compare_digest(token.encode("utf-8"), self.api_key.encode("utf-8"))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.url.path.startswith(API_PREFIX):
            return await call_next(request)

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        headers = {REQUEST_ID_HEADER: request_id, **CORS_HEADERS}

        if request.method == "OPTIONS":
            return Response(status_code=204, headers=headers)

        if not self.is_authorized(request):
            LOGGER.warning("[%s] Rejected %s %s: bad or missing API key",
                           request_id, request.method, request.url.path)
            return error_response(Unauthorized(), headers)

        start_time = time.time()
        response = await call_next(request)
        response.headers.update(headers)
        LOGGER.info(
            "[%s] %s %s -> %s (%.2fms)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            (time.time() - start_time) * 1000,
        )
        return response

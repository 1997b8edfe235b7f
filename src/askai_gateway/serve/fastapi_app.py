"""OpenAI-compatible gateway in front of the askaiquestions summary API.

Endpoints:
- GET  /                       health
- GET  /health                 health
- OPTIONS /v1/*                CORS preflight
- GET  /v1/models              known models (bearer auth)
- POST /v1/chat/completions    { "messages": [...], "model"?, "stream"? } (bearer auth)

Run with `askai-gateway`, or `uvicorn --factory askai_gateway.serve.fastapi_app:create_app`.
"""
from __future__ import annotations
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from askai_gateway.common.config import GatewayConfig
from askai_gateway.common.errors import (
    GatewayError,
    InvalidRequest,
    MethodNotAllowed,
    NotFound,
    UpstreamError,
    error_envelope,
)
from askai_gateway.common.schema import (
    ChatRequest,
    HealthOut,
    ModelCard,
    ModelList,
    RequestContext,
)
from askai_gateway.core.emitter import PseudoStreamEmitter
from askai_gateway.core.shaper import build_completion
from askai_gateway.core.upstream import UpstreamClient
from askai_gateway.serve.middleware import GatewayMiddleware, error_response

LOGGER = logging.getLogger("askai.gateway.app")

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return "Invalid JSON body"
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc or 'body'}: {err.get('msg')}")
    return "Invalid request body: " + "; ".join(parts)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def _gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        LOGGER.info("Rejected body for %s: %s", request.url.path, exc.errors())
        return error_response(InvalidRequest(_validation_message(exc)))

    @app.exception_handler(StarletteHTTPException)
    async def _routing_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            err: GatewayError = NotFound(f"Path not found: {request.url.path}")
        elif exc.status_code == 405:
            err = MethodNotAllowed(f"Method {request.method} not allowed for {request.url.path}")
        else:
            return JSONResponse(
                status_code=exc.status_code,
                content=error_envelope(str(exc.detail), "http_error"),
            )
        return error_response(err)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=error_envelope(f"Internal Server Error: {exc}", "internal_server_error"),
        )


def create_app(
    config: GatewayConfig | None = None,
    upstream: UpstreamClient | None = None,
    emitter: PseudoStreamEmitter | None = None,
) -> FastAPI:
    """
    Build the gateway app.

    Args:
        config: Startup configuration; read from the environment when omitted.
        upstream: Summary API client; built from ``config`` when omitted.
        emitter: Pseudo-stream emitter; built from ``config`` when omitted.
    """
    config = config or GatewayConfig.from_env()
    upstream = upstream or UpstreamClient.from_config(config)
    emitter = emitter or PseudoStreamEmitter(config.chunk_size, config.delay_ms)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        LOGGER.info("Starting %s %s with %s", config.project_name, config.version, config.public_view())
        if config.uses_default_key:
            LOGGER.warning("API_MASTER_KEY is not set; using the built-in default key")
        yield

    app = FastAPI(
        title=config.project_name,
        version=config.version,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )
    app.state.config = config
    app.state.upstream = upstream
    app.state.emitter = emitter
    app.add_middleware(GatewayMiddleware, api_key=config.api_master_key)
    _install_error_handlers(app)

    @app.get("/")
    @app.get("/health")
    def health() -> HealthOut:
        return HealthOut(service=config.project_name, version=config.version)

    @app.get("/v1/models")
    def list_models() -> ModelList:
        return ModelList(data=[ModelCard(id=name, owned_by=config.owned_by) for name in config.known_models])

    @app.post("/v1/chat/completions")
    async def chat_completions(body: ChatRequest, request: Request) -> Response:
        ctx = RequestContext.new(
            body.model or config.default_model,
            request_id=getattr(request.state, "request_id", None),
        )
        if not body.messages:
            raise InvalidRequest("Missing 'messages' field")

        messages = [m.model_dump(exclude_none=True) for m in body.messages]
        try:
            result = await upstream.fetch_summary(messages, ctx.request_id)
        except UpstreamError as e:
            LOGGER.error("[%s] Chat completion failed: %s (%s)", ctx.request_id, e.message, e.code)
            raise

        if body.stream:
            return StreamingResponse(
                emitter.stream(result.text, ctx, is_disconnected=request.is_disconnected),
                media_type="text/event-stream",
                headers=SSE_HEADERS,
            )
        return JSONResponse(build_completion(result.text, ctx).model_dump())

    return app


"""FastAPI application for the inference gateway.

Endpoints:
- GET  /api/health
- GET  /api/v1/models/list
- POST /api/v1/inference/text-generation  { "prompt": "...", "max_tokens": 50, "temperature": 0.7, "model": "..." }
"""
from __future__ import annotations
import asyncio
import hmac
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from inference_gateway import __version__
from inference_gateway.common.config import GatewayConfig
from inference_gateway.common.errors import GatewayError, RequestCancelled, Unauthorized, ValidationError
from inference_gateway.common.schema import GenerationRequest, GenerationResult, ModelDescriptor
from inference_gateway.core.dispatch import DispatchController
from inference_gateway.core.health import HealthMonitor
from inference_gateway.core.registry import ModelRegistry
from inference_gateway.core.shaping import (
    shape_error,
    shape_generation,
    shape_health,
    shape_model_list,
)
from inference_gateway.core.validation import parse_generation_request
from inference_gateway.engines import GenerationEngine, build_engine

LOGGER = logging.getLogger("inference_gateway.app")

HEALTH_PATH = "/api/health"
DISCONNECT_POLL_S = 0.25


class AccessLogMiddleware:
    """Pure ASGI access log. ``receive`` is passed through untouched so the
    handler still sees ``http.disconnect``."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.monotonic()
        status: int | None = None

        async def _send(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, _send)
        finally:
            LOGGER.info(
                "%s %s -> %s (%dms)",
                scope.get("method"),
                scope.get("path"),
                status if status is not None else "-",
                int((time.monotonic() - start) * 1000),
            )


def _authorized(header: str | None, api_key: str) -> bool:
    if not header or not header.startswith("Bearer "):
        return False
    return hmac.compare_digest(header[len("Bearer "):].encode(), api_key.encode())


def require_api_key(request: Request) -> None:
    """Bearer-token check; a no-op when no key is configured."""
    api_key = request.app.state.config.api_key
    if api_key and not _authorized(request.headers.get("Authorization"), api_key):
        raise Unauthorized(
            "Invalid or missing API key. Include 'Authorization: Bearer <your-api-key>' header."
        )


async def _dispatch_until_disconnect(
    request: Request,
    controller: DispatchController,
    gen_request: GenerationRequest,
    model: ModelDescriptor,
) -> GenerationResult:
    """Run dispatch, cancelling it if the client drops the connection."""
    task = asyncio.ensure_future(controller.dispatch(gen_request, model))
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_S)
            if done:
                return task.result()
            if await request.is_disconnected():
                LOGGER.info("Client disconnected; cancelling generation on %s", model.id)
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    raise RequestCancelled("Client disconnected") from None
                return task.result()
    finally:
        if not task.done():
            task.cancel()


api_v1 = APIRouter(prefix="/api/v1", dependencies=[Depends(require_api_key)])


@api_v1.get("/models/list")
def list_models(request: Request) -> dict[str, Any]:
    return shape_model_list(request.app.state.registry.list_models())


@api_v1.post("/inference/text-generation")
async def text_generation(request: Request) -> dict[str, Any]:
    try:
        raw = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("body", "request body must be valid JSON") from None

    gen_request = parse_generation_request(raw, request.app.state.config)
    model = request.app.state.registry.resolve(gen_request.model_id)
    result = await _dispatch_until_disconnect(
        request, request.app.state.controller, gen_request, model
    )
    return shape_generation(gen_request, result)


def create_app(
    config: GatewayConfig,
    engine: GenerationEngine | None = None,
    registry: ModelRegistry | None = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        config: Resolved configuration.
        engine: Generation backend; built from ``config`` when omitted.
        registry: Model registry; built from ``config`` when omitted.
    """
    engine = engine if engine is not None else build_engine(config)
    registry = registry if registry is not None else ModelRegistry.from_config(config)
    controller = DispatchController(
        engine,
        capacity=config.max_concurrent_generations,
        admission_timeout_s=config.admission_timeout_s,
        execution_timeout_s=config.execution_timeout_s,
    )
    monitor = HealthMonitor(controller, registry)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        LOGGER.info(
            "Gateway ready: %d models, capacity=%d, admission=%.3gs, execution=%.3gs",
            len(registry),
            controller.capacity,
            controller.admission_timeout_s,
            controller.execution_timeout_s,
        )
        if not config.api_key:
            LOGGER.warning("No API key configured, skipping authentication")
        yield
        await engine.aclose()

    app = FastAPI(title="Inference Gateway", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.registry = registry
    app.state.controller = controller
    app.state.monitor = monitor

    app.add_middleware(AccessLogMiddleware)
    # outermost: preflight requests are answered before routing
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )

    @app.exception_handler(GatewayError)
    async def _gateway_error(_: Request, exc: GatewayError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=shape_error(exc))

    @app.get(HEALTH_PATH)
    def health(request: Request) -> dict[str, Any]:
        return shape_health(request.app.state.monitor.snapshot())

    app.include_router(api_v1)
    return app

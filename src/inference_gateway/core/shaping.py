"""Pure mappings from internal types to the public JSON envelopes."""
from __future__ import annotations
from typing import Any, Iterable

from inference_gateway import __version__
from inference_gateway.common.errors import GatewayError, ValidationError
from inference_gateway.common.schema import (
    GenerationRequest,
    GenerationResult,
    HealthSnapshot,
    ModelDescriptor,
)

SERVICE_NAME = "inference-gateway"


def shape_generation(request: GenerationRequest, result: GenerationResult) -> dict[str, Any]:
    """Success body for a completed dispatch. Never called for failures."""
    return {
        "text": result.generated_text,
        "model": result.model_id,
        "tokens_used": result.token_count_used,
        "finish_reason": result.finish_reason.value,
        "processing_time_ms": result.latency_ms,
        "timestamp": result.finished_at.isoformat() if result.finished_at else None,
    }


def shape_model(descriptor: ModelDescriptor) -> dict[str, Any]:
    return {
        "id": descriptor.id,
        "display_name": descriptor.display_name,
        "max_context_tokens": descriptor.max_context_tokens,
        "available": descriptor.available,
    }


def shape_model_list(descriptors: Iterable[ModelDescriptor]) -> dict[str, Any]:
    models = [shape_model(d) for d in descriptors]
    return {"models": models, "total": len(models)}


def shape_health(snapshot: HealthSnapshot) -> dict[str, Any]:
    return {
        "status": snapshot.status.value,
        "active_requests": snapshot.active_requests,
        "capacity": snapshot.capacity,
        "uptime_seconds": snapshot.uptime_seconds,
        "service": SERVICE_NAME,
        "version": __version__,
    }


def shape_error(exc: GatewayError) -> dict[str, Any]:
    body: dict[str, Any] = {"error": exc.error_code, "message": exc.message}
    if isinstance(exc, ValidationError):
        body["field"] = exc.field
        body["reason"] = exc.reason
    return body

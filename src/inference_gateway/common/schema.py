"""Dataclasses for request/result/model/health types shared across the gateway."""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class FinishReason(str, Enum):
    """Why a generation ended."""
    COMPLETED = "completed"
    LENGTH_LIMITED = "length_limited"
    CANCELLED = "cancelled"
    ERROR = "error"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class GenerationRequest:
    """A validated text generation request. model_id None means the default model."""
    prompt: str
    max_tokens: int
    temperature: float
    model_id: str | None = None


@dataclass(frozen=True)
class EngineOutput:
    """Raw output of a generation engine."""
    text: str
    token_count: int
    length_limited: bool = False


@dataclass(frozen=True)
class GenerationResult:
    """Text generation result metadata."""
    generated_text: str
    model_id: str
    token_count_used: int
    finish_reason: FinishReason
    latency_ms: int = 0
    finished_at: datetime | None = None


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    display_name: str
    max_context_tokens: int
    available: bool = True


@dataclass(frozen=True)
class HealthSnapshot:
    status: HealthStatus
    active_requests: int
    capacity: int
    uptime_seconds: int
    models_available: int
    models_total: int

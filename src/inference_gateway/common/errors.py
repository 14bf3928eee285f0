"""Failure taxonomy for the gateway.

Every failure is raised as a GatewayError subclass at the point it is
detected. The HTTP layer maps ``status_code`` and ``error_code`` straight onto
the response, so no failure is ever turned into an empty success.
"""
from __future__ import annotations

from inference_gateway.common.schema import GenerationResult


class ConfigError(ValueError):
    """Raised at startup when configuration cannot be resolved."""


class GatewayError(Exception):
    """Base class for failures surfaced to HTTP clients."""

    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.error_code)
        self.message = message or self.error_code


class ValidationError(GatewayError):
    """Client input is malformed. Never retried server-side."""

    status_code = 400
    error_code = "validation_error"

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid '{field}': {reason}")
        self.field = field
        self.reason = reason


class ModelNotFound(GatewayError):
    """Requested model is unknown or marked unavailable."""

    status_code = 404
    error_code = "model_not_found"

    def __init__(self, model_id: str) -> None:
        super().__init__(f"Model '{model_id}' is not available")
        self.model_id = model_id


class Overloaded(GatewayError):
    """No dispatch permit became free within the admission timeout."""

    status_code = 503
    error_code = "overloaded"

    def __init__(self, capacity: int, admission_timeout_s: float) -> None:
        super().__init__(
            f"All {capacity} generation slots busy for {admission_timeout_s:g}s; retry with backoff"
        )
        self.capacity = capacity
        self.admission_timeout_s = admission_timeout_s


class _DispatchFailure(GatewayError):
    """A failure after a permit was held; carries the terminal result."""

    def __init__(self, message: str, result: GenerationResult) -> None:
        super().__init__(message)
        self.result = result


class GenerationTimeout(_DispatchFailure):
    """The engine did not finish within the execution timeout."""

    status_code = 504
    error_code = "timeout"


class EngineError(_DispatchFailure):
    """The generation backend failed."""

    status_code = 502
    error_code = "engine_error"


class Unauthorized(GatewayError):
    status_code = 401
    error_code = "unauthorized"


class RequestCancelled(GatewayError):
    """The client went away before the generation finished."""

    status_code = 499
    error_code = "cancelled"

"""Generation engine protocol."""
from __future__ import annotations

from typing import Protocol

from inference_gateway.common.schema import EngineOutput, GenerationRequest, ModelDescriptor


class GenerationEngine(Protocol):
    """Produces text for a validated request.

    Implementations must be safe to call concurrently and must tolerate
    cancellation of the awaiting task (timeouts and client disconnects).
    Any exception raised is reported to clients as an engine error.
    """

    async def generate(self, request: GenerationRequest, model: ModelDescriptor) -> EngineOutput:
        ...

    async def aclose(self) -> None:
        ...


def count_tokens(text: str) -> int:
    """Whitespace token count, used when a backend does not report usage."""
    return len(text.split())

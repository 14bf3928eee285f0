"""Simulated engine returning a canned response, for development and smoke tests."""
from __future__ import annotations
import asyncio

from inference_gateway.common.schema import EngineOutput, GenerationRequest, ModelDescriptor

RESPONSE_TEMPLATE = (
    "AI Response to '{prompt}': This is a simulated response from the inference gateway. "
    "In a production environment, this would be replaced with actual LLM inference."
)


class SimulatedEngine:
    def __init__(self, delay_s: float = 0.0) -> None:
        self.delay_s = delay_s

    async def generate(self, request: GenerationRequest, model: ModelDescriptor) -> EngineOutput:
        if self.delay_s > 0:
            await asyncio.sleep(self.delay_s)
        words = RESPONSE_TEMPLATE.format(prompt=request.prompt).split()
        if len(words) > request.max_tokens:
            return EngineOutput(
                text=" ".join(words[: request.max_tokens]),
                token_count=request.max_tokens,
                length_limited=True,
            )
        return EngineOutput(text=" ".join(words), token_count=len(words))

    async def aclose(self) -> None:
        return None

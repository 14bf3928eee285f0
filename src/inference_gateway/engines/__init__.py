"""Generation engines and the factory that picks one from configuration."""
from __future__ import annotations

from inference_gateway.common.config import GatewayConfig
from inference_gateway.engines.base import GenerationEngine
from inference_gateway.engines.openai_compat import OpenAICompatEngine
from inference_gateway.engines.simulated import SimulatedEngine


def build_engine(config: GatewayConfig) -> GenerationEngine:
    if config.engine_backend == "openai":
        return OpenAICompatEngine(
            base_url=config.engine_base_url,
            api_key=config.engine_api_key,
            served_model=config.engine_model,
        )
    if config.engine_backend == "gguf":
        from inference_gateway.engines.gguf import LlamaCppEngine

        return LlamaCppEngine.from_config(config.gguf_config)
    return SimulatedEngine()


__all__ = ["GenerationEngine", "OpenAICompatEngine", "SimulatedEngine", "build_engine"]

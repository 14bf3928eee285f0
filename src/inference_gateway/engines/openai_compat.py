"""Engine that forwards to an OpenAI-compatible server (e.g. vLLM).

Sends POST {base_url}/v1/chat/completions with a single user message and the
request's sampling parameters.
"""
from __future__ import annotations
import logging
from typing import Any

import httpx

from inference_gateway.common.schema import EngineOutput, GenerationRequest, ModelDescriptor
from inference_gateway.engines.base import count_tokens

LOGGER = logging.getLogger("inference_gateway.engines.openai")


class UpstreamResponseError(RuntimeError):
    """The upstream answered, but not with a usable completion."""


class OpenAICompatEngine:
    """
    Async client for an OpenAI-compatible chat completions endpoint.

    Args:
        base_url: Upstream root, without the /v1 suffix.
        api_key: Bearer token sent upstream.
        served_model: Upstream model name. When None the gateway model id is sent.
        timeout_s: httpx timeout; the dispatch execution timeout normally fires first.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "not-required",
        served_model: str | None = None,
        timeout_s: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.served_model = served_model
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout_s,
            transport=transport,
        )

    async def generate(self, request: GenerationRequest, model: ModelDescriptor) -> EngineOutput:
        payload = {
            "model": self.served_model or model.id,
            "messages": [{"role": "user", "content": request.prompt}],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "stream": False,
        }
        r = await self._client.post("/v1/chat/completions", json=payload)
        r.raise_for_status()
        return self._parse(r.json())

    @staticmethod
    def _parse(data: Any) -> EngineOutput:
        try:
            choice = data["choices"][0]
            text = choice["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            LOGGER.error("Malformed response: %s", e)
            raise UpstreamResponseError("Malformed upstream response") from e

        usage = data.get("usage") or {}
        tokens = usage.get("completion_tokens")
        return EngineOutput(
            text=str(text),
            token_count=int(tokens) if tokens is not None else count_tokens(str(text)),
            length_limited=choice.get("finish_reason") == "length",
        )

    async def aclose(self) -> None:
        await self._client.aclose()

"""Local GGUF engine via llama.cpp (llama-cpp-python).

Uses llama.cpp's chat API with the request as the user message. The model is
loaded once; calls are serialized on a lock because a Llama instance is not
safe to share between threads, and run in a worker thread so the event loop
stays free. A running call cannot be interrupted. A call cancelled while still
queued on the lock is skipped once the lock is acquired.
"""
from __future__ import annotations
import asyncio
import logging
import threading
from pathlib import Path
from typing import Any

from inference_gateway.common.config import load_cfg
from inference_gateway.common.schema import EngineOutput, GenerationRequest, ModelDescriptor
from inference_gateway.engines.base import count_tokens

LOGGER = logging.getLogger("inference_gateway.engines.gguf")


class LlamaCppEngine:
    def __init__(self, llm: Any, top_p: float = 0.9, stop: list[str] | None = None, repeat_penalty: float = 1.1) -> None:
        self._llm = llm
        self._lock = threading.Lock()
        self.top_p = top_p
        self.stop = list(stop or [])
        self.repeat_penalty = repeat_penalty

    @classmethod
    def from_config(cls, cfg_path: str = "configs/local_gguf.yaml") -> "LlamaCppEngine":
        """
        Load a GGUF model described by a YAML config.

        Args:
            cfg_path: YAML config path for model and sampling params.
        """
        from llama_cpp import Llama  # type: ignore

        cfg = load_cfg(cfg_path)
        model_path = cfg["model_path"]
        if not Path(model_path).exists():
            raise FileNotFoundError(f"GGUF model not found at {model_path}")

        LOGGER.info("Loading GGUF model from %s", model_path)
        llm = Llama(
            model_path=model_path,
            n_ctx=int(cfg.get("n_ctx", 8192)),
            n_gpu_layers=int(cfg.get("n_gpu_layers", -1)),
            logits_all=False,
            embedding=False,
            verbose=False,
        )
        return cls(
            llm,
            top_p=float(cfg.get("top_p", 0.9)),
            stop=list(cfg.get("stop", []) or []),
            repeat_penalty=float(cfg.get("repeat_penalty", 1.1)),
        )

    def _complete(self, request: GenerationRequest, abandoned: threading.Event) -> dict[str, Any] | None:
        with self._lock:
            if abandoned.is_set():
                return None
            return self._llm.create_chat_completion(
                messages=[{"role": "user", "content": request.prompt}],
                temperature=request.temperature,
                top_p=self.top_p,
                max_tokens=request.max_tokens,
                stop=self.stop,
                repeat_penalty=self.repeat_penalty,
            )

    async def generate(self, request: GenerationRequest, model: ModelDescriptor) -> EngineOutput:
        abandoned = threading.Event()
        try:
            out = await asyncio.to_thread(self._complete, request, abandoned)
        except asyncio.CancelledError:
            abandoned.set()
            raise
        choice = out["choices"][0]
        text = str(choice["message"]["content"]).strip()
        usage = out.get("usage") or {}
        tokens = usage.get("completion_tokens")
        return EngineOutput(
            text=text,
            token_count=int(tokens) if tokens is not None else count_tokens(text),
            length_limited=choice.get("finish_reason") == "length",
        )

    async def aclose(self) -> None:
        return None

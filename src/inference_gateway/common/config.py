"""Gateway configuration.

The core components receive a fully resolved ``GatewayConfig``; only the
bootstrap layer calls :meth:`GatewayConfig.from_env`.
"""
from __future__ import annotations
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from inference_gateway.common.errors import ConfigError
from inference_gateway.common.schema import ModelDescriptor

ENGINE_BACKENDS = ("simulated", "openai", "gguf")


@dataclass(frozen=True)
class GatewayConfig:
    host: str = "0.0.0.0"
    port: int = 3200
    default_model_id: str = "text-gen-v1"
    max_concurrent_generations: int = 10
    admission_timeout_s: float = 0.5
    execution_timeout_s: float = 60.0
    max_prompt_length: int = 32768
    max_tokens_ceiling: int = 4096
    default_max_tokens: int = 100
    default_temperature: float = 0.7
    log_level: str = "INFO"
    api_key: str | None = None
    models_file: str | None = None
    engine_backend: str = "simulated"
    engine_base_url: str = "http://localhost:8001"
    engine_api_key: str = "not-required"
    engine_model: str | None = None
    gguf_config: str = "configs/local_gguf.yaml"

    def __post_init__(self) -> None:
        if self.max_concurrent_generations < 1:
            raise ConfigError("max_concurrent_generations must be >= 1")
        for name in ("admission_timeout_s", "execution_timeout_s"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ConfigError(f"{name} must be a non-negative number")
        if self.max_prompt_length < 2:
            raise ConfigError("max_prompt_length must be >= 2")
        if self.max_tokens_ceiling < 1:
            raise ConfigError("max_tokens_ceiling must be >= 1")
        if not 1 <= self.default_max_tokens <= self.max_tokens_ceiling:
            raise ConfigError("default_max_tokens must be within [1, max_tokens_ceiling]")
        if not 0.0 <= self.default_temperature <= 2.0:
            raise ConfigError("default_temperature must be within [0.0, 2.0]")
        if self.engine_backend not in ENGINE_BACKENDS:
            raise ConfigError(
                f"engine_backend must be one of {', '.join(ENGINE_BACKENDS)}; got {self.engine_backend!r}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GatewayConfig":
        """Resolve configuration from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def _str(key: str, default: str | None) -> str | None:
            value = env.get(key)
            if value is None or not value.strip():
                return default
            return value.strip()

        def _int(key: str, default: int) -> int:
            raw = _str(key, None)
            if raw is None:
                return default
            try:
                return int(raw)
            except ValueError:
                raise ConfigError(f"{key} must be an integer; got {raw!r}") from None

        def _float(key: str, default: float) -> float:
            raw = _str(key, None)
            if raw is None:
                return default
            try:
                return float(raw)
            except ValueError:
                raise ConfigError(f"{key} must be a number; got {raw!r}") from None

        return cls(
            host=_str("HOST", defaults.host),
            port=_int("PORT", defaults.port),
            default_model_id=_str("DEFAULT_MODEL_ID", defaults.default_model_id),
            max_concurrent_generations=_int("MAX_CONCURRENT_GENERATIONS", defaults.max_concurrent_generations),
            admission_timeout_s=_float("ADMISSION_TIMEOUT_S", defaults.admission_timeout_s),
            execution_timeout_s=_float("EXECUTION_TIMEOUT_S", defaults.execution_timeout_s),
            max_prompt_length=_int("MAX_PROMPT_LENGTH", defaults.max_prompt_length),
            max_tokens_ceiling=_int("MAX_TOKENS_CEILING", defaults.max_tokens_ceiling),
            default_max_tokens=_int("DEFAULT_MAX_TOKENS", defaults.default_max_tokens),
            default_temperature=_float("DEFAULT_TEMPERATURE", defaults.default_temperature),
            log_level=_str("LOG_LEVEL", defaults.log_level),
            api_key=_str("GATEWAY_API_KEY", None),
            models_file=_str("MODELS_FILE", None),
            engine_backend=(_str("ENGINE_BACKEND", defaults.engine_backend) or "").lower(),
            engine_base_url=_str("VLLM_BASE_URL", defaults.engine_base_url),
            engine_api_key=_str("VLLM_API_KEY", defaults.engine_api_key),
            engine_model=_str("VLLM_MODEL_ID", None),
            gguf_config=_str("GGUF_CONFIG", defaults.gguf_config),
        )


def load_cfg(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_model_descriptors(path: str) -> list[ModelDescriptor]:
    """
    Load the model catalogue from a YAML file.

    Args:
        path: YAML file with a top-level ``models`` list. Each entry needs an
            ``id``; ``display_name``, ``max_context_tokens`` and ``available``
            are optional.
    """
    if not Path(path).exists():
        raise ConfigError(f"Models file not found at {path}")
    cfg = load_cfg(path)
    entries = cfg.get("models") if isinstance(cfg, dict) else None
    if not isinstance(entries, list):
        raise ConfigError(f"{path}: expected a top-level 'models' list")

    descriptors: list[ModelDescriptor] = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict) or not str(entry.get("id") or "").strip():
            raise ConfigError(f"{path}: models[{idx}] is missing an 'id'")
        model_id = str(entry["id"]).strip()
        try:
            max_ctx = int(entry.get("max_context_tokens", 4096))
        except (TypeError, ValueError):
            raise ConfigError(f"{path}: models[{idx}].max_context_tokens must be an integer") from None
        descriptors.append(
            ModelDescriptor(
                id=model_id,
                display_name=str(entry.get("display_name") or model_id),
                max_context_tokens=max_ctx,
                available=bool(entry.get("available", True)),
            )
        )
    return descriptors

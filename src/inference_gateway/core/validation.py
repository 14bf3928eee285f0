"""Syntactic validation of text generation requests.

Turns an untyped JSON body into a GenerationRequest or raises ValidationError
naming the offending field. Whether the model exists is the registry's job.
"""
from __future__ import annotations
import math
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator

from inference_gateway.common.config import GatewayConfig
from inference_gateway.common.errors import ValidationError
from inference_gateway.common.schema import GenerationRequest


class TextGenerationIn(BaseModel):
    """Wire shape of the text generation body, before bound checks."""

    model_config = ConfigDict(extra="ignore")

    prompt: str
    max_tokens: int | None = None
    temperature: float | None = None
    model: str | None = None

    @field_validator("max_tokens", "temperature", mode="before")
    @classmethod
    def _no_booleans(cls, value: Any) -> Any:
        # bool is an int subclass; lax mode would read true as 1
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        return value


def parse_generation_request(raw: Any, config: GatewayConfig) -> GenerationRequest:
    """
    Validate a decoded JSON body.

    Args:
        raw: Decoded request body.
        config: Resolved gateway configuration (length and token ceilings, defaults).

    Returns:
        A GenerationRequest that is safe to dispatch.

    Raises:
        ValidationError: on the first violated rule.
    """
    if not isinstance(raw, dict):
        raise ValidationError("body", "request body must be a JSON object")

    try:
        body = TextGenerationIn.model_validate(raw)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        loc = first.get("loc") or ("body",)
        raise ValidationError(str(loc[0]), first.get("msg", "invalid value")) from None

    prompt = body.prompt
    if not prompt.strip():
        raise ValidationError("prompt", "must not be empty")
    if len(prompt) >= config.max_prompt_length:
        raise ValidationError(
            "prompt", f"must be shorter than {config.max_prompt_length} characters; got {len(prompt)}"
        )

    max_tokens = config.default_max_tokens if body.max_tokens is None else body.max_tokens
    if max_tokens < 1:
        raise ValidationError("max_tokens", "must be a positive integer")
    if max_tokens > config.max_tokens_ceiling:
        raise ValidationError("max_tokens", f"must be at most {config.max_tokens_ceiling}")

    temperature = config.default_temperature if body.temperature is None else body.temperature
    if not math.isfinite(temperature) or not 0.0 <= temperature <= 2.0:
        raise ValidationError("temperature", "must be a number in [0.0, 2.0]")

    model_id = body.model
    if model_id is not None:
        model_id = model_id.strip()
        if not model_id:
            raise ValidationError("model", "must not be empty when given")

    return GenerationRequest(
        prompt=prompt,
        max_tokens=max_tokens,
        temperature=float(temperature),
        model_id=model_id,
    )

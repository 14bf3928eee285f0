"""Concurrency-bounded dispatch of generation requests to the engine.

Admission is a semaphore of ``capacity`` permits. A request waits at most
``admission_timeout_s`` for a permit and is rejected with Overloaded rather
than queued further. Once admitted the engine call runs under a separate
``execution_timeout_s``.

Every acquired permit is released exactly once, whether the engine returns,
raises, times out, or the awaiting task is cancelled.
"""
from __future__ import annotations
import asyncio
import logging
import time
from datetime import datetime, timezone

from inference_gateway.common.errors import EngineError, GenerationTimeout, Overloaded
from inference_gateway.common.schema import (
    FinishReason,
    GenerationRequest,
    GenerationResult,
    ModelDescriptor,
)
from inference_gateway.engines.base import GenerationEngine

LOGGER = logging.getLogger("inference_gateway.dispatch")


class DispatchController:
    """Bounds in-flight generations and classifies their failures.

    Attributes:
        capacity: Number of generations allowed to run at once.
        admission_timeout_s: Max seconds to wait for a free permit.
        execution_timeout_s: Max seconds an admitted generation may run.
    """

    def __init__(
        self,
        engine: GenerationEngine,
        capacity: int,
        admission_timeout_s: float,
        execution_timeout_s: float,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.engine = engine
        self.capacity = capacity
        self.admission_timeout_s = admission_timeout_s
        self.execution_timeout_s = execution_timeout_s
        self._semaphore = asyncio.Semaphore(capacity)
        self._active = 0

    @property
    def active_requests(self) -> int:
        return self._active

    @property
    def available_permits(self) -> int:
        return self.capacity - self._active

    async def _acquire(self) -> None:
        try:
            async with asyncio.timeout(self.admission_timeout_s):
                await self._semaphore.acquire()
        except TimeoutError:
            LOGGER.warning(
                "Request rejected: at capacity (%s/%s)", self._active, self.capacity
            )
            raise Overloaded(self.capacity, self.admission_timeout_s) from None
        self._active += 1

    def _release(self) -> None:
        self._active -= 1
        self._semaphore.release()

    async def dispatch(self, request: GenerationRequest, model: ModelDescriptor) -> GenerationResult:
        """
        Run one generation under the concurrency and time bounds.

        Args:
            request: Validated request.
            model: Descriptor already resolved by the registry.

        Raises:
            Overloaded: no permit within the admission timeout.
            GenerationTimeout: the engine exceeded the execution timeout.
            EngineError: the engine raised.
        """
        await self._acquire()
        try:
            return await self._execute(request, model)
        finally:
            self._release()

    async def _execute(self, request: GenerationRequest, model: ModelDescriptor) -> GenerationResult:
        start = time.monotonic()
        deadline = asyncio.timeout(self.execution_timeout_s)
        try:
            async with deadline:
                output = await self.engine.generate(request, model)
        except TimeoutError as e:
            latency_ms = int((time.monotonic() - start) * 1000)
            if deadline.expired():
                LOGGER.warning(
                    "Generation on %s cancelled after %sms (limit %.3gs)",
                    model.id,
                    latency_ms,
                    self.execution_timeout_s,
                )
                result = self._failed(model, FinishReason.CANCELLED, latency_ms)
                raise GenerationTimeout(
                    f"Generation exceeded {self.execution_timeout_s:g}s", result
                ) from None
            LOGGER.error("Engine timed out internally on %s: %s", model.id, e)
            raise EngineError(f"Engine failure: {e}", self._failed(model, FinishReason.ERROR, latency_ms)) from e
        except Exception as e:
            latency_ms = int((time.monotonic() - start) * 1000)
            LOGGER.error("Engine failure on %s: %s", model.id, e)
            raise EngineError(f"Engine failure: {e}", self._failed(model, FinishReason.ERROR, latency_ms)) from e

        latency_ms = int((time.monotonic() - start) * 1000)
        reason = FinishReason.LENGTH_LIMITED if output.length_limited else FinishReason.COMPLETED
        LOGGER.info(
            "Generated %s tokens on %s in %sms (%s)",
            output.token_count,
            model.id,
            latency_ms,
            reason.value,
        )
        return GenerationResult(
            generated_text=output.text,
            model_id=model.id,
            token_count_used=output.token_count,
            finish_reason=reason,
            latency_ms=latency_ms,
            finished_at=datetime.now(timezone.utc),
        )

    @staticmethod
    def _failed(model: ModelDescriptor, reason: FinishReason, latency_ms: int) -> GenerationResult:
        return GenerationResult(
            generated_text="",
            model_id=model.id,
            token_count_used=0,
            finish_reason=reason,
            latency_ms=latency_ms,
            finished_at=datetime.now(timezone.utc),
        )

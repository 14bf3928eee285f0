from __future__ import annotations

import asyncio
import time

import pytest

from inference_gateway.common.errors import EngineError, GenerationTimeout, Overloaded
from inference_gateway.common.schema import (
    EngineOutput,
    FinishReason,
    GenerationRequest,
    ModelDescriptor,
)
from inference_gateway.core.dispatch import DispatchController

REQ = GenerationRequest(prompt="Hello", max_tokens=8, temperature=0.7)
MODEL = ModelDescriptor(id="m1", display_name="M1", max_context_tokens=4096)


class _GatedEngine:
    """Blocks every call until ``release`` is set; tracks peak concurrency."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.started = asyncio.Event()
        self.running = 0
        self.peak = 0
        self.cancelled = 0

    async def generate(self, request: GenerationRequest, model: ModelDescriptor) -> EngineOutput:
        self.running += 1
        self.peak = max(self.peak, self.running)
        self.started.set()
        try:
            await self.release.wait()
            return EngineOutput(text="ok", token_count=1)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.running -= 1


class _OutputEngine:
    def __init__(self, output: EngineOutput | None = None, exc: BaseException | None = None) -> None:
        self.output = output
        self.exc = exc

    async def generate(self, request: GenerationRequest, model: ModelDescriptor) -> EngineOutput:
        if self.exc is not None:
            raise self.exc
        return self.output


def test_completed_and_length_limited_results() -> None:
    async def _run():
        done = DispatchController(_OutputEngine(EngineOutput("a b", 2)), 2, 0.1, 1.0)
        cut = DispatchController(_OutputEngine(EngineOutput("a b c", 3, length_limited=True)), 2, 0.1, 1.0)
        return await done.dispatch(REQ, MODEL), await cut.dispatch(REQ, MODEL)

    done, cut = asyncio.run(_run())
    assert done.finish_reason is FinishReason.COMPLETED
    assert done.generated_text == "a b"
    assert done.token_count_used == 2
    assert done.model_id == "m1"
    assert cut.finish_reason is FinishReason.LENGTH_LIMITED


def test_excess_load_is_rejected_and_permits_restored() -> None:
    capacity, extra = 3, 2

    async def _run():
        engine = _GatedEngine()
        controller = DispatchController(engine, capacity, admission_timeout_s=0.05, execution_timeout_s=5.0)
        tasks = [asyncio.create_task(controller.dispatch(REQ, MODEL)) for _ in range(capacity + extra)]
        await asyncio.sleep(0.3)
        active_while_saturated = controller.active_requests
        engine.release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        # the pool is fully usable again
        again = await asyncio.gather(*(controller.dispatch(REQ, MODEL) for _ in range(capacity)))
        return controller, engine, active_while_saturated, results, again

    controller, engine, active_while_saturated, results, again = asyncio.run(_run())
    assert active_while_saturated == capacity
    assert engine.peak == capacity
    assert sum(isinstance(r, Overloaded) for r in results) == extra
    assert sum(getattr(r, "finish_reason", None) is FinishReason.COMPLETED for r in results) == capacity
    assert len(again) == capacity
    assert controller.active_requests == 0
    assert controller.available_permits == capacity


def test_execution_timeout_cancels_engine_and_releases_permit() -> None:
    async def _run():
        engine = _GatedEngine()
        controller = DispatchController(engine, 1, admission_timeout_s=0.1, execution_timeout_s=0.05)
        start = time.monotonic()
        with pytest.raises(GenerationTimeout) as info:
            await controller.dispatch(REQ, MODEL)
        elapsed = time.monotonic() - start
        return controller, engine, info.value, elapsed

    controller, engine, err, elapsed = asyncio.run(_run())
    assert err.result.finish_reason is FinishReason.CANCELLED
    assert err.status_code == 504
    assert engine.cancelled == 1
    assert elapsed < 1.0
    assert controller.available_permits == 1


def test_engine_exception_classified_as_engine_error() -> None:
    async def _run():
        controller = DispatchController(_OutputEngine(exc=RuntimeError("boom")), 2, 0.1, 1.0)
        with pytest.raises(EngineError) as info:
            await controller.dispatch(REQ, MODEL)
        return controller, info.value

    controller, err = asyncio.run(_run())
    assert err.result.finish_reason is FinishReason.ERROR
    assert isinstance(err.__cause__, RuntimeError)
    assert controller.available_permits == 2


def test_engine_raised_timeout_is_an_engine_error() -> None:
    async def _run():
        controller = DispatchController(_OutputEngine(exc=TimeoutError("upstream")), 1, 0.1, 5.0)
        with pytest.raises(EngineError):
            await controller.dispatch(REQ, MODEL)
        return controller

    assert asyncio.run(_run()).available_permits == 1


def test_caller_cancellation_releases_permit() -> None:
    async def _run():
        engine = _GatedEngine()
        controller = DispatchController(engine, 1, admission_timeout_s=0.1, execution_timeout_s=5.0)
        task = asyncio.create_task(controller.dispatch(REQ, MODEL))
        await engine.started.wait()
        assert controller.active_requests == 1
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return controller, engine

    controller, engine = asyncio.run(_run())
    assert engine.cancelled == 1
    assert controller.available_permits == 1


def test_cancel_while_waiting_for_admission() -> None:
    async def _run():
        engine = _GatedEngine()
        controller = DispatchController(engine, 1, admission_timeout_s=5.0, execution_timeout_s=5.0)
        holder = asyncio.create_task(controller.dispatch(REQ, MODEL))
        await engine.started.wait()
        waiter = asyncio.create_task(controller.dispatch(REQ, MODEL))
        await asyncio.sleep(0.05)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        engine.release.set()
        await holder
        return controller

    controller = asyncio.run(_run())
    assert controller.active_requests == 0
    assert controller.available_permits == 1


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        DispatchController(_OutputEngine(), 0, 0.1, 1.0)

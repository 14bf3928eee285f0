from __future__ import annotations

from dataclasses import dataclass

from inference_gateway.common.schema import HealthStatus, ModelDescriptor
from inference_gateway.core.health import HealthMonitor
from inference_gateway.core.registry import ModelRegistry
from inference_gateway.core.shaping import shape_health


@dataclass
class _FakeController:
    active_requests: int
    capacity: int


def _registry(*available: bool) -> ModelRegistry:
    return ModelRegistry(
        [ModelDescriptor(f"m{i}", f"M{i}", 1024, available=a) for i, a in enumerate(available)],
        default_model_id="m0",
    )


def test_healthy_under_capacity() -> None:
    snap = HealthMonitor(_FakeController(3, 10), _registry(True, True)).snapshot()
    assert snap.status is HealthStatus.HEALTHY
    assert snap.active_requests == 3
    assert snap.capacity == 10
    assert snap.models_available == 2
    assert snap.uptime_seconds >= 0


def test_degraded_when_saturated() -> None:
    snap = HealthMonitor(_FakeController(10, 10), _registry(True)).snapshot()
    assert snap.status is HealthStatus.DEGRADED


def test_degraded_when_some_models_unavailable() -> None:
    snap = HealthMonitor(_FakeController(0, 10), _registry(True, False)).snapshot()
    assert snap.status is HealthStatus.DEGRADED


def test_unhealthy_when_no_model_available() -> None:
    snap = HealthMonitor(_FakeController(0, 10), _registry(False, False)).snapshot()
    assert snap.status is HealthStatus.UNHEALTHY


def test_shape_health_envelope() -> None:
    body = shape_health(HealthMonitor(_FakeController(0, 4), _registry(True)).snapshot())
    assert body["status"] == "healthy"
    assert body["active_requests"] == 0
    assert body["capacity"] == 4
    assert body["service"] == "inference-gateway"
    assert "uptime_seconds" in body

"""Health reporting derived from local dispatch and registry state only."""
from __future__ import annotations
import time

from inference_gateway.common.schema import HealthSnapshot, HealthStatus
from inference_gateway.core.dispatch import DispatchController
from inference_gateway.core.registry import ModelRegistry


class HealthMonitor:
    """Computes a HealthSnapshot on demand.

    Reads counters only; never awaits and never touches the engine, so a hung
    generation cannot starve a health check.
    """

    def __init__(self, controller: DispatchController, registry: ModelRegistry) -> None:
        self.controller = controller
        self.registry = registry
        self._started = time.monotonic()

    def snapshot(self) -> HealthSnapshot:
        active = self.controller.active_requests
        capacity = self.controller.capacity
        available = self.registry.available_count()
        total = len(self.registry)

        if available == 0:
            status = HealthStatus.UNHEALTHY
        elif active >= capacity or available < total:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.HEALTHY

        return HealthSnapshot(
            status=status,
            active_requests=active,
            capacity=capacity,
            uptime_seconds=int(time.monotonic() - self._started),
            models_available=available,
            models_total=total,
        )

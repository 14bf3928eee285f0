"""Model registry: the set of models the gateway can serve."""
from __future__ import annotations
import logging
import threading
from typing import Iterable

from inference_gateway.common.config import GatewayConfig, load_model_descriptors
from inference_gateway.common.errors import ConfigError, ModelNotFound
from inference_gateway.common.schema import ModelDescriptor

LOGGER = logging.getLogger("inference_gateway.registry")


def _default_descriptor(model_id: str) -> ModelDescriptor:
    return ModelDescriptor(
        id=model_id,
        display_name="Text Generation v1",
        max_context_tokens=4096,
        available=True,
    )


class ModelRegistry:
    """
    Read-mostly catalogue of ModelDescriptors.

    The descriptor set is an immutable snapshot. ``replace`` swaps in a whole
    new snapshot; readers never see a partially updated set.
    """

    def __init__(self, descriptors: Iterable[ModelDescriptor], default_model_id: str) -> None:
        self.default_model_id = default_model_id
        self._lock = threading.Lock()
        self._models: dict[str, ModelDescriptor] = self._index(descriptors)

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "ModelRegistry":
        if config.models_file:
            descriptors = load_model_descriptors(config.models_file)
            LOGGER.info("Loaded %d model descriptors from %s", len(descriptors), config.models_file)
        else:
            descriptors = [_default_descriptor(config.default_model_id)]
        registry = cls(descriptors, config.default_model_id)
        if config.default_model_id not in registry._models:
            LOGGER.warning(
                "Default model %s is not in the registry; requests without 'model' will get 404",
                config.default_model_id,
            )
        return registry

    @staticmethod
    def _index(descriptors: Iterable[ModelDescriptor]) -> dict[str, ModelDescriptor]:
        models: dict[str, ModelDescriptor] = {}
        for d in descriptors:
            if d.id in models:
                raise ConfigError(f"Duplicate model id {d.id!r}")
            models[d.id] = d
        return models

    def replace(self, descriptors: Iterable[ModelDescriptor]) -> None:
        """Swap in a new descriptor set (configuration reload)."""
        snapshot = self._index(descriptors)
        with self._lock:
            self._models = snapshot
        LOGGER.info("Model registry replaced: %d models", len(snapshot))

    def list_models(self) -> list[ModelDescriptor]:
        models = self._models
        return [models[k] for k in sorted(models)]

    def resolve(self, model_id: str | None = None) -> ModelDescriptor:
        """
        Look up a servable model.

        Args:
            model_id: Requested id, or None for the configured default.

        Raises:
            ModelNotFound: if the id is unknown or the model is unavailable.
        """
        wanted = model_id or self.default_model_id
        descriptor = self._models.get(wanted)
        if descriptor is None or not descriptor.available:
            raise ModelNotFound(wanted)
        return descriptor

    def available_count(self) -> int:
        return sum(1 for d in self._models.values() if d.available)

    def __len__(self) -> int:
        return len(self._models)

from __future__ import annotations

from pathlib import Path

import pytest

from inference_gateway.common.config import GatewayConfig
from inference_gateway.common.errors import ConfigError, ModelNotFound
from inference_gateway.common.schema import ModelDescriptor
from inference_gateway.core.registry import ModelRegistry


def _registry() -> ModelRegistry:
    return ModelRegistry(
        [
            ModelDescriptor("zeta", "Zeta", 2048),
            ModelDescriptor("alpha", "Alpha", 4096),
            ModelDescriptor("offline", "Offline", 4096, available=False),
        ],
        default_model_id="alpha",
    )


def test_list_models_sorted_by_id() -> None:
    assert [d.id for d in _registry().list_models()] == ["alpha", "offline", "zeta"]


def test_resolve_default_and_explicit() -> None:
    reg = _registry()
    assert reg.resolve(None).id == "alpha"
    assert reg.resolve("zeta").display_name == "Zeta"


@pytest.mark.parametrize("model_id", ["missing", "offline"])
def test_resolve_unknown_or_unavailable(model_id: str) -> None:
    with pytest.raises(ModelNotFound) as info:
        _registry().resolve(model_id)
    assert info.value.model_id == model_id
    assert info.value.status_code == 404


def test_counts_and_replace() -> None:
    reg = _registry()
    assert len(reg) == 3
    assert reg.available_count() == 2
    reg.replace([ModelDescriptor("alpha", "Alpha 2", 8192)])
    assert len(reg) == 1
    assert reg.resolve().display_name == "Alpha 2"
    with pytest.raises(ModelNotFound):
        reg.resolve("zeta")


def test_duplicate_ids_rejected() -> None:
    with pytest.raises(ConfigError):
        ModelRegistry([ModelDescriptor("a", "A", 1), ModelDescriptor("a", "A", 1)], "a")


def test_from_config_builtin_default() -> None:
    reg = ModelRegistry.from_config(GatewayConfig(default_model_id="my-model"))
    assert [d.id for d in reg.list_models()] == ["my-model"]
    assert reg.resolve().available


def test_from_config_yaml(tmp_path: Path) -> None:
    path = tmp_path / "models.yaml"
    path.write_text(
        "models:\n"
        "  - id: b-model\n"
        "    display_name: B\n"
        "    max_context_tokens: 8192\n"
        "  - id: a-model\n"
        "    available: false\n",
        encoding="utf-8",
    )
    reg = ModelRegistry.from_config(GatewayConfig(models_file=str(path), default_model_id="b-model"))
    models = reg.list_models()
    assert [d.id for d in models] == ["a-model", "b-model"]
    assert models[0].display_name == "a-model"
    assert models[0].available is False
    assert models[1].max_context_tokens == 8192


def test_repo_models_file_loads() -> None:
    path = Path(__file__).resolve().parent.parent / "configs" / "models.yaml"
    reg = ModelRegistry.from_config(GatewayConfig(models_file=str(path)))
    assert reg.resolve().id == "text-gen-v1"

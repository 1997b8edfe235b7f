from __future__ import annotations

from pathlib import Path

import pytest

from askai_gateway.common.config import DEFAULT_API_KEY, GatewayConfig
from askai_gateway.common.errors import ConfigError


def test_defaults() -> None:
    cfg = GatewayConfig.from_env({})
    assert cfg.port == 3000
    assert cfg.chunk_size == 2
    assert cfg.delay_ms == 2
    assert cfg.default_model == "askai-default-model"
    assert cfg.known_models == ("askai-default-model",)
    assert cfg.api_master_key == DEFAULT_API_KEY
    assert cfg.uses_default_key


def test_env_overrides() -> None:
    cfg = GatewayConfig.from_env(
        {
            "PORT": "8080",
            "API_MASTER_KEY": "s3cret",
            "UPSTREAM_URL": "http://localhost:9000/get-summary",
            "KNOWN_MODELS": "m1, m2 ,",
            "PSEUDO_STREAM_CHUNK_SIZE": "5",
            "PSEUDO_STREAM_DELAY_MS": "0",
        }
    )
    assert cfg.port == 8080
    assert cfg.api_master_key == "s3cret"
    assert not cfg.uses_default_key
    assert cfg.upstream_url == "http://localhost:9000/get-summary"
    assert cfg.known_models == ("m1", "m2")
    assert cfg.chunk_size == 5
    assert cfg.delay_ms == 0


def test_default_model_becomes_known_model() -> None:
    cfg = GatewayConfig.from_env({"DEFAULT_MODEL": "custom"})
    assert cfg.known_models == ("custom",)


@pytest.mark.parametrize(
    "env",
    [
        {"PSEUDO_STREAM_CHUNK_SIZE": "0"},
        {"PSEUDO_STREAM_CHUNK_SIZE": "-3"},
        {"PSEUDO_STREAM_CHUNK_SIZE": "two"},
        {"PSEUDO_STREAM_DELAY_MS": "-1"},
        {"PORT": "http"},
        {"KNOWN_MODELS": " , "},
    ],
)
def test_invalid_values_rejected(env: dict[str, str]) -> None:
    with pytest.raises(ConfigError):
        GatewayConfig.from_env(env)


def test_yaml_file_with_env_precedence(tmp_path: Path) -> None:
    cfg_file = tmp_path / "gateway.yaml"
    cfg_file.write_text(
        "chunk_size: 4\ndelay_ms: 10\nknown_models:\n  - a\n  - b\nowned_by: me\n",
        encoding="utf-8",
    )
    cfg = GatewayConfig.from_env({"GATEWAY_CONFIG": str(cfg_file), "PSEUDO_STREAM_DELAY_MS": "1"})
    assert cfg.chunk_size == 4
    assert cfg.delay_ms == 1
    assert cfg.known_models == ("a", "b")
    assert cfg.owned_by == "me"


def test_yaml_unknown_key_rejected(tmp_path: Path) -> None:
    cfg_file = tmp_path / "gateway.yaml"
    cfg_file.write_text("chunk_sise: 4\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        GatewayConfig.from_env({"GATEWAY_CONFIG": str(cfg_file)})


def test_config_is_immutable_and_hides_secret() -> None:
    cfg = GatewayConfig(api_master_key="top-secret")
    with pytest.raises(AttributeError):
        cfg.chunk_size = 9  # type: ignore[misc]
    assert "top-secret" not in str(cfg.public_view())


def test_yaml_scalars_become_strings(tmp_path: Path) -> None:
    cfg_file = tmp_path / "gateway.yaml"
    cfg_file.write_text(
        "api_master_key: 12345\ndefault_model: 7\nowned_by: 2024\nknown_models: [1, two]\n",
        encoding="utf-8",
    )
    cfg = GatewayConfig.from_env({"GATEWAY_CONFIG": str(cfg_file)})
    assert cfg.api_master_key == "12345"
    assert cfg.default_model == "7"
    assert cfg.owned_by == "2024"
    assert cfg.known_models == ("1", "two")


@pytest.mark.parametrize(
    "body",
    [
        "known_models: null\n",
        "known_models: {a: 1}\n",
        "api_master_key: null\n",
        "api_master_key: [a, b]\n",
        "owned_by: {x: y}\n",
    ],
)
def test_yaml_wrong_types_rejected(tmp_path: Path, body: str) -> None:
    cfg_file = tmp_path / "gateway.yaml"
    cfg_file.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError):
        GatewayConfig.from_env({"GATEWAY_CONFIG": str(cfg_file)})


def test_direct_construction_checks_string_fields() -> None:
    with pytest.raises(ConfigError):
        GatewayConfig(api_master_key=12345)  # type: ignore[arg-type]

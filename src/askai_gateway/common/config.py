"""Gateway configuration, read once at startup.

Values come from an optional YAML file (path in ``GATEWAY_CONFIG``) and the
process environment; environment variables win.
"""
from __future__ import annotations
import os
from dataclasses import asdict, dataclass
from typing import Any, Mapping

import yaml

from askai_gateway import __version__
from askai_gateway.common.errors import ConfigError

DEFAULT_API_KEY = "default-unsafe-key"
DEFAULT_UPSTREAM_URL = "https://pjfuothbq9.execute-api.us-east-1.amazonaws.com/get-summary"
DEFAULT_MODEL = "askai-default-model"

# env var -> config field
_ENV_FIELDS: dict[str, str] = {
    "HOST": "host",
    "PORT": "port",
    "API_MASTER_KEY": "api_master_key",
    "UPSTREAM_URL": "upstream_url",
    "DEFAULT_MODEL": "default_model",
    "KNOWN_MODELS": "known_models",
    "PSEUDO_STREAM_CHUNK_SIZE": "chunk_size",
    "PSEUDO_STREAM_DELAY_MS": "delay_ms",
    "LOG_LEVEL": "log_level",
    "MODEL_OWNER": "owned_by",
    "UPSTREAM_WEBSITE": "upstream_website",
    "UPSTREAM_ORIGIN": "upstream_origin",
    "UPSTREAM_REFERER": "upstream_referer",
    "UPSTREAM_USER_AGENT": "upstream_user_agent",
}


def load_cfg(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


_STR_FIELDS = (
    "host",
    "api_master_key",
    "upstream_url",
    "default_model",
    "log_level",
    "project_name",
    "version",
    "owned_by",
    "upstream_website",
    "upstream_origin",
    "upstream_referer",
    "upstream_user_agent",
)


def _as_str(attr: str, value: Any) -> str:
    # YAML may hand back numbers or booleans for bare scalars
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError(f"Invalid value for {attr}: {value!r}")


def _split_models(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [_as_str("known_models", v) for v in value]
    else:
        raise ConfigError(f"known_models must be a list or comma-separated string, got {value!r}")
    return tuple(item.strip() for item in items if item.strip())


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable process configuration passed into the app, client and emitter."""

    host: str = "0.0.0.0"
    port: int = 3000
    api_master_key: str = DEFAULT_API_KEY
    upstream_url: str = DEFAULT_UPSTREAM_URL
    default_model: str = DEFAULT_MODEL
    known_models: tuple[str, ...] = (DEFAULT_MODEL,)
    chunk_size: int = 2
    delay_ms: int = 2
    log_level: str = "INFO"
    project_name: str = "askaiquestions-2api"
    version: str = __version__
    owned_by: str = "askai-project"
    upstream_website: str = "ask-ai-questions"
    upstream_origin: str = "https://askaiquestions.net"
    upstream_referer: str = "https://askaiquestions.net/"
    upstream_user_agent: str = "Mozilla/5.0 (compatible; askai-gateway; +https://askaiquestions.net)"

    def __post_init__(self) -> None:
        for attr in _STR_FIELDS:
            if not isinstance(getattr(self, attr), str):
                raise ConfigError(f"{attr} must be a string, got {getattr(self, attr)!r}")
        if self.chunk_size < 1:
            raise ConfigError(f"PSEUDO_STREAM_CHUNK_SIZE must be >= 1, got {self.chunk_size}")
        if self.delay_ms < 0:
            raise ConfigError(f"PSEUDO_STREAM_DELAY_MS must be >= 0, got {self.delay_ms}")
        if not self.known_models:
            raise ConfigError("KNOWN_MODELS must name at least one model")
        if not self.api_master_key:
            raise ConfigError("API_MASTER_KEY must not be empty")

    @property
    def uses_default_key(self) -> bool:
        return self.api_master_key == DEFAULT_API_KEY

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "GatewayConfig":
        known = set(cls.__dataclass_fields__)
        unknown = set(values) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        kwargs = dict(values)
        for attr in ("port", "chunk_size", "delay_ms"):
            if attr in kwargs:
                try:
                    kwargs[attr] = int(kwargs[attr])
                except (TypeError, ValueError) as e:
                    raise ConfigError(f"Invalid value for {attr}: {kwargs[attr]!r}") from e
        for attr in _STR_FIELDS:
            if attr in kwargs:
                kwargs[attr] = _as_str(attr, kwargs[attr])
        if "known_models" in kwargs:
            kwargs["known_models"] = _split_models(kwargs["known_models"])
        return cls(**kwargs)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "GatewayConfig":
        """
        Build the config from the environment.

        Args:
            env: Mapping to read instead of ``os.environ``.
        """
        env = os.environ if env is None else env
        values: dict[str, Any] = {}
        cfg_path = env.get("GATEWAY_CONFIG")
        if cfg_path:
            values.update(load_cfg(cfg_path))

        for name, attr in _ENV_FIELDS.items():
            raw = env.get(name)
            if raw:
                values[attr] = raw

        if "known_models" not in values and "default_model" in values:
            values["known_models"] = (values["default_model"],)
        return cls.from_mapping(values)

    def public_view(self) -> dict[str, Any]:
        """Config as a dict with the secret masked, for startup logs."""
        data = asdict(self)
        data["api_master_key"] = "***"
        return data

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_HOSTS,
    DEFAULT_INDEX,
    ElasticsearchConfig,
    FieldNameConfig,
    IndexerConfig,
)

"""Config loader.

- Load YAML (default config/indexer.yml)
- Validate against config_schema.json shipped next to this module
- Apply defaults for every missing key
- Apply environment overrides for the Elasticsearch connection:
    ELASTICSEARCH_URL       (comma separated -> hosts)
    ELASTICSEARCH_USERNAME / ELASTICSEARCH_PASSWORD
    ELASTICSEARCH_API_KEY

The CLI loads .env (python-dotenv, override mode) before calling
load_config, so values from .env win over the process environment.
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/indexer.yml")

ENV_URL = "ELASTICSEARCH_URL"
ENV_USERNAME = "ELASTICSEARCH_USERNAME"
ENV_PASSWORD = "ELASTICSEARCH_PASSWORD"
ENV_API_KEY = "ELASTICSEARCH_API_KEY"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / not JSON, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _hosts(value: Any) -> tuple[str, ...]:
    if value is None:
        return DEFAULT_HOSTS
    if isinstance(value, str):
        value = value.split(",")
    hosts = tuple(h.strip() for h in value if h and h.strip())
    return hosts or DEFAULT_HOSTS


def _elasticsearch_config(raw: Mapping[str, Any], env: Mapping[str, str]) -> ElasticsearchConfig:
    # 環境変数 > YAML > 既定値
    return ElasticsearchConfig(
        hosts=_hosts(env.get(ENV_URL) or raw.get("hosts")),
        username=env.get(ENV_USERNAME) or raw.get("username"),
        password=env.get(ENV_PASSWORD) or raw.get("password"),
        api_key=env.get(ENV_API_KEY) or raw.get("api_key"),
        verify_certs=raw.get("verify_certs", True),
        ca_certs=raw.get("ca_certs"),
        request_timeout=raw.get("request_timeout"),
    )


def load_config(
    path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> IndexerConfig:
    """Load configuration.

    Args:
        path: YAML file. None means DEFAULT_CONFIG_PATH, which may be absent
            (defaults are used). An explicitly given path must exist.
        env: environment mapping (defaults to os.environ)

    Raises:
        ConfigError: missing explicit file, invalid YAML, schema violation
    """
    env = os.environ if env is None else env
    explicit = path is not None
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if path.exists():
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid yaml: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"config root must be a mapping: {path}")
        data = loaded or {}
    elif explicit:
        raise ConfigError(f"config file not found: {path}")

    _validate_config_schema(data)

    field_raw = data.get("field_names") or {}
    return IndexerConfig(
        elasticsearch=_elasticsearch_config(data.get("elasticsearch") or {}, env),
        index=data.get("index", DEFAULT_INDEX),
        field_names=FieldNameConfig(on_duplicate=field_raw.get("on_duplicate", "overwrite")),
        error_log_dir=data.get("error_log_dir", "./logs"),
    )

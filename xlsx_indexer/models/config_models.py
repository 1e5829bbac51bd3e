from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the spreadsheet -> Elasticsearch indexer.

Built by ``xlsx_indexer.config.loader`` from config/indexer.yml plus
environment overrides.
"""

DEFAULT_HOSTS = ("http://localhost:9200",)
DEFAULT_INDEX = "excel_data"
DUPLICATE_POLICIES = ("overwrite", "error")


@dataclass(frozen=True)
class ElasticsearchConfig:
    """Connection settings for the Elasticsearch client.

    Environment variables (ELASTICSEARCH_URL etc.) take precedence over these
    values; the loader applies them before building this object.
    """
    hosts: tuple[str, ...] = DEFAULT_HOSTS
    username: str | None = None
    password: str | None = None
    api_key: str | None = None
    verify_certs: bool = True
    ca_certs: str | None = None
    request_timeout: float | None = None  # None = client default

    @property
    def basic_auth(self) -> tuple[str, str] | None:
        if self.username:
            return (self.username, self.password or "")
        return None


@dataclass(frozen=True)
class FieldNameConfig:
    """How sanitized header collisions are handled."""
    on_duplicate: str = "overwrite"  # overwrite | error


@dataclass(frozen=True)
class IndexerConfig:
    """Root configuration object."""
    elasticsearch: ElasticsearchConfig = field(default_factory=ElasticsearchConfig)
    index: str = DEFAULT_INDEX
    field_names: FieldNameConfig = field(default_factory=FieldNameConfig)
    error_log_dir: str = "./logs"

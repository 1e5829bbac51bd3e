from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from elasticsearch import ApiError, Elasticsearch, NotFoundError, TransportError

from ..models.config_models import ElasticsearchConfig
from .query import build_query

"""Elasticsearch client wrapper.

IndexStore owns the connection state: ``connect()`` lazily builds and caches
one ``elasticsearch.Elasticsearch`` client, ``close()`` releases it. Both are
idempotent and the store can be used as a context manager.

Every client call runs under one lock, so a single store may be shared by
several worker threads (calls are then serialized).
"""

__all__ = [
    "IndexStore",
    "TransportFailureError",
]

logger = logging.getLogger(__name__)


class TransportFailureError(OSError):
    """Raised when a request to Elasticsearch could not complete."""


class IndexStore:
    """Thin resource object around the Elasticsearch client."""

    def __init__(
        self,
        config: ElasticsearchConfig | None = None,
        *,
        client_factory: Callable[..., Any] | None = None,
    ) -> None:
        self.config = config or ElasticsearchConfig()
        self._client_factory = client_factory or Elasticsearch
        self._client: Any | None = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ lifecycle
    def _client_kwargs(self) -> dict[str, Any]:
        cfg = self.config
        kwargs: dict[str, Any] = {"hosts": list(cfg.hosts)}
        if cfg.api_key:
            kwargs["api_key"] = cfg.api_key
        elif cfg.basic_auth:
            kwargs["basic_auth"] = cfg.basic_auth
        if not cfg.verify_certs:
            kwargs["verify_certs"] = False
        if cfg.ca_certs:
            kwargs["ca_certs"] = cfg.ca_certs
        if cfg.request_timeout is not None:
            kwargs["request_timeout"] = cfg.request_timeout
        return kwargs

    def connect(self) -> Any:
        """Return the cached client, creating it on first use."""
        with self._lock:
            if self._client is None:
                try:
                    self._client = self._client_factory(**self._client_kwargs())
                except (ValueError, TypeError) as e:
                    raise TransportFailureError(f"invalid connection settings: {e}") from e
                logger.debug("elasticsearch client created hosts=%s", list(self.config.hosts))
            return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def close(self) -> None:
        """Release the client (safe to call more than once)."""
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            try:
                client.close()
            except (OSError, TransportError) as e:
                logger.warning("error while closing elasticsearch client: %s", e)

    def __enter__(self) -> IndexStore:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # ------------------------------------------------------------------ calls
    def _call(self, action: str, fn: Callable[[Any], Any]) -> Any:
        client = self.connect()
        with self._lock:
            try:
                return fn(client)
            except (ApiError, TransportError) as e:
                raise TransportFailureError(f"{action} failed: {e}") from e

    @staticmethod
    def _body(response: Any) -> Any:
        return getattr(response, "body", response)

    def ping(self) -> bool:
        client = self.connect()
        with self._lock:
            try:
                return bool(client.ping())
            except (ApiError, TransportError) as e:
                logger.debug("ping failed: %s", e)
                return False

    def cluster_info(self) -> str:
        info = self._body(self._call("info", lambda c: c.info()))
        version = info.get("version", {})
        return (
            f"Cluster: {info.get('cluster_name')}, "
            f"Version: {version.get('number')}, "
            f"Lucene: {version.get('lucene_version')}"
        )

    def bulk_index(self, index: str, operations: list[Mapping[str, Any]]) -> Mapping[str, Any]:
        """Send one bulk request and return the raw response body."""
        return self._body(
            self._call("bulk", lambda c: c.bulk(operations=operations, index=index))
        )

    def count(self, index: str) -> int:
        try:
            body = self._body(self._call("count", lambda c: c.count(index=index)))
        except TransportFailureError as e:
            if isinstance(e.__cause__, NotFoundError):
                logger.warning("index not found: %s", index)
                return 0
            raise
        return int(body.get("count", 0))

    def search(
        self,
        index: str,
        query: str | None = None,
        size: int = 10,
        filters: Mapping[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """Return matching documents with ``_id`` and ``_index`` added."""
        q = build_query(query, filters)
        try:
            body = self._body(
                self._call("search", lambda c: c.search(index=index, query=q, size=size))
            )
        except TransportFailureError as e:
            if isinstance(e.__cause__, NotFoundError):
                logger.warning("index not found: %s", index)
                return []
            raise

        documents: list[dict[str, Any]] = []
        for hit in body.get("hits", {}).get("hits", []):
            doc: dict[str, Any] = {"_id": hit.get("_id"), "_index": hit.get("_index")}
            doc.update(hit.get("_source") or {})
            documents.append(doc)
        logger.debug("search index=%s query=%r hits=%d", index, query, len(documents))
        return documents

    def list_indices(self, pattern: str = "*", include_hidden: bool = False) -> list[str]:
        body = self._body(self._call("list indices", lambda c: c.indices.get(index=pattern)))
        names = sorted(body.keys())
        if not include_hidden:
            names = [n for n in names if not n.startswith(".")]
        return names

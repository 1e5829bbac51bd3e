from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from ..models.processing_result import BatchFailure, BatchMetrics, BatchResult
from .store import TransportFailureError

"""Bulk submission of mapped documents.

All documents go out in ONE bulk request (one "index" action each). The
response items are walked in request order:

- item with "error" -> failed, reason logged with the document's row_number
- otherwise          -> succeeded

Per-document rejections never raise. Only a request that cannot complete at
all raises TransportFailureError. No retries and no splitting: sizing the
batch is the caller's job.
"""

__all__ = [
    "BulkTarget",
    "TransportFailureError",
    "build_operations",
    "submit_batch",
]

logger = logging.getLogger(__name__)


class BulkTarget(Protocol):
    def bulk_index(self, index: str, operations: list[Mapping[str, Any]]) -> Mapping[str, Any]: ...


def build_operations(index: str, documents: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    """Interleave action lines and sources for the bulk API."""
    operations: list[Mapping[str, Any]] = []
    for doc in documents:
        operations.append({"index": {"_index": index}})
        operations.append(doc)
    return operations


def _item_result(item: Mapping[str, Any] | None) -> Mapping[str, Any]:
    # 各 item は {"index": {...}} 形式 (アクション名が唯一のキー)
    if not item:
        return {}
    return next(iter(item.values()), {}) or {}


def submit_batch(
    store: BulkTarget,
    index: str,
    documents: Iterable[Mapping[str, Any]],
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> BatchResult:
    """Index ``documents`` into ``index`` with a single bulk request.

    Parameters
    ----------
    store: object exposing ``bulk_index(index, operations)`` (IndexStore)
    index: target index name (must be non-empty)
    documents: mapped documents, in source row order
    metrics_callback: receives BatchMetrics for the request. Not invoked when
        ``documents`` is empty (nothing is sent).
    """
    if not index or not index.strip():
        raise ValueError("index name must not be empty")

    docs = list(documents)
    if not docs:
        return BatchResult.empty()

    operations = build_operations(index, docs)

    start_time = time.time()
    try:
        response = store.bulk_index(index, operations)
    except TransportFailureError:
        raise
    except OSError as e:
        raise TransportFailureError(f"bulk failed: {e}") from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(BatchMetrics(
                batch_size=len(docs),
                elapsed_seconds=end_time - start_time,
                start_time=start_time,
                end_time=end_time,
            ))

    items = list(response.get("items") or [])
    succeeded = 0
    failures: list[BatchFailure] = []
    for position, item in enumerate(items[: len(docs)]):
        result = _item_result(item)
        error = result.get("error")
        if not error:
            succeeded += 1
            continue
        if isinstance(error, Mapping):
            error_type = str(error.get("type", "unknown"))
            reason = str(error.get("reason", error))
        else:
            error_type, reason = "unknown", str(error)
        row_number = docs[position].get("row_number")
        logger.error(
            "document rejected index=%s row=%s type=%s reason=%s",
            index, row_number, error_type, reason,
        )
        failures.append(BatchFailure(position, row_number, error_type, reason))

    if len(items) != len(docs):
        logger.warning(
            "bulk response item count mismatch index=%s submitted=%d acknowledged=%d",
            index, len(docs), len(items),
        )
        for position in range(len(items), len(docs)):
            failures.append(BatchFailure(
                position,
                docs[position].get("row_number"),
                "missing_acknowledgement",
                "no item in bulk response",
            ))

    logger.info(
        "bulk completed index=%s submitted=%d succeeded=%d failed=%d",
        index, len(docs), succeeded, len(failures),
    )
    return BatchResult(
        submitted=len(docs),
        succeeded=succeeded,
        failed=len(failures),
        failures=failures,
    )

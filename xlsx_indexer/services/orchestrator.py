from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Executor, Future
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..excel.reader import read_rows
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.processing_result import BatchMetrics, BatchResult, IngestReport
from ..search.bulk import BulkTarget, submit_batch
from .field_mapper import build_field_names, map_row
from .progress import ProgressTracker

"""Ingestion pipeline: read -> map -> submit.

``ingest_file`` runs synchronously on the calling thread and returns an
IngestReport; ``ingest`` is the same call reduced to the succeeded count.

- empty sheet (no header row): nothing is submitted, report.empty_source=True
- SourceUnavailableError from the reader propagates unchanged
- TransportFailureError from the bulk call propagates unchanged
- rejected documents are counted (and written to the error log if given)

Nothing here starts threads. ``schedule_ingest`` hands the call to an
executor owned by the caller, who is also responsible for moving the result
onto its own UI/event thread.
"""

__all__ = [
    "ingest",
    "ingest_file",
    "schedule_ingest",
]

logger = logging.getLogger(__name__)


def _finish(
    path: Path,
    index: str,
    start_time: datetime,
    *,
    rows_read: int,
    documents: int,
    truncated_rows: int,
    batch: BatchResult | None,
    empty_source: bool,
) -> IngestReport:
    end_time = datetime.now(UTC)
    elapsed = (end_time - start_time).total_seconds()
    succeeded = batch.succeeded if batch else 0
    throughput = succeeded / elapsed if elapsed > 0 else 0.0
    return IngestReport(
        source=path,
        index=index,
        rows_read=rows_read,
        documents=documents,
        truncated_rows=truncated_rows,
        batch=batch,
        empty_source=empty_source,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed,
        throughput_docs_per_sec=throughput,
    )


def ingest_file(
    path: Path | str,
    index: str,
    store: BulkTarget,
    *,
    on_duplicate: str = "overwrite",
    error_log: ErrorLogBuffer | None = None,
    now: datetime | Callable[[], datetime] | None = None,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> IngestReport:
    """Ingest one spreadsheet into ``index``.

    Args:
        path: .xlsx file (first worksheet is read)
        index: target index name, must be non-empty
        store: IndexStore (or anything exposing bulk_index)
        on_duplicate: "overwrite" (last column wins) or "error"
        error_log: buffer receiving one ErrorRecord per rejected document
        now: fixed timestamp / clock for the indexed_at field
        metrics_callback: forwarded to submit_batch

    Returns:
        IngestReport with counts and timings
    """
    if not index or not str(index).strip():
        raise ValueError("index name must not be empty")
    path = Path(path)
    start_time = datetime.now(UTC)

    rows = read_rows(path)
    if not rows:
        logger.warning("file=%s has no rows (no header row); nothing indexed", path.name)
        return _finish(
            path, index, start_time,
            rows_read=0, documents=0, truncated_rows=0, batch=None, empty_source=True,
        )

    header = rows[0].cells
    field_names = build_field_names(header, on_duplicate=on_duplicate)
    data_rows = rows[1:]
    logger.info(
        "file=%s index=%s fields=%s data_rows=%d", path.name, index, field_names, len(data_rows)
    )

    documents: list[dict[str, Any]] = []
    truncated = 0
    with ProgressTracker(len(data_rows)) as progress:
        for row in data_rows:
            if len(row.cells) > len(header):
                truncated += 1
                logger.debug(
                    "row=%d has %d cells, header has %d; extra cells dropped",
                    row.ordinal, len(row.cells), len(header),
                )
            elif len(row.cells) < len(header):
                logger.debug(
                    "row=%d has %d cells, header has %d; missing fields omitted",
                    row.ordinal, len(row.cells), len(header),
                )
            documents.append(
                map_row(header, row.cells, row.ordinal, now=now, field_names=field_names)
            )
            progress.advance()
    if truncated:
        logger.warning("file=%s rows_with_dropped_cells=%d", path.name, truncated)

    batch = submit_batch(store, index, documents, metrics_callback=metrics_callback)

    if error_log is not None:
        for failure in batch.failures:
            error_log.append(ErrorRecord.create(
                file=path.name,
                index=index,
                row=failure.row_number if failure.row_number is not None else -1,
                error_type=failure.error_type.upper(),
                reason=failure.reason,
            ))

    return _finish(
        path, index, start_time,
        rows_read=len(rows),
        documents=len(documents),
        truncated_rows=truncated,
        batch=batch,
        empty_source=False,
    )


def ingest(path: Path | str, index: str, store: BulkTarget, **kwargs: Any) -> int:
    """Ingest ``path`` into ``index`` and return the number of indexed documents."""
    return ingest_file(path, index, store, **kwargs).succeeded


def schedule_ingest(
    executor: Executor,
    path: Path | str,
    index: str,
    store: BulkTarget,
    **kwargs: Any,
) -> Future[IngestReport]:
    """Run ingest_file on ``executor`` and return its Future."""
    return executor.submit(ingest_file, path, index, store, **kwargs)

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

"""Result models for bulk submission and whole-file ingestion.

BatchResult is produced once per bulk request and IngestReport once per
ingested file. Neither is persisted.
"""

__all__ = [
    "BatchFailure",
    "BatchMetrics",
    "BatchResult",
    "IngestReport",
]


@dataclass(frozen=True)
class BatchMetrics:
    """Timing data for a single bulk request."""
    batch_size: int  # documents in the request
    elapsed_seconds: float
    start_time: float  # time.time()
    end_time: float


@dataclass(frozen=True)
class BatchFailure:
    """One document the index rejected."""
    position: int  # 0-based position inside the bulk request
    row_number: int | None  # row_number metadata of the document, if present
    error_type: str
    reason: str


@dataclass(frozen=True)
class BatchResult:
    submitted: int
    succeeded: int
    failed: int
    failures: list[BatchFailure] = field(default_factory=list)

    @classmethod
    def empty(cls) -> BatchResult:
        return cls(submitted=0, succeeded=0, failed=0, failures=[])


@dataclass(frozen=True)
class IngestReport:
    """Outcome of ingesting one spreadsheet into one index."""
    source: Path
    index: str
    rows_read: int  # header included
    documents: int  # data rows mapped to documents
    truncated_rows: int  # data rows longer than the header (extra cells dropped)
    batch: BatchResult | None  # None when nothing was submitted
    empty_source: bool
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_docs_per_sec: float

    @property
    def submitted(self) -> int:
        return self.batch.submitted if self.batch else 0

    @property
    def succeeded(self) -> int:
        return self.batch.succeeded if self.batch else 0

    @property
    def failed(self) -> int:
        return self.batch.failed if self.batch else 0

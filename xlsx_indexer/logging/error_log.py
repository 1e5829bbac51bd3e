from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Error log buffering.

Rejected documents (and file-level failures, row=-1) are collected as
ErrorRecords and written as JSON Lines to
``<logs_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC) on flush. The file is
only created when there is something to write.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    Not thread-safe: use one buffer per ingest call.
    """

    def __init__(self, logs_dir: Path | str | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._logs_dir = Path(logs_dir) if logs_dir is not None else LOGS_DIR
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file; None if nothing was written."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp

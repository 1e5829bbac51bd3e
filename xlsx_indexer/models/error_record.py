from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per document the index rejected (or per file-level failure, with
row=-1 when no single row can be blamed).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Source spreadsheet file name
        index: Target index name
        row: 1-based data row number. -1 for file-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        reason: Reason reported by the index (or exception text)
    """
    timestamp: str
    file: str
    index: str
    row: int
    error_type: str
    reason: str

    @staticmethod
    def create(file: str, index: str, row: int, error_type: str, reason: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            index=index,
            row=row,
            error_type=error_type,
            reason=reason,
        )

    def to_json_line(self) -> str:
        # dataclass -> dict なので余計なキーは出ない
        return json.dumps(asdict(self), ensure_ascii=False)

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from ..models.config_models import DUPLICATE_POLICIES

"""Header sanitizing and row -> document mapping.

Field names: every character outside [A-Za-z0-9_] becomes "_", then the
result is lower-cased ("Customer Name" -> "customer_name").

Documents pair the i-th field name with the i-th cell up to the shorter of
the two rows, then add two metadata fields:

- row_number: 1-based data row ordinal
- indexed_at: ISO-8601 UTC timestamp ('Z' suffix)

Metadata is written last and wins over a header with the same name.
Duplicate field names are "last column wins" unless the strict policy is
selected, in which case DuplicateFieldError is raised.
"""

__all__ = [
    "DuplicateFieldError",
    "METADATA_FIELDS",
    "build_field_names",
    "find_duplicate_fields",
    "map_row",
    "sanitize_field_name",
    "utc_timestamp",
]

logger = logging.getLogger(__name__)

ROW_NUMBER_FIELD = "row_number"
INDEXED_AT_FIELD = "indexed_at"
METADATA_FIELDS = (ROW_NUMBER_FIELD, INDEXED_AT_FIELD)

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_]")


class DuplicateFieldError(ValueError):
    """Raised when two headers sanitize to the same field name (strict policy)."""


def sanitize_field_name(header: str) -> str:
    return _INVALID_CHARS.sub("_", str(header)).lower()


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 in UTC with a 'Z' suffix; a naive ``now`` is taken as UTC."""
    ts = now or datetime.now(UTC)
    ts = ts.replace(tzinfo=UTC) if ts.tzinfo is None else ts.astimezone(UTC)
    return ts.isoformat().replace("+00:00", "Z")


def find_duplicate_fields(headers: Sequence[str]) -> dict[str, list[int]]:
    """Map each colliding field name to the column positions producing it."""
    positions: dict[str, list[int]] = {}
    for i, h in enumerate(headers):
        positions.setdefault(sanitize_field_name(h), []).append(i)
    return {name: cols for name, cols in positions.items() if len(cols) > 1}


def build_field_names(headers: Sequence[str], on_duplicate: str = "overwrite") -> list[str]:
    """Sanitize a header row, applying the duplicate policy.

    Parameters
    ----------
    headers: raw header strings
    on_duplicate: "overwrite" (last column wins, WARN logged) or "error"
    """
    if on_duplicate not in DUPLICATE_POLICIES:
        raise ValueError(f"unknown duplicate policy: {on_duplicate!r}")
    names = [sanitize_field_name(h) for h in headers]
    duplicates = find_duplicate_fields(headers)
    if duplicates:
        if on_duplicate == "error":
            raise DuplicateFieldError(f"headers collide after sanitizing: {duplicates}")
        for name, cols in duplicates.items():
            logger.warning(
                "field=%s produced by columns=%s; last column wins", name, cols
            )
    reserved = sorted(set(names) & set(METADATA_FIELDS))
    if reserved:
        logger.warning("headers %s are replaced by ingestion metadata", reserved)
    return names


def map_row(
    header: Sequence[str],
    row: Sequence[str],
    ordinal: int,
    *,
    now: datetime | Callable[[], datetime] | None = None,
    on_duplicate: str = "overwrite",
    field_names: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Build one document from a data row.

    ``field_names`` may be passed pre-computed (see build_field_names) so a
    whole sheet sanitizes its header only once; otherwise ``header`` is
    sanitized here without duplicate logging.
    """
    if field_names is None:
        if on_duplicate == "error":
            field_names = build_field_names(header, on_duplicate="error")
        else:
            field_names = [sanitize_field_name(h) for h in header]
    if callable(now):
        now = now()

    document: dict[str, Any] = {}
    for name, value in zip(field_names, row):
        document[name] = value
    document[ROW_NUMBER_FIELD] = ordinal
    document[INDEXED_AT_FIELD] = utc_timestamp(now)
    return document

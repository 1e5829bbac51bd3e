from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

"""Search query construction.

Free text goes through ``simple_query_string`` over all fields; filters are
``field=value`` pairs applied as ``match_phrase`` clauses in filter context.
No text and no filters means ``match_all``.
"""


class FilterSyntaxError(ValueError):
    pass


def parse_filters(items: Iterable[str] | None) -> dict[str, str]:
    """Parse ["field=value", ...] into a dict (later duplicates win)."""
    filters: dict[str, str] = {}
    for item in items or ():
        field, sep, value = item.partition("=")
        field = field.strip()
        if not sep or not field:
            raise FilterSyntaxError(f"filter must look like field=value: {item!r}")
        filters[field] = value.strip()
    return filters


def build_query(text: str | None = None, filters: Mapping[str, str] | None = None) -> dict[str, Any]:
    text = (text or "").strip()
    clauses = [{"match_phrase": {field: value}} for field, value in (filters or {}).items()]
    if not text and not clauses:
        return {"match_all": {}}

    query: dict[str, Any] = {}
    if text:
        query["must"] = [{"simple_query_string": {"query": text, "default_operator": "and"}}]
    if clauses:
        query["filter"] = clauses
    return {"bool": query}

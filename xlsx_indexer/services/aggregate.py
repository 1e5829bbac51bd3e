from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import pandas as pd

"""Grouped totals for the bar-chart view.

Documents are grouped by one field and a numeric field is summed per group.
Values that do not parse as numbers count as 0. Documents missing either
field are ignored. The largest ``top`` groups are returned, biggest first.

``by_month`` groups ISO timestamps ("2024-03-07T10:00:00") by "YYYY-MM";
values that are not ISO dates are used as-is.
"""

__all__ = [
    "aggregate_totals",
    "month_key",
    "render_bar_chart",
]


def month_key(value: Any) -> str:
    text = str(value)
    ts = pd.to_datetime(text, errors="coerce", format="ISO8601")
    if pd.isna(ts):
        return text
    return f"{ts.year:04d}-{ts.month:02d}"


def aggregate_totals(
    documents: Iterable[Mapping[str, Any]],
    group_field: str,
    value_field: str = "total",
    *,
    top: int = 10,
    by_month: bool = False,
) -> list[tuple[str, float]]:
    records = [
        {"group": d[group_field], "value": d[value_field]}
        for d in documents
        if d.get(group_field) is not None and d.get(value_field) is not None
    ]
    if not records:
        return []
    df = pd.DataFrame.from_records(records)
    df["group"] = df["group"].map(month_key) if by_month else df["group"].astype(str)
    df["value"] = pd.to_numeric(df["value"], errors="coerce").fillna(0.0)
    totals = (
        df.groupby("group", sort=False)["value"]
        .sum()
        .sort_values(ascending=False, kind="stable")
        .head(top)
    )
    return [(str(k), float(v)) for k, v in totals.items()]


def render_bar_chart(totals: list[tuple[str, float]], width: int = 40) -> list[str]:
    """Text bar chart, one line per group."""
    if not totals:
        return []
    label_width = max(len(label) for label, _ in totals)
    peak = max(abs(v) for _, v in totals) or 1.0
    lines = []
    for label, value in totals:
        bar = "#" * max(1 if value else 0, int(round(abs(value) / peak * width)))
        lines.append(f"{label.ljust(label_width)} | {bar} {value:,.2f}")
    return lines

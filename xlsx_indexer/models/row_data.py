from __future__ import annotations

from dataclasses import dataclass, field

"""TabularRow model.

A TabularRow is one non-empty spreadsheet row after cell normalization.
``ordinal`` is 0-based and counts only rows that carry at least one value, so
ordinal 0 is always the header row.
"""

__all__ = [
    "TabularRow",
]


@dataclass(frozen=True)
class TabularRow:
    """One row of normalized cell strings."""
    ordinal: int  # 0 = header row
    cells: list[str] = field(default_factory=list)

    @property
    def is_header(self) -> bool:
        return self.ordinal == 0

    def __len__(self) -> int:
        return len(self.cells)

from __future__ import annotations

import logging
import zipfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from xml.etree.ElementTree import ParseError

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..models.row_data import TabularRow
from .cells import Blank, CellValue, cell_from_openpyxl, normalize

"""Spreadsheet reader.

Reads the first worksheet of an .xlsx file into TabularRows:

- row ordinal 0 is the header row, 1..N are data rows
- rows where every cell is empty are skipped (they get no ordinal)
- trailing empty cells are dropped, interior ones are kept as "" so that the
  columns stay aligned with the header

The workbook is loaded twice from one file handle: once with formulas (to
know which cells are formulas) and once with cached values (to get their
results). The handle is closed on every exit path.
"""

__all__ = [
    "SourceUnavailableError",
    "read_header",
    "read_rows",
]

logger = logging.getLogger(__name__)


class SourceUnavailableError(OSError):
    """Raised when the spreadsheet is missing, unreadable or not a valid .xlsx."""


def _load_views(path: Path) -> tuple[Any, Any]:
    """Return (formula_workbook, value_workbook) loaded from one handle."""
    with path.open("rb") as fh:
        formulas = load_workbook(fh, data_only=False)
        fh.seek(0)
        values = load_workbook(fh, data_only=True)
    return formulas, values


def _iter_cell_rows(formula_ws: Any, value_ws: Any) -> Iterator[list[CellValue]]:
    value_rows = value_ws.iter_rows()
    for formula_row in formula_ws.iter_rows():
        value_row = next(value_rows, ())
        cells: list[CellValue] = []
        for col, fcell in enumerate(formula_row):
            vcell = value_row[col] if col < len(value_row) else None
            cells.append(cell_from_openpyxl(fcell, vcell))
        yield cells


def _trim_trailing_blanks(cells: list[CellValue]) -> list[CellValue]:
    end = len(cells)
    while end > 0 and isinstance(cells[end - 1], Blank):
        end -= 1
    return cells[:end]


def read_rows(path: Path | str) -> list[TabularRow]:
    """Read the first worksheet of ``path`` as normalized rows.

    Raises
    ------
    SourceUnavailableError: file missing, not a file, unreadable, or not a
        valid xlsx container.
    """
    path = Path(path)
    if not path.exists():
        raise SourceUnavailableError(f"source file not found: {path}")
    if not path.is_file():
        raise SourceUnavailableError(f"source is not a file: {path}")

    try:
        formulas, values = _load_views(path)
    except SourceUnavailableError:
        raise
    # lxml の XMLSyntaxError も SyntaxError のサブクラス
    except (OSError, zipfile.BadZipFile, InvalidFileException, ParseError, SyntaxError,
            KeyError, ValueError) as e:
        raise SourceUnavailableError(f"cannot open spreadsheet {path}: {e}") from e

    try:
        if not formulas.worksheets:
            logger.debug("workbook %s has no worksheets", path.name)
            return []
        formula_ws = formulas.worksheets[0]
        value_ws = values.worksheets[0]

        rows: list[TabularRow] = []
        for cells in _iter_cell_rows(formula_ws, value_ws):
            cells = _trim_trailing_blanks(cells)
            if not cells:
                # 完全な空行はスキップ (序数も振らない)
                continue
            rows.append(TabularRow(ordinal=len(rows), cells=[normalize(c) for c in cells]))
    finally:
        formulas.close()
        values.close()

    logger.debug(
        "read file=%s sheet=%s rows=%d", path.name, formula_ws.title, len(rows)
    )
    return rows


def read_header(path: Path | str) -> list[str]:
    """Return the header row of ``path`` ([] for an empty sheet)."""
    rows = read_rows(path)
    return list(rows[0].cells) if rows else []

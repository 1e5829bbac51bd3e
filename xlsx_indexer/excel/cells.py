from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Union

"""Cell value model and normalization.

A spreadsheet cell is modelled as a small tagged union. ``normalize`` renders
any variant to the canonical string stored in the index:

- Text      -> verbatim
- Number    -> "42" for integral values, plain decimal otherwise ("0.00001")
- Boolean   -> "true" / "false"
- DateTime  -> ISO-8601 ("2024-01-15T10:30:00")
- Formula   -> normalized cached result, or ERROR_FORMULA
- ErrorCode -> "" (outside a formula)
- Blank     -> ""

``normalize`` never raises.
"""

__all__ = [
    "Blank",
    "Boolean",
    "CellValue",
    "DateTime",
    "ERROR_FORMULA",
    "ErrorCode",
    "Formula",
    "Number",
    "Text",
    "cell_from_openpyxl",
    "normalize",
]

ERROR_FORMULA = "ERROR_FORMULA"


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Number:
    value: float | int


@dataclass(frozen=True)
class Boolean:
    value: bool


@dataclass(frozen=True)
class DateTime:
    value: datetime | date | time | timedelta


@dataclass(frozen=True)
class ErrorCode:
    """Spreadsheet error literal such as ``#DIV/0!`` or ``#REF!``."""
    code: str


@dataclass(frozen=True)
class Blank:
    pass


@dataclass(frozen=True)
class Formula:
    """Formula cell. ``result`` is the cached value (None if never calculated)."""
    expression: str
    result: CellValue | None = None


CellValue = Union[Text, Number, Boolean, DateTime, ErrorCode, Blank, Formula]


def _render_number(value: float | int) -> str:
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        return repr(value)
    if value == math.floor(value):
        return str(int(value))
    # repr は最短の往復可能表現。Decimal 経由で指数表記を避ける
    return format(Decimal(repr(value)), "f")


def _render_temporal(value: datetime | date | time | timedelta) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).isoformat()
    if isinstance(value, time):
        return value.isoformat()
    return str(value)


def _render_scalar(cell: CellValue) -> str | None:
    """Render a non-formula variant; None means 'not renderable'."""
    if isinstance(cell, Text):
        return cell.value
    if isinstance(cell, Boolean):
        return "true" if cell.value else "false"
    if isinstance(cell, Number):
        return _render_number(cell.value)
    if isinstance(cell, DateTime):
        return _render_temporal(cell.value)
    if isinstance(cell, Blank):
        return ""
    return None


def normalize(cell: CellValue | None) -> str:
    """Render one cell as its canonical string."""
    if cell is None:
        return ""
    try:
        if isinstance(cell, Formula):
            result = cell.result
            if result is None or isinstance(result, (ErrorCode, Formula)):
                return ERROR_FORMULA
            rendered = _render_scalar(result)
            return ERROR_FORMULA if rendered is None else rendered
        rendered = _render_scalar(cell)
        return "" if rendered is None else rendered
    except (ArithmeticError, TypeError, ValueError):
        # 壊れた値でもセル単位で吸収し、行全体は止めない
        return ERROR_FORMULA if isinstance(cell, Formula) else ""


def _scalar_from_value(value: Any, data_type: str | None = None) -> CellValue:
    if value is None:
        return Blank()
    if data_type == "e":
        return ErrorCode(str(value))
    # bool は int のサブクラスなので先に判定
    if isinstance(value, bool):
        return Boolean(value)
    if isinstance(value, (datetime, date, time, timedelta)):
        return DateTime(value)
    if isinstance(value, (int, float)):
        return Number(value)
    if isinstance(value, Decimal):
        return Number(float(value))
    if isinstance(value, str):
        return Text(value)
    return Text(str(value))


def cell_from_openpyxl(formula_cell: Any, value_cell: Any | None = None) -> CellValue:
    """Build a CellValue from openpyxl cells.

    ``formula_cell`` comes from a workbook loaded with ``data_only=False`` and
    ``value_cell`` from the same workbook loaded with ``data_only=True``. A
    formula cell takes its result from ``value_cell``; every other cell is
    converted from ``formula_cell`` alone. openpyxl already turns date-formatted
    numbers into ``datetime`` objects.
    """
    if formula_cell is None:
        return Blank()
    data_type = getattr(formula_cell, "data_type", None)
    raw = getattr(formula_cell, "value", None)
    if data_type == "f":
        expression = raw if isinstance(raw, str) else str(getattr(raw, "text", raw))
        if value_cell is None:
            return Formula(expression=expression, result=None)
        cached = getattr(value_cell, "value", None)
        if cached is None:
            return Formula(expression=expression, result=None)
        return Formula(
            expression=expression,
            result=_scalar_from_value(cached, getattr(value_cell, "data_type", None)),
        )
    return _scalar_from_value(raw, data_type)

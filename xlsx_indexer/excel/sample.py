from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font

"""Demo sales workbook.

Writes a small sales sheet whose columns match what the chart command groups
by (producto / provincia / cliente / fecha, summing total or cantidad).
"""

logger = logging.getLogger(__name__)

SAMPLE_HEADERS = [
    "Fecha",
    "Cliente",
    "Provincia",
    "Producto",
    "Cantidad",
    "Precio Unitario",
    "Total",
    "Pagado",
]

_PRODUCTS = [("Laptop", 850.0), ("Monitor", 199.9), ("Teclado", 35.5), ("Mouse", 12.25)]
_CUSTOMERS = [
    ("Juan Perez", "San Jose"),
    ("Maria Garcia", "Heredia"),
    ("Carlos Lopez", "Alajuela"),
    ("Ana Martinez", "Cartago"),
    ("Luis Rodriguez", "San Jose"),
]


def sample_rows(count: int = 20, start: datetime | None = None) -> list[list[object]]:
    """Deterministic demo rows (no header)."""
    start = start or datetime(2024, 1, 15, 9, 30)
    rows: list[list[object]] = []
    for i in range(count):
        product, price = _PRODUCTS[i % len(_PRODUCTS)]
        customer, province = _CUSTOMERS[i % len(_CUSTOMERS)]
        qty = (i % 5) + 1
        rows.append([
            start + timedelta(days=9 * i),
            customer,
            province,
            product,
            qty,
            price,
            round(qty * price, 2),
            i % 3 != 0,
        ])
    return rows


def create_sample_workbook(path: Path | str, count: int = 20) -> Path:
    """Write the demo workbook to ``path`` and return it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Ventas"
    ws.append(SAMPLE_HEADERS)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in sample_rows(count):
        ws.append(row)
    for cell in ws["A"][1:]:
        cell.number_format = "yyyy-mm-dd hh:mm"
    wb.save(path)
    logger.info("sample workbook written: %s rows=%d", path, count)
    return path

from __future__ import annotations

import time
from datetime import UTC, datetime

from xlsx_indexer.excel.cells import Number, normalize
from xlsx_indexer.services.field_mapper import build_field_names, map_row

"""Performance smoke test for the per-row hot path (normalize + map_row)."""

NOW = datetime(2024, 1, 1, tzinfo=UTC)


def test_mapping_throughput():
    header = ["Fecha", "Cliente", "Provincia", "Producto", "Cantidad", "Precio Unitario", "Total", "Pagado"]
    names = build_field_names(header)
    rows = 20_000
    start = time.perf_counter()
    for i in range(rows):
        cells = [
            "2024-01-15T09:30:00", "Juan Perez", "San Jose", "Laptop",
            normalize(Number(i % 5 + 1)), normalize(Number(850.0)),
            normalize(Number((i % 5 + 1) * 850.25)), "true",
        ]
        map_row(header, cells, i + 1, now=NOW, field_names=names)
    elapsed = time.perf_counter() - start
    # lenient so CI stays green on slow runners
    assert elapsed < 10.0, f"mapping too slow: {elapsed:.3f}s"
    assert rows / elapsed > 2_000

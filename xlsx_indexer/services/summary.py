from __future__ import annotations

from ..models.processing_result import IngestReport

"""SUMMARY line rendering.

Format:
SUMMARY file={name} index={index} rows={rows} submitted={n} succeeded={n}
failed={n} truncated={n} elapsed_sec={x} throughput_dps={x}
"""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}".rstrip("0").rstrip(".")


def render_summary_line(report: IngestReport) -> str:
    """Render the SUMMARY line for one ingest.

    Examples:
        >>> from datetime import datetime, timezone
        >>> from pathlib import Path
        >>> from xlsx_indexer.models.processing_result import BatchResult
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> report = IngestReport(
        ...     source=Path("ventas.xlsx"), index="excel_data", rows_read=5,
        ...     documents=4, truncated_rows=0,
        ...     batch=BatchResult(submitted=4, succeeded=4, failed=0),
        ...     empty_source=False, start_time=t, end_time=t,
        ...     elapsed_seconds=2.0, throughput_docs_per_sec=2.0,
        ... )
        >>> render_summary_line(report)
        'SUMMARY file=ventas.xlsx index=excel_data rows=4 submitted=4 succeeded=4 failed=0 truncated=0 elapsed_sec=2 throughput_dps=2'
    """
    return (
        f"SUMMARY file={report.source.name} "
        f"index={report.index} "
        f"rows={report.documents} "
        f"submitted={report.submitted} "
        f"succeeded={report.succeeded} "
        f"failed={report.failed} "
        f"truncated={report.truncated_rows} "
        f"elapsed_sec={_format_number(report.elapsed_seconds)} "
        f"throughput_dps={_format_number(report.throughput_docs_per_sec)}"
    )

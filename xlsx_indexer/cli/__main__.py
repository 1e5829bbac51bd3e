from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv

from xlsx_indexer.config.loader import ConfigError, load_config
from xlsx_indexer.excel.reader import SourceUnavailableError, read_rows
from xlsx_indexer.excel.sample import create_sample_workbook
from xlsx_indexer.logging.error_log import ErrorLogBuffer, ErrorRecord
from xlsx_indexer.logging.init import LOGGER_NAME, log_summary, set_debug, setup_logging
from xlsx_indexer.models.config_models import DUPLICATE_POLICIES, IndexerConfig
from xlsx_indexer.search.query import FilterSyntaxError, parse_filters
from xlsx_indexer.search.store import IndexStore, TransportFailureError
from xlsx_indexer.services.aggregate import aggregate_totals, render_bar_chart
from xlsx_indexer.services.field_mapper import DuplicateFieldError, build_field_names, map_row
from xlsx_indexer.services.orchestrator import ingest_file
from xlsx_indexer.services.summary import render_summary_line

"""CLI entrypoint.

Subcommands:
  ingest PATH     index every data row of PATH (one document per row)
  count           number of documents in the index
  indices         list indices (hidden '.' indices only with --all)
  search          show documents matching --query / --filter field=value
  chart           grouped totals as a text bar chart
  ping            check the connection and print cluster info
  inspect PATH    print header + first rows as documents (no Elasticsearch)
  sample PATH     write the demo sales workbook

Exit codes: 0 success, 2 some documents rejected, 1 fatal error.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

logger = logging.getLogger(LOGGER_NAME)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env via python-dotenv (values override the process environment)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="xlsx-indexer", description="Excel -> Elasticsearch bulk indexer")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=None, help="Config file (default: config/indexer.yml)")
    sub = p.add_subparsers(dest="command", required=True)

    ing = sub.add_parser("ingest", help="Index a spreadsheet")
    ing.add_argument("path", type=Path)
    ing.add_argument("--index", help="Target index (default from config)")
    ing.add_argument("--on-duplicate", choices=list(DUPLICATE_POLICIES), default=None,
                     help="Policy when two headers sanitize to the same field")

    cnt = sub.add_parser("count", help="Count documents in an index")
    cnt.add_argument("--index")

    idx = sub.add_parser("indices", help="List indices")
    idx.add_argument("--pattern", default="*")
    idx.add_argument("--all", action="store_true", help="Include hidden indices")
    idx.add_argument("--counts", action="store_true", help="Show document counts")

    sch = sub.add_parser("search", help="Search documents")
    sch.add_argument("--index")
    sch.add_argument("--query", "-q", default=None)
    sch.add_argument("--filter", "-f", action="append", default=[], metavar="FIELD=VALUE")
    sch.add_argument("--size", type=int, default=50)

    ch = sub.add_parser("chart", help="Grouped totals bar chart")
    ch.add_argument("--index")
    ch.add_argument("--group", required=True, help="Field to group by (e.g. producto)")
    ch.add_argument("--value", default="total", help="Numeric field to sum")
    ch.add_argument("--by-month", action="store_true", help="Group dates by YYYY-MM")
    ch.add_argument("--top", type=int, default=10)
    ch.add_argument("--size", type=int, default=50, help="Documents to fetch")

    sub.add_parser("ping", help="Check connection to Elasticsearch")

    ins = sub.add_parser("inspect", help="Print header and first rows")
    ins.add_argument("path", type=Path)
    ins.add_argument("--rows", type=int, default=3)

    smp = sub.add_parser("sample", help="Write the demo workbook")
    smp.add_argument("path", type=Path)
    smp.add_argument("--rows", type=int, default=20)
    return p.parse_args(argv)


def _inspect_data(args: argparse.Namespace) -> int:
    try:
        rows = read_rows(args.path)
    except SourceUnavailableError as e:
        logger.error(f"source: {e}")
        return EXIT_FATAL
    print(f"FILE: {args.path.name}")
    if not rows:
        print("  (empty sheet, no header row)")
        return EXIT_SUCCESS_ALL
    header = rows[0].cells
    print(f"  header={header}")
    print(f"  fields={build_field_names(header)}")
    print(f"  data_rows={len(rows) - 1}")
    for row in rows[1: args.rows + 1]:
        doc = map_row(header, row.cells, row.ordinal)
        print("    ", doc)
    return EXIT_SUCCESS_ALL


def _write_sample(args: argparse.Namespace) -> int:
    try:
        path = create_sample_workbook(args.path, count=args.rows)
    except OSError as e:
        logger.error(f"sample: {e}")
        return EXIT_FATAL
    print(f"sample written: {path}")
    return EXIT_SUCCESS_ALL


def _file_error(path: Path, index: str, error_type: str, exc: Exception) -> ErrorRecord:
    # ファイル単位の失敗は特定の行に紐づかないので row=-1
    return ErrorRecord.create(file=path.name, index=index, row=-1, error_type=error_type, reason=str(exc))


def _run_ingest(args: argparse.Namespace, cfg: IndexerConfig, store: IndexStore) -> int:
    index = args.index or cfg.index
    on_duplicate = args.on_duplicate or cfg.field_names.on_duplicate
    error_log = ErrorLogBuffer(cfg.error_log_dir)
    logger.info(f"ingesting file={args.path} index={index}")
    try:
        report = ingest_file(args.path, index, store, on_duplicate=on_duplicate, error_log=error_log)
    except SourceUnavailableError as e:
        logger.error(f"source: {e}")
        error_log.append(_file_error(args.path, index, "SOURCE_UNAVAILABLE", e))
        return EXIT_FATAL
    except DuplicateFieldError as e:
        logger.error(f"fields: {e}")
        return EXIT_FATAL
    except TransportFailureError as e:
        logger.error(f"elasticsearch: {e}")
        error_log.append(_file_error(args.path, index, "TRANSPORT_FAILURE", e))
        return EXIT_FATAL
    except ValueError as e:
        logger.error(f"ingest: {e}")
        return EXIT_FATAL
    finally:
        try:
            written = error_log.flush()
        except OSError as e:
            logger.warning(f"failed to write error log: {e}")
        else:
            if written is not None:
                logger.info(f"error log written: {written}")

    if report.empty_source:
        logger.warning(f"no header row in {args.path.name}; nothing indexed")
    logger.info(f"indexed succeeded={report.succeeded} failed={report.failed}")
    # render_summary_line は "SUMMARY " 付き、log_summary 側でもラベルが付く
    log_summary(render_summary_line(report)[len("SUMMARY "):])
    return EXIT_PARTIAL_FAILURE if report.failed else EXIT_SUCCESS_ALL


def _run_count(args: argparse.Namespace, cfg: IndexerConfig, store: IndexStore) -> int:
    index = args.index or cfg.index
    n = store.count(index)
    print(f"{index}\t{n}")
    return EXIT_SUCCESS_ALL


def _run_indices(args: argparse.Namespace, cfg: IndexerConfig, store: IndexStore) -> int:
    names = store.list_indices(args.pattern, include_hidden=args.all)
    if not names:
        logger.info("no indices found")
    for name in names:
        if args.counts:
            print(f"{name}\t{store.count(name)}")
        else:
            print(name)
    return EXIT_SUCCESS_ALL


def _run_search(args: argparse.Namespace, cfg: IndexerConfig, store: IndexStore) -> int:
    index = args.index or cfg.index
    try:
        filters = parse_filters(args.filter)
    except FilterSyntaxError as e:
        logger.error(f"filter: {e}")
        return EXIT_FATAL
    documents = store.search(index, query=args.query, size=args.size, filters=filters)
    logger.info(f"index={index} documents={len(documents)}")
    if documents:
        df = pd.DataFrame(documents).drop(columns=["_index"], errors="ignore")
        print(df.fillna("").to_string(index=False))
    return EXIT_SUCCESS_ALL


def _run_chart(args: argparse.Namespace, cfg: IndexerConfig, store: IndexStore) -> int:
    index = args.index or cfg.index
    documents = store.search(index, size=args.size)
    totals = aggregate_totals(
        documents, args.group, args.value, top=args.top, by_month=args.by_month
    )
    title = f"{args.value} by {args.group}" + (" (month)" if args.by_month else "")
    print(title)
    for line in render_bar_chart(totals):
        print(line)
    logger.info(f"chart groups={len(totals)} documents={len(documents)}")
    return EXIT_SUCCESS_ALL


def _run_ping(args: argparse.Namespace, cfg: IndexerConfig, store: IndexStore) -> int:
    if not store.ping():
        logger.error(f"cannot reach elasticsearch at {list(cfg.elasticsearch.hosts)}")
        return EXIT_FATAL
    print(store.cluster_info())
    return EXIT_SUCCESS_ALL


_STORE_COMMANDS = {
    "ingest": _run_ingest,
    "count": _run_count,
    "indices": _run_indices,
    "search": _run_search,
    "chart": _run_chart,
    "ping": _run_ping,
}


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    # NOTE: [] が渡された場合に sys.argv[1:] (pytest の引数) を読まないよう None のみ判定
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    if args.command == "inspect":
        return _inspect_data(args)
    if args.command == "sample":
        return _write_sample(args)

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    handler = _STORE_COMMANDS[args.command]
    with IndexStore(cfg.elasticsearch) as store:
        try:
            return handler(args, cfg, store)
        except TransportFailureError as e:
            logger.error(f"elasticsearch: {e}")
            return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _clear_es_env(monkeypatch):
    # ローカル環境の接続設定がテストに混ざらないようにする
    for name in (
        "ELASTICSEARCH_URL",
        "ELASTICSEARCH_USERNAME",
        "ELASTICSEARCH_PASSWORD",
        "ELASTICSEARCH_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def sample_config_yaml() -> str:
    return """elasticsearch:
  hosts:
    - http://localhost:9200
  request_timeout: 10
index: excel_data
field_names:
  on_duplicate: overwrite
error_log_dir: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "indexer.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def write_workbook(path: Path, rows: Iterable[Iterable[Any]], title: str = "Sheet1") -> Path:
    """Write ``rows`` to the first worksheet of a new .xlsx file."""
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(list(row))
    wb.save(path)
    return path


@pytest.fixture()
def make_workbook(temp_workdir: Path):
    def _make(rows: Iterable[Iterable[Any]], name: str = "book.xlsx") -> Path:
        return write_workbook(temp_workdir / "data" / name, rows)
    return _make


class FakeStore:
    """In-memory stand-in for IndexStore.

    Records every bulk call and acknowledges each document, rejecting the
    positions listed in ``reject`` with a mapper_parsing_exception.
    """

    def __init__(self, reject: Iterable[int] = (), *, fail_with: Exception | None = None) -> None:
        self.reject = set(reject)
        self.fail_with = fail_with
        self.calls: list[tuple[str, list[Mapping[str, Any]]]] = []
        self.closed = False

    @property
    def documents(self) -> list[Mapping[str, Any]]:
        return [doc for _, ops in self.calls for doc in ops[1::2]]

    def bulk_index(self, index: str, operations: list[Mapping[str, Any]]) -> Mapping[str, Any]:
        self.calls.append((index, list(operations)))
        if self.fail_with is not None:
            raise self.fail_with
        items = []
        for position in range(len(operations) // 2):
            if position in self.reject:
                items.append({"index": {
                    "_index": index,
                    "status": 400,
                    "error": {
                        "type": "mapper_parsing_exception",
                        "reason": f"failed to parse document {position}",
                    },
                }})
            else:
                items.append({"index": {"_index": index, "_id": f"id-{position}", "status": 201}})
        return {"errors": bool(self.reject), "items": items}

    # CLI から使われる読み取り系
    def count(self, index: str) -> int:
        return len(self.documents)

    def search(self, index, query=None, size=10, filters=None):
        return [dict(d) for d in self.documents][:size]

    def list_indices(self, pattern: str = "*", include_hidden: bool = False) -> list[str]:
        names = ["excel_data", "ventas", ".kibana"]
        return sorted(n for n in names if include_hidden or not n.startswith("."))

    def ping(self) -> bool:
        return True

    def cluster_info(self) -> str:
        return "Cluster: docker-cluster, Version: 8.11.0, Lucene: 9.8.0"

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


@pytest.fixture()
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def store_factory():
    """FakeStore class, for tests that need rejections or transport failures."""
    return FakeStore


@pytest.fixture()
def pkg_caplog(caplog):
    """caplog wired to the package logger (which does not propagate to root)."""
    logger = logging.getLogger("xlsx_indexer")
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger="xlsx_indexer")
    yield caplog
    logger.removeHandler(caplog.handler)

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta, timezone

import pytest

from xlsx_indexer.models.config_models import DUPLICATE_POLICIES
from xlsx_indexer.services.field_mapper import (
    DuplicateFieldError,
    build_field_names,
    find_duplicate_fields,
    map_row,
    sanitize_field_name,
    utc_timestamp,
)

NOW = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


@pytest.mark.parametrize("header,expected", [
    ("Customer Name", "customer_name"),
    ("Total$", "total_"),
    ("Total $", "total__"),
    ("Precio Unitario", "precio_unitario"),
    ("año", "a_o"),
    ("already_ok_1", "already_ok_1"),
    ("", ""),
])
def test_sanitize_field_name(header, expected):
    assert sanitize_field_name(header) == expected


@pytest.mark.parametrize("header", ["Customer Name", "Total $", "Ünïcode Ñame", "a-b.c/d"])
def test_sanitize_is_idempotent_and_restricted(header):
    once = sanitize_field_name(header)
    assert re.fullmatch(r"[a-z0-9_]*", once)
    assert sanitize_field_name(once) == once


def test_utc_timestamp_z_suffix():
    assert utc_timestamp(NOW) == "2024-01-15T10:30:00Z"
    assert utc_timestamp().endswith("Z")


def test_utc_timestamp_naive_is_taken_as_utc():
    assert utc_timestamp(datetime(2024, 1, 15, 10, 30)) == "2024-01-15T10:30:00Z"


def test_utc_timestamp_converts_other_offsets():
    tokyo = datetime(2024, 1, 15, 19, 30, tzinfo=timezone(timedelta(hours=9)))
    assert utc_timestamp(tokyo) == "2024-01-15T10:30:00Z"
    doc = map_row(["A"], ["x"], 1, now=tokyo)
    assert doc["indexed_at"] == "2024-01-15T10:30:00Z"


def test_map_row_pairs_and_metadata():
    doc = map_row(["Customer Name", "Total$"], ["Ada", "10"], 1, now=NOW)
    assert doc == {
        "customer_name": "Ada",
        "total_": "10",
        "row_number": 1,
        "indexed_at": "2024-01-15T10:30:00Z",
    }


def test_map_row_accepts_clock_callable():
    doc = map_row(["A"], ["x"], 3, now=lambda: NOW)
    assert doc["indexed_at"] == "2024-01-15T10:30:00Z"
    assert doc["row_number"] == 3


def test_map_row_longer_row_drops_extra_cells():
    doc = map_row(["A", "B"], ["1", "2", "3", "4"], 1, now=NOW)
    assert set(doc) == {"a", "b", "row_number", "indexed_at"}


def test_map_row_shorter_row_omits_fields():
    doc = map_row(["A", "B", "C"], ["1"], 1, now=NOW)
    assert set(doc) == {"a", "row_number", "indexed_at"}


def test_metadata_wins_over_header_with_same_name():
    doc = map_row(["Row Number", "Name"], ["999", "x"], 4, now=NOW)
    assert doc["row_number"] == 4


def test_duplicates_last_column_wins(pkg_caplog):
    names = build_field_names(["Total $", "Total  "])
    assert names == ["total__", "total__"]
    assert "last column wins" in pkg_caplog.text
    doc = map_row(["Total $", "Total  "], ["1", "2"], 1, now=NOW, field_names=names)
    assert doc["total__"] == "2"


def test_duplicates_error_policy():
    with pytest.raises(DuplicateFieldError):
        build_field_names(["A b", "a_b"], on_duplicate="error")
    with pytest.raises(DuplicateFieldError):
        map_row(["A b", "a_b"], ["1", "2"], 1, on_duplicate="error")


def test_unknown_policy_rejected():
    with pytest.raises(ValueError):
        build_field_names(["a"], on_duplicate="merge")


def test_find_duplicate_fields_positions():
    assert find_duplicate_fields(["A", "b", "a", "B!", "b_"]) == {"a": [0, 2], "b_": [3, 4]}
    assert find_duplicate_fields(["x", "y"]) == {}


@pytest.mark.parametrize("policy", DUPLICATE_POLICIES)
def test_every_configured_policy_accepted(policy):
    assert build_field_names(["A", "B"], on_duplicate=policy) == ["a", "b"]

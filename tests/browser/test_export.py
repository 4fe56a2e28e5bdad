from __future__ import annotations

import csv
import io
import sqlite3
from pathlib import Path

import pytest

from sqliter.browser import Filter, SQLiteBrowser
from sqliter.browser.export import encode_rows
from sqliter.shared.exceptions import InvalidSortColumnError, RawWhereDisabledError


def _parse(chunks) -> list[list[str]]:
    return list(csv.reader(io.StringIO("".join(chunks))))


def test_export_csv_writes_header_and_rows(browser: SQLiteBrowser) -> None:
    rows = _parse(browser.export_csv("users", sort_column="id", sort_direction="desc"))

    assert rows == [
        ["id", "name", "email", "age"],
        ["2", "Jane Smith", "jane@example.com", "25"],
        ["1", "John Doe", "john@example.com", "30"],
    ]


def test_export_csv_applies_filters(browser: SQLiteBrowser) -> None:
    rows = _parse(
        browser.export_csv("users", filters=[Filter(column="age", operator="less", value=28)])
    )

    assert [row[1] for row in rows[1:]] == ["Jane Smith"]


def test_export_csv_hex_encodes_blobs(browser: SQLiteBrowser) -> None:
    rows = _parse(browser.export_csv("files"))

    assert rows[1] == ["1", "logo", "deadbeef"]


def test_export_validates_before_streaming(browser: SQLiteBrowser) -> None:
    with pytest.raises(InvalidSortColumnError):
        browser.export_csv("users", sort_column="bogus", sort_direction="asc")
    with pytest.raises(RawWhereDisabledError):
        browser.export_csv("users", where_clause="1 = 1")


def test_encode_rows_batches_and_renders_null_as_empty() -> None:
    connection = sqlite3.connect(":memory:")
    connection.execute("CREATE TABLE t (a INTEGER, b TEXT)")
    connection.executemany("INSERT INTO t VALUES (?, ?)", [(1, None), (2, "x"), (3, "y")])
    cursor = connection.execute("SELECT a, b FROM t ORDER BY a")

    chunks = list(encode_rows(cursor, batch_size=2))
    connection.close()

    assert len(chunks) == 2
    assert _parse(chunks) == [["a", "b"], ["1", ""], ["2", "x"], ["3", "y"]]


def test_encode_rows_for_empty_result_still_has_header() -> None:
    connection = sqlite3.connect(":memory:")
    connection.execute("CREATE TABLE t (a INTEGER)")
    cursor = connection.execute("SELECT a FROM t")

    chunks = list(encode_rows(cursor))
    connection.close()

    assert _parse(chunks) == [["a"]]


def test_export_from_path_with_uri_characters(tmp_path: Path, database_factory) -> None:
    path = database_factory(tmp_path / "team#1.db")

    with SQLiteBrowser(path) as odd:
        assert odd.get_table_data("users", limit=10).total == 2
        rows = _parse(odd.export_csv("users", sort_column="id", sort_direction="asc"))

    assert [row[2] for row in rows[1:]] == ["john@example.com", "jane@example.com"]
    assert not (tmp_path / "team").exists()

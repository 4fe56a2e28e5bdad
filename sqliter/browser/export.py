"""CSV encoding for table exports."""

from __future__ import annotations

import csv
import io
import sqlite3
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from sqliter.shared.database import connect

from .values import to_wire

DEFAULT_BATCH_SIZE = 500


def stream_query_as_csv(
    db_path: Path,
    query: str,
    params: Sequence[Any],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> Iterator[str]:
    """Yield CSV text for ``query`` run on its own read-only connection.

    The connection lives only as long as the iteration; closing the
    generator early (client disconnect) closes it too.
    """
    with connect(db_path, read_only=True) as connection:
        cursor = connection.execute(query, tuple(params))
        yield from encode_rows(cursor, batch_size=batch_size)


def encode_rows(cursor: sqlite3.Cursor, *, batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator[str]:
    """Encode a cursor's header and rows as CSV chunks of ``batch_size`` rows."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([col[0] for col in cursor.description or ()])
    while True:
        rows = cursor.fetchmany(batch_size)
        if not rows:
            break
        for row in rows:
            writer.writerow(_stringify(cell) for cell in row)
        yield _drain(buffer)
    tail = _drain(buffer)
    if tail:
        yield tail


def _drain(buffer: io.StringIO) -> str:
    text = buffer.getvalue()
    buffer.seek(0)
    buffer.truncate(0)
    return text


def _stringify(value: object) -> str:
    converted = to_wire(value)
    if converted is None:
        return ""
    return str(converted)

"""SQLite connection helpers."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .exceptions import DatabaseError


def open_database(path: str | Path, *, read_only: bool = False) -> sqlite3.Connection:
    """Open an existing SQLite file and verify it is readable.

    The connection runs in autocommit mode (explicit ``BEGIN`` for multi-row
    work) and may be used from worker threads; callers serialise access.
    """
    db_path = Path(path).expanduser()
    if not db_path.is_file():
        raise DatabaseError(f"Database file not found: {db_path}")

    try:
        if read_only:
            # as_uri percent-encodes "#" and "?" so they stay part of the file name
            connection = sqlite3.connect(
                f"{db_path.resolve().as_uri()}?mode=ro",
                uri=True,
                isolation_level=None,
                check_same_thread=False,
            )
        else:
            connection = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to open database: {exc}") from exc

    try:
        connection.execute("PRAGMA foreign_keys = ON;")
        # Ping: reading the catalog fails fast on files that are not SQLite databases.
        connection.execute("SELECT count(*) FROM sqlite_master").fetchone()
    except sqlite3.DatabaseError as exc:
        connection.close()
        raise DatabaseError(f"Failed to ping database: {exc}") from exc
    return connection


@contextmanager
def connect(path: str | Path, *, read_only: bool = False) -> Iterator[sqlite3.Connection]:
    """Yield a SQLite connection for ``path`` and always close it."""
    connection = open_database(path, read_only=read_only)
    try:
        yield connection
    finally:
        connection.close()

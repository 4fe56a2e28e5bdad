"""Schema introspection helpers.

Identifiers coming from URLs or request bodies are never placed in SQL text
until they have been matched verbatim against a fresh catalog or
``PRAGMA table_info`` read. Matched names are still emitted quoted.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Sequence

from sqliter.shared.exceptions import InvalidColumnError, SchemaError, TableNotFoundError

from .types import Column, Table

_CATALOG_SQL = (
    "SELECT name, type FROM sqlite_master "
    "WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
)


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def fetch_tables(connection: sqlite3.Connection) -> list[Table]:
    """Return user tables ordered by name, skipping ``sqlite_*`` internals."""
    try:
        rows = connection.execute(_CATALOG_SQL).fetchall()
    except sqlite3.DatabaseError as exc:
        raise SchemaError(f"Failed to query tables: {exc}") from exc
    return [Table(name=row[0], type=row[1]) for row in rows]


def resolve_table(connection: sqlite3.Connection, table: str) -> str:
    """Return ``table`` if it names a user table, else raise TableNotFoundError."""
    if not table:
        raise TableNotFoundError(table)
    for entry in fetch_tables(connection):
        if entry.name == table:
            return entry.name
    raise TableNotFoundError(table)


def fetch_columns(connection: sqlite3.Connection, table: str) -> list[Column]:
    """Read column metadata for an already-resolved table name."""
    quoted = quote_identifier(table)
    try:
        info_rows = connection.execute(f"PRAGMA table_info({quoted})").fetchall()
        unique_columns = _single_column_unique_indexes(connection, quoted)
    except sqlite3.DatabaseError as exc:
        raise SchemaError(f"Failed to get table schema for '{table}': {exc}") from exc

    if not info_rows:
        raise SchemaError(f"Table '{table}' has no readable columns.")

    columns: list[Column] = []
    for cid, name, declared_type, not_null, default_value, pk in info_rows:
        columns.append(
            Column(
                cid=int(cid),
                name=name,
                type=declared_type or "",
                not_null=bool(not_null),
                default_value=None if default_value is None else str(default_value),
                # pk is the 1-based position within the key, 0 when not part of it
                primary_key=int(pk) > 0,
                unique=name in unique_columns,
            )
        )
    return columns


def _single_column_unique_indexes(connection: sqlite3.Connection, quoted_table: str) -> set[str]:
    # index_list rows: (seq, name, unique, origin, partial)
    unique_columns: set[str] = set()
    for index_row in connection.execute(f"PRAGMA index_list({quoted_table})").fetchall():
        index_name, is_unique = index_row[1], index_row[2]
        if not is_unique:
            continue
        info = connection.execute(f"PRAGMA index_info({quote_identifier(index_name)})").fetchall()
        # Composite unique indexes are not attributed to any single column.
        if len(info) == 1 and info[0][2] is not None:
            unique_columns.add(info[0][2])
    return unique_columns


def require_columns(columns: Sequence[Column], names: Iterable[str]) -> None:
    """Raise InvalidColumnError for the first name not present in ``columns``."""
    known = {column.name for column in columns}
    for name in names:
        if name not in known:
            raise InvalidColumnError(f"Column '{name}' does not exist in this table.")

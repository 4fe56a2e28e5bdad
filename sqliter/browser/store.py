"""Database Access Layer for the SQLite browser.

``SQLiteBrowser`` owns the single connection opened at startup. Every public
method resolves the table and its columns from the live schema before
building SQL, so nothing is cached between calls.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

from sqliter.shared.database import open_database
from sqliter.shared.exceptions import (
    DatabaseError,
    EmptyInputError,
    InvalidSortColumnError,
    InvalidSortDirectionError,
    QueryError,
    RawWhereDisabledError,
)
from sqliter.shared.logging import Logger, get_logger

from .errors import translate_error
from .export import stream_query_as_csv
from .filters import compile_filters
from .schema import fetch_columns, fetch_tables, quote_identifier, require_columns, resolve_table
from .types import Column, Filter, RowChange, SQLQueryResult, Table, TableData
from .values import require_bindable, to_wire

SORT_DIRECTIONS = ("asc", "desc")


def normalise_sort_direction(direction: str | None) -> str | None:
    """Return ``ASC``/``DESC`` for a case-insensitive direction, None when absent."""
    if direction is None or direction == "":
        return None
    if direction.lower() not in SORT_DIRECTIONS:
        raise InvalidSortDirectionError(
            "invalid sort_direction parameter, must be 'asc' or 'desc'"
        )
    return direction.upper()


class SQLiteBrowser:
    """Schema introspection, CRUD and ad-hoc SQL over one SQLite file."""

    def __init__(
        self,
        path: str | Path,
        *,
        read_only: bool = False,
        allow_raw_where: bool = False,
        logger: Logger | None = None,
    ) -> None:
        self.path = Path(path).expanduser()
        self.read_only = read_only
        self.allow_raw_where = allow_raw_where
        self.logger = logger or get_logger(scope="db")
        self._connection = open_database(self.path, read_only=read_only)
        self._lock = threading.Lock()

    @property
    def filename(self) -> str:
        return self.path.name

    def close(self) -> None:
        with self._lock:
            self._connection.close()

    def __enter__(self) -> SQLiteBrowser:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Introspection

    def info(self) -> dict[str, str]:
        return {"filename": self.filename}

    def list_tables(self) -> list[Table]:
        with self._lock:
            return fetch_tables(self._connection)

    def get_schema(self, table: str) -> list[Column]:
        with self._lock:
            name = resolve_table(self._connection, table)
            return fetch_columns(self._connection, name)

    # ------------------------------------------------------------------
    # Reads

    def get_table_data(
        self,
        table: str,
        *,
        limit: int,
        offset: int = 0,
        sort_column: str | None = None,
        sort_direction: str | None = None,
        filters: Sequence[Filter] = (),
        where_clause: str | None = None,
    ) -> TableData:
        """Return one page of rows and the filtered row count."""
        direction = normalise_sort_direction(sort_direction)
        with self._lock:
            name = resolve_table(self._connection, table)
            columns = fetch_columns(self._connection, name)
            base, params = self._select_from(name, columns, filters, where_clause)
            order_by = self._order_by(columns, sort_column, direction)

            try:
                total = self._connection.execute(
                    f"SELECT COUNT(*) FROM {quote_identifier(name)}{base}", params
                ).fetchone()[0]
                cursor = self._connection.execute(
                    f"SELECT * FROM {quote_identifier(name)}{base}{order_by} LIMIT ? OFFSET ?",
                    [*params, limit, offset],
                )
                names = [col[0] for col in cursor.description or ()]
                rows = [
                    {column: to_wire(value) for column, value in zip(names, record)}
                    for record in cursor.fetchall()
                ]
            except sqlite3.Error as exc:
                raise translate_error(exc, fallback=QueryError) from exc

        return TableData(columns=columns, rows=rows, total=int(total))

    def export_csv(
        self,
        table: str,
        *,
        sort_column: str | None = None,
        sort_direction: str | None = None,
        filters: Sequence[Filter] = (),
        where_clause: str | None = None,
    ) -> Iterator[str]:
        """Validate the request now and return an iterator of CSV chunks."""
        direction = normalise_sort_direction(sort_direction)
        with self._lock:
            name = resolve_table(self._connection, table)
            columns = fetch_columns(self._connection, name)
            base, params = self._select_from(name, columns, filters, where_clause)
            order_by = self._order_by(columns, sort_column, direction)
            query = f"SELECT * FROM {quote_identifier(name)}{base}{order_by}"
            try:
                # Compile check so a bad raw fragment fails before streaming starts.
                self._connection.execute(f"EXPLAIN {query}", params).fetchall()
            except sqlite3.Error as exc:
                raise translate_error(exc, fallback=QueryError) from exc

        self.logger.debug(f"Exporting '{name}' as CSV")
        return stream_query_as_csv(self.path, query, params)

    # ------------------------------------------------------------------
    # Writes

    def insert_row(self, table: str, data: Mapping[str, Any]) -> int:
        if not data:
            raise EmptyInputError("no data provided")
        require_bindable(data)
        with self._lock:
            name = resolve_table(self._connection, table)
            columns = fetch_columns(self._connection, name)
            require_columns(columns, data)
            column_sql = ", ".join(quote_identifier(column) for column in data)
            placeholders = ", ".join("?" for _ in data)
            cursor = self._run(
                f"INSERT INTO {quote_identifier(name)} ({column_sql}) VALUES ({placeholders})",
                list(data.values()),
            )
        self.logger.debug(f"Inserted row into '{name}'")
        return cursor.rowcount

    def update_row(self, table: str, data: Mapping[str, Any], where: Mapping[str, Any]) -> int:
        self._check_update(data, where)
        with self._lock:
            name = resolve_table(self._connection, table)
            columns = fetch_columns(self._connection, name)
            query, params = self._update_statement(name, columns, data, where)
            affected = self._run(query, params).rowcount
        self.logger.debug(f"Updated {affected} row(s) in '{name}'")
        return affected

    def delete_row(self, table: str, where: Mapping[str, Any]) -> int:
        self._check_delete(where)
        with self._lock:
            name = resolve_table(self._connection, table)
            columns = fetch_columns(self._connection, name)
            query, params = self._delete_statement(name, columns, where)
            affected = self._run(query, params).rowcount
        self.logger.debug(f"Deleted {affected} row(s) from '{name}'")
        return affected

    def bulk_update(self, table: str, changes: Sequence[RowChange]) -> int:
        """Apply every change in one transaction; any failure rolls all back."""
        if not changes:
            raise EmptyInputError("no changes provided")
        for change in changes:
            self._check_update(change.data, change.where)
        with self._lock:
            name = resolve_table(self._connection, table)
            columns = fetch_columns(self._connection, name)
            statements = [
                self._update_statement(name, columns, change.data, change.where)
                for change in changes
            ]
            affected = self._run_atomically(statements)
        self.logger.debug(f"Bulk-updated {affected} row(s) in '{name}'")
        return affected

    def bulk_delete(self, table: str, wheres: Sequence[Mapping[str, Any]]) -> int:
        """Delete every matched row in one transaction; any failure rolls all back."""
        if not wheres:
            raise EmptyInputError("no rows provided")
        for where in wheres:
            self._check_delete(where)
        with self._lock:
            name = resolve_table(self._connection, table)
            columns = fetch_columns(self._connection, name)
            statements = [self._delete_statement(name, columns, where) for where in wheres]
            affected = self._run_atomically(statements)
        self.logger.debug(f"Bulk-deleted {affected} row(s) from '{name}'")
        return affected

    # ------------------------------------------------------------------
    # Ad-hoc SQL

    def execute_sql(self, sql: str) -> SQLQueryResult:
        """Run one operator-supplied statement.

        Statements starting with SELECT return their rows; anything else,
        DDL included, returns the number of rows it changed.
        """
        statement = (sql or "").strip()
        if not statement:
            raise EmptyInputError("SQL query cannot be empty")
        is_select = statement.upper().startswith("SELECT")

        with self._lock:
            try:
                cursor = self._connection.execute(statement)
                if is_select:
                    columns = tuple(col[0] for col in cursor.description or ())
                    rows = [[to_wire(value) for value in record] for record in cursor.fetchall()]
                else:
                    affected = max(cursor.rowcount, 0)
            except sqlite3.Warning as exc:
                # older drivers raise Warning for multi-statement input
                raise QueryError(str(exc)) from exc
            except sqlite3.Error as exc:
                raise translate_error(exc, fallback=QueryError) from exc

        if is_select:
            return SQLQueryResult(columns=columns, rows=rows, row_count=len(rows))
        self.logger.debug(f"Executed statement affecting {affected} row(s)")
        return SQLQueryResult(
            columns=("rows_affected",),
            rows=[[affected]],
            row_count=1,
            rows_affected=affected,
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _select_from(
        self,
        name: str,
        columns: Sequence[Column],
        filters: Sequence[Filter],
        where_clause: str | None,
    ) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        fragment, params = compile_filters(filters, columns)
        if fragment:
            clauses.append(fragment)
        if where_clause and where_clause.strip():
            if not self.allow_raw_where:
                raise RawWhereDisabledError(
                    "Raw where_clause fragments are disabled; send structured filters instead."
                )
            self.logger.debug(f"Applying raw WHERE fragment on '{name}': {where_clause}")
            clauses.append(f"({where_clause})")
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    @staticmethod
    def _order_by(columns: Sequence[Column], sort_column: str | None, direction: str | None) -> str:
        if not sort_column:
            return ""
        if sort_column not in {column.name for column in columns}:
            raise InvalidSortColumnError(f"invalid sort column: {sort_column}")
        if direction is None:
            return ""
        return f" ORDER BY {quote_identifier(sort_column)} {direction}"

    @staticmethod
    def _check_update(data: Mapping[str, Any], where: Mapping[str, Any]) -> None:
        if not data:
            raise EmptyInputError("no data provided")
        if not where:
            raise EmptyInputError("no where clause provided")
        require_bindable(data)
        require_bindable(where)

    @staticmethod
    def _check_delete(where: Mapping[str, Any]) -> None:
        if not where:
            raise EmptyInputError("no where clause provided")
        require_bindable(where)

    @staticmethod
    def _match_clause(where: Mapping[str, Any]) -> tuple[str, list[Any]]:
        parts: list[str] = []
        params: list[Any] = []
        for column, value in where.items():
            if value is None:
                parts.append(f"{quote_identifier(column)} IS NULL")
            else:
                parts.append(f"{quote_identifier(column)} = ?")
                params.append(value)
        return " AND ".join(parts), params

    def _update_statement(
        self,
        name: str,
        columns: Sequence[Column],
        data: Mapping[str, Any],
        where: Mapping[str, Any],
    ) -> tuple[str, list[Any]]:
        require_columns(columns, data)
        require_columns(columns, where)
        set_sql = ", ".join(f"{quote_identifier(column)} = ?" for column in data)
        match_sql, match_params = self._match_clause(where)
        query = f"UPDATE {quote_identifier(name)} SET {set_sql} WHERE {match_sql}"
        return query, [*data.values(), *match_params]

    def _delete_statement(
        self,
        name: str,
        columns: Sequence[Column],
        where: Mapping[str, Any],
    ) -> tuple[str, list[Any]]:
        require_columns(columns, where)
        match_sql, match_params = self._match_clause(where)
        return f"DELETE FROM {quote_identifier(name)} WHERE {match_sql}", match_params

    def _run(self, query: str, params: Sequence[Any]) -> sqlite3.Cursor:
        try:
            return self._connection.execute(query, tuple(params))
        except sqlite3.Error as exc:
            error = translate_error(exc)
            self.logger.warning(f"Write rejected: {error}")
            raise error from exc

    def _run_atomically(self, statements: Sequence[tuple[str, list[Any]]]) -> int:
        try:
            self._connection.execute("BEGIN")
        except sqlite3.Error as exc:
            raise DatabaseError(f"Failed to start transaction: {exc}") from exc
        affected = 0
        try:
            for query, params in statements:
                affected += self._run(query, params).rowcount
            self._connection.execute("COMMIT")
        except sqlite3.Error as exc:
            self._rollback()
            raise translate_error(exc) from exc
        except Exception:
            self._rollback()
            raise
        return affected

    def _rollback(self) -> None:
        # ON CONFLICT ROLLBACK and some I/O errors end the transaction inside the engine
        if self._connection.in_transaction:
            self._connection.execute("ROLLBACK")

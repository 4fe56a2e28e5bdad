"""Data structures shared across the browser modules."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Sequence

Row = dict[str, Any]


@dataclass(frozen=True, slots=True)
class Table:
    """A user table listed in the SQLite catalog."""

    name: str
    type: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class Column:
    """Column metadata resolved from ``PRAGMA table_info`` plus unique indexes."""

    cid: int
    name: str
    type: str
    not_null: bool
    default_value: str | None
    primary_key: bool
    unique: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class TableData:
    """One page of rows plus the total count under the active filters."""

    columns: Sequence[Column]
    rows: Sequence[Row]
    total: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": [column.to_dict() for column in self.columns],
            "rows": list(self.rows),
            "total": self.total,
        }


@dataclass(frozen=True, slots=True)
class SQLQueryResult:
    """Result of an ad-hoc SQL statement."""

    columns: tuple[str, ...]
    rows: Sequence[list[Any]]
    row_count: int
    rows_affected: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "columns": list(self.columns),
            "rows": [list(row) for row in self.rows],
            "rowCount": self.row_count,
        }
        if self.rows_affected is not None:
            payload["rowsAffected"] = self.rows_affected
        return payload


@dataclass(frozen=True, slots=True)
class Filter:
    """A single structured column filter sent by the frontend."""

    column: str
    operator: str
    value: Any = None


@dataclass(frozen=True, slots=True)
class RowChange:
    """One item of a bulk update: new values and the row it applies to."""

    data: Row
    where: Row

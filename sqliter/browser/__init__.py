"""Public exports for the SQLite browser data-access layer."""

from .filters import OPERATORS, parse_filters
from .store import SORT_DIRECTIONS, SQLiteBrowser, normalise_sort_direction
from .types import Column, Filter, RowChange, SQLQueryResult, Table, TableData

__all__ = [
    "OPERATORS",
    "SORT_DIRECTIONS",
    "Column",
    "Filter",
    "RowChange",
    "SQLQueryResult",
    "SQLiteBrowser",
    "Table",
    "TableData",
    "normalise_sort_direction",
    "parse_filters",
]

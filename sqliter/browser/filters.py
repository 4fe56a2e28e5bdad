"""Structured column filters compiled to parameterised SQL."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from sqliter.shared.exceptions import InvalidFilterError

from .schema import quote_identifier, require_columns
from .types import Column, Filter

_TRUE_VALUES = (1, "true", "TRUE", "True")
_FALSE_VALUES = (0, "false", "FALSE", "False")

# operator -> SQL template taking the quoted column; "?" marks the bound value
_VALUE_OPERATORS = {
    "contains": "instr(CAST({col} AS TEXT), ?) > 0",
    "icontains": "{col} LIKE ? ESCAPE '\\'",
    "equals": "{col} = ?",
    "iequals": "{col} = ? COLLATE NOCASE",
    "not_equals": "{col} <> ?",
    "greater": "{col} > ?",
    "less": "{col} < ?",
    "greater_equal": "{col} >= ?",
    "less_equal": "{col} <= ?",
}
_NULLARY_OPERATORS = {
    "null": "{col} IS NULL",
    "not_null": "{col} IS NOT NULL",
    "true": "{col} IN (?, ?, ?, ?)",
    "false": "{col} IN (?, ?, ?, ?)",
}
OPERATORS = frozenset(_VALUE_OPERATORS) | frozenset(_NULLARY_OPERATORS)


def parse_filters(raw: str | Sequence[Mapping[str, Any]] | None) -> list[Filter]:
    """Parse the wire form (a JSON list of ``{column, operator, value}``)."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidFilterError(f"filters must be valid JSON: {exc.msg}") from exc
    if not isinstance(raw, list):
        raise InvalidFilterError("filters must be a JSON list of filter objects.")

    parsed: list[Filter] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            raise InvalidFilterError("Each filter must be an object with column and operator.")
        column = entry.get("column")
        operator = entry.get("operator")
        if not isinstance(column, str) or not column:
            raise InvalidFilterError("Each filter requires a non-empty 'column'.")
        if operator not in OPERATORS:
            raise InvalidFilterError(
                f"Unsupported filter operator '{operator}'. "
                f"Expected one of: {', '.join(sorted(OPERATORS))}."
            )
        value = entry.get("value")
        if operator in _VALUE_OPERATORS:
            if value is None:
                raise InvalidFilterError(f"Filter on '{column}' with '{operator}' requires a value.")
            if not isinstance(value, (str, int, float, bool)):
                raise InvalidFilterError(f"Filter value for '{column}' must be a scalar.")
        parsed.append(Filter(column=column, operator=operator, value=value))
    return parsed


def compile_filters(filters: Sequence[Filter], columns: Sequence[Column]) -> tuple[str, list[Any]]:
    """Return ``(clause, params)`` AND-ing every filter; clause is "" when empty."""
    if not filters:
        return "", []
    require_columns(columns, (item.column for item in filters))

    clauses: list[str] = []
    params: list[Any] = []
    for item in filters:
        col = quote_identifier(item.column)
        if item.operator in _NULLARY_OPERATORS:
            clauses.append(_NULLARY_OPERATORS[item.operator].format(col=col))
            if item.operator == "true":
                params.extend(_TRUE_VALUES)
            elif item.operator == "false":
                params.extend(_FALSE_VALUES)
            continue
        if item.operator not in _VALUE_OPERATORS:
            raise InvalidFilterError(f"Unsupported filter operator '{item.operator}'.")
        clauses.append(_VALUE_OPERATORS[item.operator].format(col=col))
        if item.operator == "icontains":
            params.append(f"%{_escape_like(str(item.value))}%")
        elif item.operator == "contains":
            params.append(str(item.value))
        else:
            params.append(item.value)
    return " AND ".join(clauses), params


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

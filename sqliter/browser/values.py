"""Conversions between SQLite values and JSON-friendly values."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqliter.shared.exceptions import ValidationError

_BINDABLE = (str, int, float, bool, type(None))


def to_wire(value: Any) -> Any:
    """Return ``value`` unchanged unless it is a blob, which becomes hex text."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return value


def require_bindable(values: Mapping[str, Any]) -> None:
    """Reject nested JSON values, which SQLite cannot bind."""
    for column, value in values.items():
        if not isinstance(value, _BINDABLE):
            raise ValidationError(
                f"Value for '{column}' must be a string, number, boolean or null."
            )

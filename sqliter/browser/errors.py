"""Translate SQLite engine errors into messages an operator can act on.

The driver exposes ``sqlite_errorname`` (extended result code name) on
Python 3.11+; that is the primary signal. The engine's diagnostic text is
still parsed to recover the offending column, and is the only signal on
older interpreters. The text format is not a stable API across SQLite
versions, so unrecognised messages pass through unchanged.
"""

from __future__ import annotations

import sqlite3

from sqliter.shared.exceptions import (
    ConstraintError,
    DatabaseBusyError,
    DatabaseError,
    ReadOnlyDatabaseError,
)

UNIQUE = "unique"
NOT_NULL = "not_null"
FOREIGN_KEY = "foreign_key"
CHECK = "check"

_ERRORNAME_KINDS = {
    "SQLITE_CONSTRAINT_UNIQUE": UNIQUE,
    "SQLITE_CONSTRAINT_PRIMARYKEY": UNIQUE,
    "SQLITE_CONSTRAINT_NOTNULL": NOT_NULL,
    "SQLITE_CONSTRAINT_FOREIGNKEY": FOREIGN_KEY,
    "SQLITE_CONSTRAINT_CHECK": CHECK,
}

_MESSAGE_MARKERS = (
    ("UNIQUE constraint failed:", UNIQUE),
    ("NOT NULL constraint failed:", NOT_NULL),
    ("FOREIGN KEY constraint failed", FOREIGN_KEY),
    ("CHECK constraint failed", CHECK),
)

_BUSY_PREFIXES = ("SQLITE_BUSY", "SQLITE_LOCKED")
_BUSY_MARKERS = ("database is locked", "database table is locked")
_READONLY_MARKER = "attempt to write a readonly database"


def translate_error(
    exc: sqlite3.Error,
    *,
    fallback: type[DatabaseError] = DatabaseError,
) -> DatabaseError:
    """Return the project exception that best describes ``exc``.

    Constraint violations become :class:`ConstraintError`, lock contention
    becomes :class:`DatabaseBusyError`, writes against a read-only file become
    :class:`ReadOnlyDatabaseError`, and everything else is wrapped in
    ``fallback`` with the engine's message kept verbatim.
    """
    message = str(exc)
    error_name = getattr(exc, "sqlite_errorname", None) or ""

    if error_name.startswith(_BUSY_PREFIXES) or any(marker in message for marker in _BUSY_MARKERS):
        return DatabaseBusyError("The database is locked by another operation. Try again.")

    if error_name.startswith("SQLITE_READONLY") or _READONLY_MARKER in message:
        return ReadOnlyDatabaseError("The database is open read-only; changes are not allowed.")

    kind = _ERRORNAME_KINDS.get(error_name) or _kind_from_message(message)
    if kind is None:
        return fallback(message)

    if kind == UNIQUE:
        column = _column_after(message, "constraint failed:")
        if column:
            text = f"The value for '{column}' already exists. This field must be unique."
        else:
            text = "A unique constraint was violated. This value already exists."
        return ConstraintError(text, kind=kind, column=column)

    if kind == NOT_NULL:
        column = _column_after(message, "NOT NULL constraint failed:")
        if column:
            text = f"The field '{column}' is required and cannot be empty."
        else:
            text = "A required field is missing."
        return ConstraintError(text, kind=kind, column=column)

    if kind == FOREIGN_KEY:
        return ConstraintError(
            "This operation violates a foreign key constraint. The referenced record may not exist.",
            kind=kind,
        )

    expression = _text_after(message, "CHECK constraint failed:")
    if expression:
        return ConstraintError(f"The value violates a check constraint: {expression}", kind=kind)
    return ConstraintError("The value violates a check constraint.", kind=kind)


def _kind_from_message(message: str) -> str | None:
    for marker, kind in _MESSAGE_MARKERS:
        if marker in message:
            return kind
    return None


def _text_after(message: str, marker: str) -> str | None:
    _, found, tail = message.partition(marker)
    if not found:
        return None
    return tail.strip() or None


def _column_after(message: str, marker: str) -> str | None:
    # "UNIQUE constraint failed: users.email" or "...: t.a, t.b" for composite keys
    tail = _text_after(message, marker)
    if not tail:
        return None
    first = tail.split(",", 1)[0].strip()
    _, dot, column = first.partition(".")
    return column.strip() if dot and column.strip() else None

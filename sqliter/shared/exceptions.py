"""Project-wide custom exceptions."""

from __future__ import annotations


class SQLiterError(Exception):
    """Base exception for the SQLite browser."""


class ConfigurationError(SQLiterError):
    """Raised when configuration loading or validation fails."""


class DatabaseError(SQLiterError):
    """Raised for database-related issues."""


class SchemaError(DatabaseError):
    """Raised when table metadata cannot be resolved."""


class TableNotFoundError(SchemaError):
    """Raised when a table name is not present in the catalog."""

    def __init__(self, table: str) -> None:
        super().__init__(f"Table '{table}' does not exist in the database.")
        self.table = table


class ConstraintError(DatabaseError):
    """Raised when a write is rejected by a schema constraint."""

    def __init__(self, message: str, *, kind: str, column: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.column = column


class DatabaseBusyError(DatabaseError):
    """Raised when the engine reports the database as busy or locked."""


class QueryError(DatabaseError):
    """Raised when ad-hoc SQL execution fails."""


class ReadOnlyDatabaseError(DatabaseError):
    """Raised when a write reaches a database opened read-only."""


class ValidationError(SQLiterError):
    """Raised when client-supplied input is rejected before reaching the engine."""


class EmptyInputError(ValidationError):
    """Raised when a required mapping, list or SQL string is empty."""


class InvalidSortColumnError(ValidationError):
    """Raised when the sort column is not part of the table schema."""


class InvalidSortDirectionError(ValidationError):
    """Raised when the sort direction is neither asc nor desc."""


class InvalidColumnError(ValidationError):
    """Raised when a column name is not part of the table schema."""


class InvalidFilterError(ValidationError):
    """Raised when a structured filter cannot be parsed or compiled."""


class RawWhereDisabledError(ValidationError):
    """Raised when a raw WHERE fragment is sent while raw fragments are disabled."""

"""
Domain Errors

The closed set of failures repositories report to handlers. Storage errors
outside this set propagate unchanged.

Unique constraint violations are recognised by the table.column the
database names in its error message, e.g. SQLite's
"UNIQUE constraint failed: users.email".
"""

from sqlalchemy.exc import IntegrityError


class ModelError(Exception):
    """Base class for domain errors raised by repositories."""

    message = "model error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class NoRecordError(ModelError):
    """No matching record, or a record owned by someone else."""
    message = "no matching record found"


class InvalidCredentialsError(ModelError):
    message = "invalid credentials"


class DuplicateEmailError(ModelError):
    message = "duplicate email"


class DuplicateUsernameError(ModelError):
    message = "duplicate username"


class DuplicateIsbnError(ModelError):
    message = "duplicate isbn"


def violates_unique(exc: IntegrityError, table: str, column: str) -> bool:
    """
    Check whether an IntegrityError is a unique violation on table.column.

    SQLite names "table.column"; PostgreSQL names the constraint, which
    SQLAlchemy generates as "<table>_<column>_key".
    """
    detail = str(exc.orig).lower()
    if "unique" not in detail and "duplicate" not in detail:
        return False
    return f"{table}.{column}" in detail or f"{table}_{column}_key" in detail

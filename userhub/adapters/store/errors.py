"""Classification of raw store failures into domain errors.

Store adapters call classify_store_error() once, at the port boundary, so
the core only ever sees DomainError kinds.

Unique-constraint detection prefers structured signals from the driver
(asyncpg's UniqueViolationError / SQLSTATE 23505, sqlite3.IntegrityError)
and falls back to matching the error text. The text match is a
compatibility shim for drivers that expose nothing better; it depends on
message wording and is not a correctness guarantee.
"""

import asyncio
import sqlite3

from userhub.core.errors import (
    EMAIL_IN_USE,
    USER_EXISTS,
    DomainError,
    conflict_error,
    internal_error,
)

UNIQUE_VIOLATION_SQLSTATE = "23505"
STORAGE_TIMEOUT = "storage_timeout"

_SQLITE_UNIQUE_ERROR_NAMES = frozenset(
    {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}
)

_UNIQUE_TEXT_SIGNATURES = (
    "duplicate key value",
    "unique constraint",
)


def is_unique_violation(exc: BaseException) -> bool:
    """Return True if the exception reports a uniqueness-constraint violation."""
    sqlstate = getattr(exc, "sqlstate", None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE

    if isinstance(exc, sqlite3.IntegrityError):
        # One IntegrityError class covers every constraint type
        error_name = getattr(exc, "sqlite_errorname", None)
        if error_name is not None:
            return error_name in _SQLITE_UNIQUE_ERROR_NAMES
        return "unique" in str(exc).lower()

    message = str(exc).lower()
    return any(signature in message for signature in _UNIQUE_TEXT_SIGNATURES)


def is_lock_timeout(exc: BaseException) -> bool:
    """Return True if SQLite gave up waiting for a database lock."""
    if not isinstance(exc, sqlite3.OperationalError):
        return False
    error_name = getattr(exc, "sqlite_errorname", None)
    if error_name is not None:
        return error_name.startswith(("SQLITE_BUSY", "SQLITE_LOCKED"))
    return "database is locked" in str(exc).lower()


def unique_violation_code(exc: BaseException) -> str:
    """Name the violated constraint: EMAIL_IN_USE or USER_EXISTS.

    asyncpg reports the constraint name ("users_email_key"); SQLite names
    the column in its message ("UNIQUE constraint failed: users.email").
    """
    detail = getattr(exc, "constraint_name", None) or str(exc)
    return EMAIL_IN_USE if "email" in detail.lower() else USER_EXISTS


def classify_store_error(exc: BaseException, operation: str) -> DomainError:
    """Map a raw store exception to a CONFLICT or INTERNAL DomainError.

    Args:
        exc: Exception raised by the driver.
        operation: Name of the store operation, used in the message.

    Returns:
        The DomainError to raise in place of exc.
    """
    if isinstance(exc, DomainError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)) or is_lock_timeout(exc):
        return internal_error(
            f"{operation} timed out", cause=exc, code=STORAGE_TIMEOUT
        )
    if is_unique_violation(exc):
        code = unique_violation_code(exc)
        message = (
            "email is already in use" if code == EMAIL_IN_USE else "user already exists"
        )
        return conflict_error(message, cause=exc, code=code)
    return internal_error(f"{operation} failed", cause=exc)

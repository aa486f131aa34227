"""Domain error taxonomy for the userhub service.

Every failure that leaves the core is a DomainError carrying one of a
closed set of kinds. Consumers classify errors by kind (via the predicate
helpers below), never by comparing against particular error instances, so
an error raised by a store adapter and one constructed by hand are treated
identically.

Kinds:
- VALIDATION: bad input, the caller's fault, never retried
- NOT_FOUND: no such record at the time of the operation
- CONFLICT: uniqueness violation (email already in use)
- INTERNAL: anything else (connectivity, driver errors, timeouts)
"""

from enum import Enum


class ErrorKind(Enum):
    """Closed set of domain error kinds."""

    VALIDATION = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND_ERROR"
    CONFLICT = "CONFLICT_ERROR"
    INTERNAL = "INTERNAL_ERROR"


class DomainError(Exception):
    """A classified failure raised by the core or a store adapter.

    Attributes:
        kind: The ErrorKind discriminant.
        message: Human-readable description.
        code: Optional stable reason code (e.g. "invalid_email").
        cause: Optional underlying exception, kept for logging only.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: BaseException | None = None,
        code: str | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message

    def __repr__(self) -> str:
        return (
            f"DomainError(kind={self.kind.name}, message={self.message!r}, "
            f"code={self.code!r})"
        )


# Stable codes for CONFLICT errors
EMAIL_IN_USE = "email_in_use"
USER_EXISTS = "user_exists"


def validation_error(
    message: str, cause: BaseException | None = None, code: str | None = None
) -> DomainError:
    """Create a VALIDATION error."""
    return DomainError(ErrorKind.VALIDATION, message, cause=cause, code=code)


def not_found_error(
    message: str, cause: BaseException | None = None, code: str | None = None
) -> DomainError:
    """Create a NOT_FOUND error."""
    return DomainError(ErrorKind.NOT_FOUND, message, cause=cause, code=code)


def conflict_error(
    message: str, cause: BaseException | None = None, code: str | None = None
) -> DomainError:
    """Create a CONFLICT error."""
    return DomainError(ErrorKind.CONFLICT, message, cause=cause, code=code)


def internal_error(
    message: str, cause: BaseException | None = None, code: str | None = None
) -> DomainError:
    """Create an INTERNAL error."""
    return DomainError(ErrorKind.INTERNAL, message, cause=cause, code=code)


def error_kind(exc: BaseException | None) -> ErrorKind | None:
    """Return the kind of the first DomainError in the exception's cause chain.

    Returns None when no DomainError is found.
    """
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        if isinstance(exc, DomainError):
            return exc.kind
        seen.add(id(exc))
        exc = exc.__cause__
    return None


def is_validation_error(exc: BaseException | None) -> bool:
    return error_kind(exc) is ErrorKind.VALIDATION


def is_not_found_error(exc: BaseException | None) -> bool:
    return error_kind(exc) is ErrorKind.NOT_FOUND


def is_conflict_error(exc: BaseException | None) -> bool:
    return error_kind(exc) is ErrorKind.CONFLICT


def is_internal_error(exc: BaseException | None) -> bool:
    return error_kind(exc) is ErrorKind.INTERNAL


__all__ = [
    "EMAIL_IN_USE",
    "USER_EXISTS",
    "DomainError",
    "ErrorKind",
    "conflict_error",
    "error_kind",
    "internal_error",
    "is_conflict_error",
    "is_internal_error",
    "is_not_found_error",
    "is_validation_error",
    "not_found_error",
    "validation_error",
]

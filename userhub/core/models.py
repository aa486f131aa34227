"""Domain models for the userhub service.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from .validation import validate_email, validate_name, validate_user_input


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


@dataclass
class User:
    """A registered user.

    The id is assigned once by User.new() and never changes. Name and email
    are only mutated through change_name() and change_email(), which
    validate the new value and advance updated_at.

    Note: This dataclass is intentionally mutable so an update use case can
    apply partial changes to a stored record before writing it back.
    """

    id: str  # UUID
    name: str
    email: str
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        """Validate timestamp invariant on creation."""
        if self.updated_at < self.created_at:
            raise ValueError(
                f"updated_at ({self.updated_at.isoformat()}) must not precede "
                f"created_at ({self.created_at.isoformat()})"
            )

    @classmethod
    def new(cls, name: str, email: str) -> "User":
        """Create a validated user with a fresh id and matching timestamps.

        Raises:
            DomainError: VALIDATION if name or email is invalid.
        """
        validate_user_input(name, email)
        now = utcnow()
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            email=email,
            created_at=now,
            updated_at=now,
        )

    def change_name(self, name: str) -> None:
        """Replace the name.

        Raises:
            DomainError: VALIDATION if the name is empty.
        """
        validate_name(name)
        self.name = name
        self._touch()

    def change_email(self, email: str) -> None:
        """Replace the email.

        Raises:
            DomainError: VALIDATION if the email is malformed.
        """
        validate_email(email)
        self.email = email
        self._touch()

    def _touch(self) -> None:
        # Never move updated_at backwards, even if the wall clock does.
        self.updated_at = max(utcnow(), self.updated_at, self.created_at)


@dataclass(frozen=True)
class UserListPage:
    """One page of users returned by the list use case.

    total is the number of users on this page, not the size of the
    whole collection.
    """

    users: tuple[User, ...]
    total: int
    limit: int
    offset: int

    def __post_init__(self) -> None:
        """Validate page invariants on creation."""
        if self.limit <= 0:
            raise ValueError(f"limit must be positive, got {self.limit}")
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}")
        if self.total != len(self.users):
            raise ValueError(
                f"total ({self.total}) must equal the page size ({len(self.users)})"
            )

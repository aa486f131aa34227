"""Port interfaces for the userhub service.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - UserStorePort: Persist and query users

2. **Driving Ports** (adapters/external systems call into core)
   - UserServicePort: Create, read, update, delete and list users
"""

from abc import ABC, abstractmethod

from .models import User, UserListPage


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class UserStorePort(ABC):
    """Port for persisting and querying users.

    The core depends only on this contract, never on a concrete store, so
    a relational database, an in-memory map, or any other engine may back
    it as long as the contract below holds.

    Implementations must:
    - Enforce email uniqueness and report violations as CONFLICT
    - Report writes that affect zero rows as NOT_FOUND
    - Classify every other failure as INTERNAL, exactly once
    - Let asyncio.CancelledError propagate so cancelled callers return
      promptly and never issue further statements
    - Bound each statement by a timeout and report expiry as INTERNAL

    All failures are raised as DomainError (see core.errors).
    """

    @abstractmethod
    async def create(self, user: User) -> None:
        """Persist a new user.

        Args:
            user: User with id and timestamps already assigned.

        Raises:
            DomainError: CONFLICT if the email (or id) is already taken,
                INTERNAL if the store fails.
        """

    @abstractmethod
    async def get_by_id(self, user_id: str) -> User:
        """Retrieve a user by id.

        Args:
            user_id: UUID string of the user.

        Returns:
            The stored User.

        Raises:
            DomainError: NOT_FOUND if no user has this id,
                INTERNAL if the store fails.
        """

    @abstractmethod
    async def get_by_email(self, email: str) -> User:
        """Retrieve a user by email address.

        Args:
            email: Exact email address.

        Returns:
            The stored User.

        Raises:
            DomainError: NOT_FOUND if no user has this email,
                INTERNAL if the store fails.
        """

    @abstractmethod
    async def update(self, user: User) -> None:
        """Write name, email and updated_at of an existing user.

        The affected-row count of the write decides NOT_FOUND: a record
        that vanished between read and write is reported, not silently
        ignored.

        Raises:
            DomainError: NOT_FOUND if no row matched the id,
                CONFLICT if the new email belongs to another user,
                INTERNAL if the store fails.
        """

    @abstractmethod
    async def delete(self, user_id: str) -> None:
        """Physically remove a user.

        Raises:
            DomainError: NOT_FOUND if no row matched the id,
                INTERNAL if the store fails.
        """

    @abstractmethod
    async def list(self, limit: int, offset: int) -> list[User]:
        """Return one page of users, newest created_at first.

        Args:
            limit: Maximum number of users to return.
            offset: Number of users to skip.

        Returns:
            Users ordered by created_at descending (id descending on ties).
            Empty list when the offset is past the end.

        Raises:
            DomainError: INTERNAL if the store fails.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release pooled connections."""


# ============================================================================
# DRIVING PORTS (Adapters/external systems call into core)
# ============================================================================


class UserServicePort(ABC):
    """Port for user management use cases.

    Driving port: the HTTP server and CLI invoke these methods.
    The implementation lives in the core (user_service.py).

    Every method raises DomainError on failure; no partial result is ever
    returned alongside an error.
    """

    @abstractmethod
    async def create_user(self, name: str, email: str) -> User:
        """Validate and create a user.

        Raises:
            DomainError: VALIDATION, CONFLICT or INTERNAL.
        """

    @abstractmethod
    async def get_user(self, user_id: str) -> User:
        """Retrieve a user.

        Raises:
            DomainError: NOT_FOUND or INTERNAL.
        """

    @abstractmethod
    async def update_user(
        self,
        user_id: str,
        name: str | None = None,
        email: str | None = None,
    ) -> User:
        """Apply a partial update.

        Empty or missing fields are left unchanged.

        Raises:
            DomainError: VALIDATION, NOT_FOUND, CONFLICT or INTERNAL.
        """

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        """Delete a user.

        Raises:
            DomainError: NOT_FOUND or INTERNAL.
        """

    @abstractmethod
    async def list_users(self, limit: int = 0, offset: int = 0) -> UserListPage:
        """List one page of users.

        Non-positive limits become 10 and negative offsets become 0.
        Values above 2**63 - 1 are rejected.

        Raises:
            DomainError: VALIDATION for an out-of-range page; INTERNAL.
        """

"""User service: implements UserServicePort for the user use cases.

This is a core service that sequences validation, the email uniqueness
pre-check, and store writes. It owns no long-lived state and performs no
retries; store failures arrive already classified and are propagated
unchanged.

The email pre-check is not wrapped in a transaction with the write that
follows it. Two concurrent requests for the same email can both pass the
pre-check; the store's unique constraint then rejects one of them with a
CONFLICT of the same kind the pre-check would have raised.
"""

import logging

from .errors import (
    EMAIL_IN_USE,
    DomainError,
    conflict_error,
    internal_error,
    is_not_found_error,
    validation_error,
)
from .models import User, UserListPage
from .ports import UserServicePort, UserStorePort
from .validation import validate_email, validate_user_input

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 10
# Largest limit or offset the store drivers bind as an integer
MAX_PAGE_VALUE = 2**63 - 1
INVALID_PAGE = "invalid_page"


class UserService(UserServicePort):
    """Core implementation of UserServicePort.

    Depends only on the UserStorePort contract.
    All mutations are logged for audit trails.
    """

    def __init__(self, store: UserStorePort):
        """Initialize the user service.

        Args:
            store: UserStorePort implementation for persistence.
        """
        self.store = store

    async def create_user(self, name: str, email: str) -> User:
        """Validate and persist a new user.

        Args:
            name: Display name, must be non-empty.
            email: Email address, must be well formed and unused.

        Returns:
            The created User.

        Raises:
            DomainError: VALIDATION on bad input (before any I/O),
                CONFLICT if the email is in use, INTERNAL on store failure.
        """
        validate_user_input(name, email)

        await self._ensure_email_available(email)

        user = User.new(name, email)
        await self._call_store(self.store.create(user))

        logger.info(
            f"User {user.id} created",
            extra={"user_id": user.id, "email": user.email},
        )
        return user

    async def get_user(self, user_id: str) -> User:
        """Retrieve a user by id.

        Raises:
            DomainError: NOT_FOUND or INTERNAL.
        """
        user = await self._call_store(self.store.get_by_id(user_id))
        logger.debug(f"Retrieved user {user_id}", extra={"user_id": user_id})
        return user

    async def update_user(
        self,
        user_id: str,
        name: str | None = None,
        email: str | None = None,
    ) -> User:
        """Apply a partial update to a stored user.

        Empty or missing fields mean "leave unchanged", not "clear".
        Setting the email to the user's own current address is allowed.

        Raises:
            DomainError: VALIDATION, NOT_FOUND, CONFLICT or INTERNAL.
        """
        user = await self._call_store(self.store.get_by_id(user_id))

        if name:
            user.change_name(name)

        if email:
            validate_email(email)
            await self._ensure_email_available(email, owner_id=user.id)
            user.change_email(email)

        await self._call_store(self.store.update(user))

        logger.info(
            f"User {user_id} updated",
            extra={
                "user_id": user_id,
                "name_changed": bool(name),
                "email_changed": bool(email),
            },
        )
        return user

    async def delete_user(self, user_id: str) -> None:
        """Delete a user.

        Raises:
            DomainError: NOT_FOUND or INTERNAL.
        """
        await self._call_store(self.store.delete(user_id))
        logger.info(f"User {user_id} deleted", extra={"user_id": user_id})

    async def list_users(self, limit: int = 0, offset: int = 0) -> UserListPage:
        """List one page of users, newest first.

        Args:
            limit: Page size; values <= 0 become DEFAULT_LIST_LIMIT.
            offset: Users to skip; negative values become 0.

        Returns:
            UserListPage whose total is the size of this page.

        Raises:
            DomainError: VALIDATION when limit or offset exceeds MAX_PAGE_VALUE;
                INTERNAL.
        """
        if limit <= 0:
            limit = DEFAULT_LIST_LIMIT
        if offset < 0:
            offset = 0
        if limit > MAX_PAGE_VALUE or offset > MAX_PAGE_VALUE:
            raise validation_error(
                "limit and offset must fit in a 64-bit integer", code=INVALID_PAGE
            )

        users = await self._call_store(self.store.list(limit, offset))

        logger.debug(
            f"Listed {len(users)} users",
            extra={"limit": limit, "offset": offset},
        )
        return UserListPage(
            users=tuple(users),
            total=len(users),
            limit=limit,
            offset=offset,
        )

    async def _ensure_email_available(
        self, email: str, owner_id: str | None = None
    ) -> None:
        """Raise CONFLICT if another user already holds this email.

        Args:
            email: Address to check.
            owner_id: Id of the user allowed to hold the address already.
        """
        try:
            existing = await self._call_store(self.store.get_by_email(email))
        except DomainError as e:
            if is_not_found_error(e):
                return
            raise

        if existing.id != owner_id:
            logger.warning(
                "Email already in use",
                extra={"email": email, "owner_id": existing.id},
            )
            raise conflict_error("email is already in use", code=EMAIL_IN_USE)

    @staticmethod
    async def _call_store(awaitable):
        """Await a store call, classifying anything left unclassified.

        DomainErrors and cancellation pass through untouched.
        """
        try:
            return await awaitable
        except DomainError:
            raise
        except Exception as e:
            logger.error(f"Unclassified store failure: {e}", exc_info=True)
            raise internal_error("storage operation failed", cause=e) from e

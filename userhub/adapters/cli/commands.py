"""CLI command implementations for userhub administration.

Provides human-initiated user management through a command-line interface.

This adapter maps CLI commands (create, get, update, delete, list) to
UserServicePort operations. It handles CLI-specific formatting and error
reporting: domain failures become {"status": "error"} results rather than
exceptions.
"""

import logging
from typing import Any

from userhub.core.errors import DomainError
from userhub.core.models import User, UserListPage
from userhub.core.ports import UserServicePort

logger = logging.getLogger(__name__)


def _user_to_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "created_at": user.created_at.isoformat(),
        "updated_at": user.updated_at.isoformat(),
    }


class CLICommandHandler:
    """Handles CLI commands by delegating to UserServicePort."""

    def __init__(self, service: UserServicePort):
        """Initialize the CLI command handler.

        Args:
            service: UserServicePort implementation to execute commands.
        """
        self.service = service

    @staticmethod
    def _error(operation: str, error: DomainError, **fields: Any) -> dict[str, Any]:
        logger.error(f"Failed to {operation.replace('_', ' ')}: {error}")
        return {
            "status": "error",
            "operation": operation,
            **fields,
            "kind": error.kind.value,
            "message": error.message,
        }

    async def create_user(self, name: str, email: str) -> dict[str, Any]:
        """Create a user via CLI.

        Args:
            name: Display name.
            email: Email address.

        Returns:
            Dictionary with status and the created user.
        """
        try:
            user = await self.service.create_user(name, email)
        except DomainError as e:
            return self._error("create_user", e, email=email)

        return {
            "status": "success",
            "operation": "create_user",
            "user_id": user.id,
            "data": _user_to_dict(user),
            "message": f"User {user.id} created",
        }

    async def get_user(self, user_id: str, output_format: str = "json") -> dict[str, Any]:
        """Retrieve a user via CLI.

        Args:
            user_id: UUID of the user.
            output_format: Output format ('json', 'text'). Default 'json'.

        Returns:
            Dictionary with user data or status/message on error.
        """
        if output_format not in ("json", "text"):
            return {
                "status": "error",
                "operation": "get_user",
                "message": f"Unsupported format: {output_format}",
            }

        try:
            user = await self.service.get_user(user_id)
        except DomainError as e:
            return self._error("get_user", e, user_id=user_id)

        data: Any = _user_to_dict(user)
        if output_format == "text":
            data = self._format_user_as_text(user)

        return {
            "status": "success",
            "operation": "get_user",
            "data": data,
        }

    async def update_user(
        self,
        user_id: str,
        name: str | None = None,
        email: str | None = None,
        verbose: bool = False,
    ) -> dict[str, Any]:
        """Apply a partial update via CLI.

        Args:
            user_id: UUID of the user.
            name: New name, or None to keep the current one.
            email: New email, or None to keep the current one.
            verbose: If True, log additional information.

        Returns:
            Dictionary with status and the updated user.
        """
        try:
            user = await self.service.update_user(user_id, name=name, email=email)
        except DomainError as e:
            return self._error("update_user", e, user_id=user_id)

        if verbose:
            logger.info(
                f"Updated user {user_id}",
                extra={"name": name, "email": email, "verbose": True},
            )

        return {
            "status": "success",
            "operation": "update_user",
            "user_id": user_id,
            "data": _user_to_dict(user),
            "message": f"User {user_id} updated",
        }

    async def delete_user(self, user_id: str) -> dict[str, Any]:
        """Delete a user via CLI."""
        try:
            await self.service.delete_user(user_id)
        except DomainError as e:
            return self._error("delete_user", e, user_id=user_id)

        return {
            "status": "success",
            "operation": "delete_user",
            "user_id": user_id,
            "message": f"User {user_id} deleted",
        }

    async def list_users(
        self, limit: int = 0, offset: int = 0, output_format: str = "json"
    ) -> dict[str, Any]:
        """List one page of users via CLI.

        Args:
            limit: Page size (<= 0 uses the service default).
            offset: Users to skip.
            output_format: Output format ('json', 'text'). Default 'json'.

        Returns:
            Dictionary with the page or status/message on error.
        """
        if output_format not in ("json", "text"):
            return {
                "status": "error",
                "operation": "list_users",
                "message": f"Unsupported format: {output_format}",
            }

        try:
            page = await self.service.list_users(limit=limit, offset=offset)
        except DomainError as e:
            return self._error("list_users", e)

        if output_format == "text":
            return {
                "status": "success",
                "operation": "list_users",
                "data": self._format_page_as_text(page),
            }

        return {
            "status": "success",
            "operation": "list_users",
            "data": {
                "users": [_user_to_dict(user) for user in page.users],
                "total": page.total,
                "limit": page.limit,
                "offset": page.offset,
            },
        }

    def _format_user_as_text(self, user: User) -> str:
        lines = [
            f"User ID: {user.id}",
            f"Name: {user.name}",
            f"Email: {user.email}",
            f"Created: {user.created_at.strftime('%Y-%m-%d %H:%M:%S %Z')}",
            f"Updated: {user.updated_at.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        ]
        return "\n".join(lines)

    def _format_page_as_text(self, page: UserListPage) -> str:
        if not page.users:
            return "No users found."

        lines = [
            f"{page.total} user(s) (limit {page.limit}, offset {page.offset}):",
            f"{'ID':<36}  {'Name':<24}  {'Email':<32}  Created",
            "-" * 110,
        ]
        for user in page.users:
            created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
            lines.append(f"{user.id:<36}  {user.name:<24}  {user.email:<32}  {created}")
        return "\n".join(lines)


async def run_command(
    service: UserServicePort,
    command: str,
    args: dict[str, Any],
) -> dict[str, Any]:
    """Run a CLI command.

    Entry point for executing CLI commands. Maps command names to handler methods.

    Args:
        service: UserServicePort implementation.
        command: Command name ('create', 'get', 'update', 'delete', 'list').
        args: Dictionary of command arguments.

    Returns:
        Dictionary with command result.

    Raises:
        ValueError: If the command is not recognized or a required
            argument is missing.
    """
    handler = CLICommandHandler(service)

    def required(name: str) -> Any:
        if name not in args:
            raise ValueError(f"Missing required parameter: {name}")
        return args[name]

    if command == "create":
        return await handler.create_user(required("name"), required("email"))

    elif command == "get":
        return await handler.get_user(
            required("user_id"),
            output_format=args.get("format", "json"),
        )

    elif command == "update":
        return await handler.update_user(
            required("user_id"),
            name=args.get("name"),
            email=args.get("email"),
            verbose=args.get("verbose", False),
        )

    elif command == "delete":
        return await handler.delete_user(required("user_id"))

    elif command == "list":
        return await handler.list_users(
            limit=int(args.get("limit", 0)),
            offset=int(args.get("offset", 0)),
            output_format=args.get("format", "json"),
        )

    else:
        raise ValueError(f"Unknown command: {command}. Use 'help' for available commands.")

"""HTTP API operations for user management.

Translates decoded HTTP requests into UserServicePort calls and domain
results into (status, JSON body) pairs. Transport details (sockets,
routing, header handling) live in server.py.

Domain error kinds map 1:1 to status codes:
- VALIDATION -> 400
- NOT_FOUND  -> 404
- CONFLICT   -> 409
- INTERNAL   -> 500 (message replaced with a generic one)
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from userhub.core.errors import DomainError, ErrorKind, validation_error
from userhub.core.models import User, UserListPage
from userhub.core.ports import UserServicePort

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}

INTERNAL_ERROR_MESSAGE = "Internal server error"
INVALID_REQUEST = "invalid_request"


@dataclass(frozen=True)
class APIResponse:
    """Status code and optional JSON body for one request."""

    status: int
    body: dict[str, Any] | None = None


def user_to_dict(user: User) -> dict[str, Any]:
    """Serialize the public fields of a user."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
    }


def page_to_dict(page: UserListPage) -> dict[str, Any]:
    """Serialize a page of users."""
    return {
        "users": [user_to_dict(user) for user in page.users],
        "total": page.total,
        "limit": page.limit,
        "offset": page.offset,
    }


def error_response(error: DomainError) -> APIResponse:
    """Build the response for a classified domain error."""
    status = STATUS_BY_KIND[error.kind]
    if error.kind is ErrorKind.INTERNAL:
        logger.error(f"Internal error while handling request: {error}")
        message = INTERNAL_ERROR_MESSAGE
    else:
        message = error.message
    return APIResponse(
        status,
        {
            "error": {
                "kind": error.kind.value,
                "code": error.code,
                "message": message,
            }
        },
    )


def bad_request(message: str) -> APIResponse:
    """Build a 400 response for a request that could not be decoded."""
    return error_response(validation_error(message, code=INVALID_REQUEST))


def parse_user_id(raw: str) -> str | None:
    """Return the canonical form of a UUID path segment, or None if invalid."""
    try:
        return str(uuid.UUID(raw))
    except (ValueError, AttributeError, TypeError):
        return None


def parse_int(values: list[str] | None) -> int:
    """Parse the first query value as an integer, defaulting to 0."""
    if not values:
        return 0
    try:
        return int(values[0])
    except ValueError:
        return 0


def _optional_string(data: dict[str, Any], field: str) -> str:
    value = data.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise validation_error(f"{field} must be a string", code=INVALID_REQUEST)
    return value


class UserAPI:
    """HTTP-facing operations over a UserServicePort.

    Every method returns an APIResponse. DomainErrors are converted here;
    any other exception propagates to the server, which answers 500.
    """

    def __init__(self, service: UserServicePort):
        """Initialize the API.

        Args:
            service: UserServicePort implementation to execute requests.
        """
        self.service = service

    async def create_user(self, data: Any) -> APIResponse:
        """POST /api/v1/users"""
        if not isinstance(data, dict):
            return bad_request("Invalid JSON")
        try:
            user = await self.service.create_user(
                _optional_string(data, "name"),
                _optional_string(data, "email"),
            )
        except DomainError as e:
            return error_response(e)
        return APIResponse(201, user_to_dict(user))

    async def get_user(self, raw_id: str) -> APIResponse:
        """GET /api/v1/users/{id}"""
        user_id = parse_user_id(raw_id)
        if user_id is None:
            return bad_request("Invalid user ID")
        try:
            user = await self.service.get_user(user_id)
        except DomainError as e:
            return error_response(e)
        return APIResponse(200, user_to_dict(user))

    async def update_user(self, raw_id: str, data: Any) -> APIResponse:
        """PUT /api/v1/users/{id}"""
        user_id = parse_user_id(raw_id)
        if user_id is None:
            return bad_request("Invalid user ID")
        if not isinstance(data, dict):
            return bad_request("Invalid JSON")
        try:
            user = await self.service.update_user(
                user_id,
                name=_optional_string(data, "name") or None,
                email=_optional_string(data, "email") or None,
            )
        except DomainError as e:
            return error_response(e)
        return APIResponse(200, user_to_dict(user))

    async def delete_user(self, raw_id: str) -> APIResponse:
        """DELETE /api/v1/users/{id}"""
        user_id = parse_user_id(raw_id)
        if user_id is None:
            return bad_request("Invalid user ID")
        try:
            await self.service.delete_user(user_id)
        except DomainError as e:
            return error_response(e)
        return APIResponse(204)

    async def list_users(self, query: dict[str, list[str]]) -> APIResponse:
        """GET /api/v1/users?limit=&offset=

        Missing or non-integer values are treated as 0 and normalized by
        the service.
        """
        try:
            page = await self.service.list_users(
                limit=parse_int(query.get("limit")),
                offset=parse_int(query.get("offset")),
            )
        except DomainError as e:
            return error_response(e)
        return APIResponse(200, page_to_dict(page))

"""Core domain logic for the userhub service.

This package contains zero external dependencies and represents
the pure business logic of the application. All adapters and
external integrations are handled by the adapters package.
"""

from .errors import DomainError, ErrorKind
from .models import User, UserListPage

__all__ = [
    "DomainError",
    "ErrorKind",
    "User",
    "UserListPage",
]

"""Entity validation for User name and email fields.

Pure functions with no side effects. Each raises a VALIDATION DomainError
with a stable code on failure and returns None on success.
"""

from .errors import validation_error

INVALID_NAME = "invalid_name"
INVALID_EMAIL = "invalid_email"


def is_valid_email(email: str) -> bool:
    """Check the basic shape of an email address.

    Valid addresses contain exactly one "@" that is neither the first nor
    the last character, and at least one "." after the "@" that neither
    directly follows the "@" nor ends the address.
    """
    if email.count("@") != 1:
        return False

    at_index = email.index("@")
    if at_index == 0 or at_index == len(email) - 1:
        return False

    last = len(email) - 1
    return any(
        char == "." and at_index + 1 < i < last
        for i, char in enumerate(email)
    )


def validate_name(name: str | None) -> None:
    """Ensure the name is a non-empty string."""
    if not name:
        raise validation_error(
            "invalid name: name cannot be empty", code=INVALID_NAME
        )


def validate_email(email: str | None) -> None:
    """Ensure the email is non-empty and well formed."""
    if not email or not is_valid_email(email):
        raise validation_error(
            "invalid email: email must be valid format", code=INVALID_EMAIL
        )


def validate_user_input(name: str | None, email: str | None) -> None:
    """Validate the fields required to create a user.

    The name is checked before the email, so a request with both fields
    invalid reports the name.
    """
    validate_name(name)
    validate_email(email)

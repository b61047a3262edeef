"""Exceptions raised by the services and mapped to HTTP responses by the server."""
from __future__ import annotations

from typing import Any, Sequence


class ExpenseTrackerError(RuntimeError):
    """Base class for failures that carry a client-facing message and status."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, details: Sequence[Any] | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = list(details) if details else None


class ValidationError(ExpenseTrackerError):
    status_code = 400
    default_message = "Validation failed"


class DuplicateEmailError(ExpenseTrackerError):
    status_code = 409
    default_message = "User with this email already exists"


class InvalidCredentialsError(ExpenseTrackerError):
    """Raised for an unknown email and for a wrong password alike."""

    status_code = 401
    default_message = "Invalid email or password"


class AccountDeactivatedError(ExpenseTrackerError):
    status_code = 401
    default_message = "Account is deactivated. Please contact support."


class InvalidTokenError(ExpenseTrackerError):
    """Raised by the token issuer for bad signatures, expiry or malformed claims."""

    status_code = 401
    default_message = "Invalid token"


class InvalidOrExpiredTokenError(ExpenseTrackerError):
    status_code = 401
    default_message = "Invalid or expired token"


class IncorrectPasswordError(ExpenseTrackerError):
    status_code = 400
    default_message = "Current password is incorrect"


class UserNotFoundError(ExpenseTrackerError):
    status_code = 404
    default_message = "User not found"


class EntityNotFoundError(ExpenseTrackerError):
    """Raised when an entity is missing or belongs to another user."""

    status_code = 404
    default_message = "Expense not found"


__all__ = [
    "AccountDeactivatedError",
    "DuplicateEmailError",
    "EntityNotFoundError",
    "ExpenseTrackerError",
    "IncorrectPasswordError",
    "InvalidCredentialsError",
    "InvalidOrExpiredTokenError",
    "InvalidTokenError",
    "UserNotFoundError",
    "ValidationError",
]

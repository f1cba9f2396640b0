"""
Domain error taxonomy.

Services raise these; the HTTP layer maps each class to a status code in
minjok.main. Messages are user-facing, except for StoreFailure whose cause is
logged and replaced with a generic message.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for every error the domain layer raises on purpose."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthenticatedError(DomainError):
    """No session, or the session token is invalid or expired."""

    status_code = 401


class ForbiddenError(DomainError):
    """Session present but an authorization predicate failed."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ValidationError(DomainError):
    """A required field is missing or malformed."""

    status_code = 400


class ThrottleError(DomainError):
    """A cooldown window has not elapsed yet."""

    status_code = 429


class InvalidTransitionError(DomainError):
    """The requested status transition does not exist for the current state."""

    status_code = 409


class ConflictError(DomainError):
    """A uniqueness rule was violated by a concurrent write."""

    status_code = 409


class StoreFailure(DomainError):
    """An underlying database or object storage operation failed."""

    status_code = 500
    public_message = "Something went wrong while saving. Please try again."

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

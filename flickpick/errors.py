"""Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to and a message that is safe to
show to callers. Internal detail (upstream bodies, token failure reasons,
database errors) stays in the logs.
"""

from __future__ import annotations


class FlickpickError(Exception):
    """Base class for errors rendered to API callers."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidInputError(FlickpickError):
    """Missing or malformed caller input."""

    status_code = 400
    default_message = "Invalid input"


class AuthError(FlickpickError):
    """Authentication failed."""

    status_code = 400
    default_message = "Authentication failed"


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password; the two are never distinguished."""

    default_message = "Invalid credentials"


class InvalidTokenError(AuthError):
    """Missing, malformed, tampered or expired bearer token.

    ``reason`` is for logs and tests only; it is never rendered.
    """

    status_code = 401
    default_message = "Invalid token"

    def __init__(self, reason: str = "invalid", message: str | None = None):
        super().__init__(message)
        self.reason = reason


class UserNotFoundError(FlickpickError):
    status_code = 404
    default_message = "User not found"


class DuplicateEmailError(FlickpickError):
    status_code = 400
    default_message = "User already exists"


class UpstreamError(FlickpickError):
    """The movie catalog API failed or could not be reached."""

    default_message = "Catalog service unavailable"

    def __init__(self, status: int | None = None, message: str | None = None):
        super().__init__(message, status_code=status or 500)

    @property
    def status(self) -> int:
        return self.status_code


class StorageError(FlickpickError):
    """Unexpected persistence failure."""

    status_code = 500
    default_message = "Server error"


class ConcurrentUpdateError(StorageError):
    """A record changed between read and write."""

    status_code = 409
    default_message = "The record was modified concurrently, please retry"

"""
Error taxonomy shared by services and the HTTP layer.

Services raise these; ``app.main`` maps each family onto a JSON error
response with a matching status code.
"""

from typing import Optional


class SocialError(Exception):
    """Base class for expected, caller-visible failures."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(SocialError):
    status_code = 404
    error_code = "NOT_FOUND"


class ConflictError(SocialError):
    """A uniqueness race was lost; the caller should re-read current state."""

    status_code = 409
    error_code = "CONFLICT"


class ForbiddenError(SocialError):
    status_code = 403
    error_code = "FORBIDDEN"


class InvalidInputError(SocialError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthenticationError(SocialError):
    status_code = 401
    error_code = "UNAUTHENTICATED"


class UnavailableError(SocialError):
    status_code = 503
    error_code = "STORAGE_UNAVAILABLE"

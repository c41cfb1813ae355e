"""
vtilde.errors — Domain exceptions
==================================

Services raise these; the API layer renders them as ``{"message": ...}``
with the status carried by each class.
"""

from __future__ import annotations


class VTildeError(Exception):
    """Base class for every error a client is allowed to see."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VTildeError):
    """A required field is missing or a value is out of range."""

    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(VTildeError):
    """No bearer token was supplied."""

    status_code = 401
    default_message = "Access token required"


class InvalidCredential(VTildeError):
    """The bearer token is malformed, tampered with or expired."""

    status_code = 403
    default_message = "Invalid or expired token"


class Forbidden(VTildeError):
    """The caller does not own the resource they are trying to change."""

    status_code = 403
    default_message = "Access denied"


class NotFound(VTildeError):
    status_code = 404
    default_message = "Not found"


class Conflict(VTildeError):
    """Uniqueness or self-reference violation."""

    status_code = 409
    default_message = "Already exists"


class ExternalServiceError(VTildeError):
    """A third-party dependency (game metadata, media host) failed."""

    status_code = 503
    default_message = "External service unavailable"

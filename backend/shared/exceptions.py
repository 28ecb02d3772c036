"""
Base exception classes for the AlumniVerse auth backend.

Modules raise subclasses of these categories. The category decides the HTTP
status the API answers with; the ``code`` and ``message`` are what the
client shows.
"""

from typing import Optional, Any


class AlumniVerseError(Exception):
    """
    Base exception for all AlumniVerse errors.

    ``code`` defaults to the class name so that unhandled subclasses still
    produce a distinct, stable error code.
    """

    http_status = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Body of an ErrorResponse."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(AlumniVerseError):
    http_status = 404


class ValidationError(AlumniVerseError):
    """Input rejected before reaching a backing service."""

    http_status = 400


class ConflictError(AlumniVerseError):
    """A uniqueness constraint was hit, e.g. a second profile for one identity."""

    http_status = 409


class AuthenticationError(AlumniVerseError):
    """The caller could not be identified or signed in."""

    http_status = 401


class AuthorizationError(AlumniVerseError):
    http_status = 403


class ExternalServiceError(AlumniVerseError):
    """
    A backing service (Supabase Auth, the profile table, the session
    bridge) failed or was unreachable.
    """

    http_status = 502

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service

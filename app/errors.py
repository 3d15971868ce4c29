"""Application error taxonomy.

Every error raised by the service layer derives from :class:`AppError` and
carries the HTTP status it maps to. ``app.main`` renders them as::

    {"success": false, "message": "<message>"}
"""
from typing import Dict, Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers = headers or {}
        super().__init__(self.message)


class ConfigurationError(AppError):
    """Fatal misconfiguration detected at startup."""
    default_message = "Server is misconfigured"


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class RangeNotSatisfiableError(AppError):
    """Requested byte range lies outside the resource.

    Rendered with an empty body and ``Content-Range: bytes */<size>``.
    """
    status_code = 416
    default_message = "Requested range not satisfiable"

    def __init__(self, size: int):
        self.size = size
        super().__init__(headers={"Content-Range": f"bytes */{size}"})


class UpstreamError(AppError):
    """A remote collaborator (payment gateway, identity provider) failed."""
    status_code = 502
    default_message = "Upstream service unavailable"


# ---------------------------------------------------------------------------
# Media token failures
# ---------------------------------------------------------------------------

class TokenError(AuthenticationError):
    reason: str = "invalid"


class TokenRevoked(TokenError):
    reason = "revoked"
    default_message = "Access token has been revoked"


class TokenExpired(TokenError):
    reason = "expired"
    default_message = "Access token has expired"


class BadSignature(TokenError):
    reason = "bad_signature"
    default_message = "Invalid access token"


class WrongCapability(TokenError):
    reason = "wrong_capability"
    default_message = "Access token is not valid for this media type"


# ---------------------------------------------------------------------------
# Entitlement failures
# ---------------------------------------------------------------------------

class NotEnrolledError(AuthorizationError):
    default_message = "You are not enrolled in this course"


class CourseInactiveError(AuthorizationError):
    default_message = "This course is no longer available"

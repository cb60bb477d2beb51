"""
core/errors.py -- Service-layer exceptions mapped to HTTP responses.

Each class carries an HTTP status_code and a stable error_code. The session
manager and route handlers raise these; api/main.py renders them with the
shared {"error": {"code", "message", "detail"}} envelope.

Layer rule: no imports from api/ or auth/.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(ServiceError):
    """Malformed or missing input (400)."""

    status_code = 400
    error_code = "validation_error"


class Unauthenticated(ServiceError):
    """No token supplied (401)."""

    status_code = 401
    error_code = "unauthenticated"


class InvalidCredentials(ServiceError):
    """Login password did not match (401)."""

    status_code = 401
    error_code = "invalid_credentials"


class Forbidden(ServiceError):
    """Token present but unknown, revoked, expired or tampered with (403)."""

    status_code = 403
    error_code = "forbidden"


class NotFound(ServiceError):
    """Entity absent (404)."""

    status_code = 404
    error_code = "not_found"


class UserNotFound(NotFound):
    pass


class Conflict(ServiceError):
    """Uniqueness violation, e.g. duplicate email (409)."""

    status_code = 409
    error_code = "conflict"


class InternalError(ServiceError):
    """Unexpected store or runtime failure (500)."""

    status_code = 500
    error_code = "internal_error"

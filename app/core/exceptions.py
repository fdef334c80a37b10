"""Authentication and session error taxonomy.

Every error carries the HTTP status it maps to and a client-safe message.
Messages never distinguish "unknown email" from "wrong password", nor a
malformed token from an unknown one.
"""

from typing import Optional


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing."""


class AppError(Exception):
    """Base class for errors that surface to API callers."""

    status_code: int = 400
    default_detail: str = "Bad request"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AuthenticationError(AppError):
    status_code = 401
    default_detail = "Invalid email or password"


class InvalidTokenError(AppError):
    status_code = 401
    default_detail = "Invalid or expired token. Please re-authenticate."


class ExpiredTokenError(AppError):
    status_code = 401
    default_detail = "Refresh token expired. Please re-authenticate."


class RevokedTokenError(AppError):
    status_code = 401
    default_detail = "Token has been revoked. Please re-authenticate."


class SecurityViolationError(AppError):
    status_code = 401
    default_detail = (
        "Suspicious activity detected. All sessions have been revoked. "
        "Please login again."
    )


class NotFoundError(AppError):
    status_code = 404
    default_detail = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_detail = "Resource already exists"

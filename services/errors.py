from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    """Base class for service-layer exceptions mapped to HTTP responses.

    Each subclass carries an HTTP status_code and a stable, machine-readable
    error_code. The request boundary renders both and never the internals.
    """

    status_code: int = 400
    error_code: str = "BAD_REQUEST"
    default_message: str = "Bad request"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        detail: Optional[dict] = None,
        error_code: Optional[str] = None,
    ) -> None:
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.detail = detail or {}


class ValidationError(ServiceError):
    """Malformed or rejected input (400)."""
    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class UnauthorizedError(ServiceError):
    """Missing, invalid or expired access token (401)."""
    status_code = 401
    error_code = "UNAUTHORIZED"
    default_message = "Authentication required"


class InvalidCredentialsError(UnauthorizedError):
    """Login failed. Deliberately says nothing about which check failed."""
    error_code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class InvalidTokenError(UnauthorizedError):
    """Refresh token missing, malformed, expired or revoked."""
    error_code = "INVALID_TOKEN"
    default_message = "Invalid token"


class ForbiddenError(ServiceError):
    """Role hierarchy violation (403)."""
    status_code = 403
    error_code = "FORBIDDEN"
    default_message = "Access denied"


class NotFoundError(ServiceError):
    """Resource absent, or outside the caller's tenant (404)."""
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", **kwargs) -> None:
        super().__init__(f"{resource} not found", **kwargs)


class ConflictError(ServiceError):
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Resource already exists"


class DuplicateSlugError(ConflictError):
    error_code = "DUPLICATE_SLUG"
    default_message = "Slug already in use"


class DuplicateEmailError(ConflictError):
    error_code = "DUPLICATE_EMAIL"
    default_message = "Email already registered"


__all__ = [
    "ServiceError",
    "ValidationError",
    "UnauthorizedError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "DuplicateSlugError",
    "DuplicateEmailError",
]

"""
Error kinds raised by the auth core.

Every failure a caller can act on has its own class with a stable
machine-readable code (`error`) and an HTTP status; api/errors.py turns
them into the uniform error envelope.
"""
from __future__ import annotations


class AuthError(Exception):
    """Base class for expected, caller-recoverable failures."""

    error = "BAD_REQUEST"
    status = 400
    default_message = "Bad request"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class DuplicateEmailError(AuthError):
    error = "DUPLICATE_EMAIL"
    status = 409
    default_message = "Email already registered"


class InvalidInputError(AuthError):
    error = "INVALID_INPUT"
    status = 422
    default_message = "Invalid input"


class InvalidCredentialsError(AuthError):
    # Same message for unknown email and wrong password
    error = "INVALID_CREDENTIALS"
    status = 401
    default_message = "Invalid email or password"


class InvalidRefreshError(AuthError):
    error = "INVALID_REFRESH"
    status = 401
    default_message = "Invalid, revoked or expired refresh token"


class UnauthenticatedError(AuthError):
    error = "UNAUTHENTICATED"
    status = 401
    default_message = "Authentication required"


class StoreUnavailableError(AuthError):
    """Transient storage failure; the only kind worth retrying."""

    error = "STORE_UNAVAILABLE"
    status = 503
    default_message = "Storage temporarily unavailable, retry later"


class CredentialIntegrityError(AuthError):
    """A stored password digest could not be parsed."""

    error = "INTERNAL_ERROR"
    status = 500
    default_message = "An unexpected error occurred"


class TokenError(Exception):
    """Access token could not be verified. Never sent to clients as-is."""


class TokenExpired(TokenError):
    pass


class TokenInvalid(TokenError):
    pass

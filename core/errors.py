"""
core/errors.py -- Typed error kinds for Inkpost.

Every failure the service reports is one of these classes. Each carries the
HTTP status, a stable machine-readable code and a public message, so the API
layer renders all of them through one exception handler and route code only
has to raise.

Stores and auth helpers raise these directly. Nothing outside api/ knows
about HTTP beyond the status_code attribute.

Layer rule: core/ is the kernel. No imports from api/, auth/ or blog/.
"""

from __future__ import annotations


class InkpostError(Exception):
    """Base class for all user-visible failures."""

    status_code: int = 400
    code: str = "bad_request"
    message: str = "The request could not be processed."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or type(self).message
        self.detail = detail
        super().__init__(self.message)


class ConfigurationError(Exception):
    """Fatal startup misconfiguration. Never raised per request."""


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------


class DuplicateUsername(InkpostError):
    status_code = 409
    code = "duplicate_username"
    message = "Username already exists."


class InvalidCredentials(InkpostError):
    """Login failed. Subclasses exist for logging only; clients see one message."""

    status_code = 401
    code = "bad_credentials"
    message = "Invalid username or password."


class UserNotFound(InvalidCredentials):
    pass


class IncorrectPassword(InvalidCredentials):
    pass


# ---------------------------------------------------------------------------
# Auth gate
# ---------------------------------------------------------------------------


class AuthError(InkpostError):
    status_code = 403
    code = "auth_error"
    message = "Authentication failed."


class MissingCredential(AuthError):
    status_code = 401
    code = "missing_credential"
    message = "No authorization token provided."


class InvalidToken(AuthError):
    code = "invalid_token"
    message = "Invalid authorization token."


class TokenExpired(AuthError):
    code = "token_expired"
    message = "Authorization token has expired."


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


class NotOwner(InkpostError):
    status_code = 403
    code = "not_owner"
    message = "You are not the author of this post."


class ResourceNotFound(InkpostError):
    status_code = 404
    code = "not_found"
    message = "Post not found."


class CoverTooLarge(InkpostError):
    status_code = 413
    code = "cover_too_large"
    message = "Cover image is too large."


class NoChanges(InkpostError):
    code = "no_changes"
    message = "No fields to update."


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class StoreTimeout(InkpostError):
    status_code = 504
    code = "store_timeout"
    message = "The database did not respond in time."

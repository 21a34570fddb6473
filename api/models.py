"""
API request and response models for Inkpost REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
blog/models.py, which own the internal domain representation. Route handlers
map between the two.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from auth.models import Identity, User
from blog.models import Post

# bcrypt ignores everything past 72 bytes; reject instead of silently truncating.
_BCRYPT_MAX_BYTES = 72


# ---------------------------------------------------------------------------
# Shared envelopes
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class _Credentials(BaseModel):
    # Usernames are trimmed; passwords are taken byte-for-byte.
    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    password: str = Field(min_length=1, max_length=_BCRYPT_MAX_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        """Reject passwords whose UTF-8 form exceeds bcrypt's 72-byte input."""
        if len(value.encode("utf-8")) > _BCRYPT_MAX_BYTES:
            raise ValueError(f"password must be at most {_BCRYPT_MAX_BYTES} bytes")
        return value


class RegisterRequest(_Credentials):
    """Request body for POST /api/v1/auth/register."""


class LoginRequest(_Credentials):
    """Request body for POST /api/v1/auth/login."""


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. The password hash is never serialized."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, username=user.username, created_at=user.created_at or "")


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(BaseModel):
    """The caller's verified token claims."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    expires_at: str

    @classmethod
    def from_identity(cls, identity: Identity) -> "MeResponse":
        return cls(
            user_id=identity.user_id,
            username=identity.username,
            expires_at=identity.expires_at.isoformat(),
        )


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


class AuthorRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: Optional[str]


class PostResponse(BaseModel):
    """A post with its author populated."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    summary: str
    content: str
    cover: Optional[str]
    author: AuthorRef
    created_at: str
    updated_at: str

    @classmethod
    def from_post(cls, post: Post, author_username: Optional[str]) -> "PostResponse":
        """Build a PostResponse from a domain Post plus its author's username."""
        return cls(
            id=post.id,
            title=post.title,
            summary=post.summary,
            content=post.content,
            cover=post.cover,
            author=AuthorRef(id=post.author_id, username=author_username),
            created_at=post.created_at,
            updated_at=post.updated_at,
        )

"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in blog/models.py -- dataclasses own domain shape; stores and routes do the
work.

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered account.

    hashed_password is the bcrypt hash; the plaintext is never stored.
    id is None before the record is written to the database.
    """

    username: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """The verified claims of an identity token.

    Built only by TokenService.verify(). Carries no store data -- the server
    keeps no session state, so everything known about the caller comes from
    the signed token.
    """

    user_id: int
    username: str
    expires_at: datetime

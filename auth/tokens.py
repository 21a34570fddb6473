"""
auth/tokens.py -- Password hashing, JWT issuance/verification and login.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the username (sub), user_id,
       iat and exp. TokenService.verify() is all-or-nothing: it returns an
       Identity or raises TokenExpired / InvalidToken. A malformed token is
       an InvalidToken like any other failed check, never a crash.

  Passwords: bcrypt directly (no passlib wrapper). Each hash gets a fresh
       random salt at the configured cost factor (10 by default).
       bcrypt.checkpw compares in constant time. The dummy hash in
       authenticate_user() equalizes timing so response time does not reveal
       whether a username exists.

  Config: neither class reads settings on its own. The API lifespan builds
       them from the Settings instance and stores them on app.state.

Layer rule: no imports from api/ or blog/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import Identity, User
from core.errors import ConfigurationError, IncorrectPassword, InvalidToken, TokenExpired, UserNotFound

if TYPE_CHECKING:
    from auth.store import UserStore

logger = logging.getLogger("inkpost.auth")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


class PasswordHasher:
    """bcrypt hashing at a fixed cost factor.

    Passwords longer than 72 bytes are truncated by bcrypt. The API layer caps
    passwords at 72 characters of input (LoginRequest/RegisterRequest), which
    keeps ASCII input under the limit.
    """

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        # Computed once so the first unknown-username login is not measurably
        # slower than later ones.
        self.dummy_hash = self.hash("inkpost_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and verifies signed, time-limited identity tokens."""

    def __init__(self, secret_key: str, expire_seconds: int = 86400) -> None:
        if not secret_key:
            raise ConfigurationError("TokenService requires a non-empty secret key.")
        if expire_seconds <= 0:
            raise ConfigurationError("Token lifetime must be positive.")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, user_id: int, username: str, now: datetime | None = None) -> str:
        """Encode a signed JWT for this user, valid for expire_seconds from now.

        Args:
            user_id:  Numeric user ID stored in the DB.
            username: Stored as the JWT subject claim.
            now:      Issue time. Defaults to the current UTC time; tests pass
                      a past value to mint already-expired tokens.
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": username,
            "user_id": user_id,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> Identity:
        """Verify a JWT and return the Identity it asserts.

        Raises:
            TokenExpired: signature valid but exp is in the past.
            InvalidToken: bad signature, malformed token, or missing claims.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise InvalidToken() from exc

        username = payload.get("sub")
        user_id = payload.get("user_id")
        exp = payload.get("exp")
        if not isinstance(username, str) or not username:
            raise InvalidToken(detail="missing subject")
        # bool is an int subclass; a True user_id is not a real id
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise InvalidToken(detail="missing user_id")
        if not isinstance(exp, (int, float)):
            raise InvalidToken(detail="missing exp")

        return Identity(
            user_id=user_id,
            username=username,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, hasher: PasswordHasher, username: str, password: str) -> User:
    """Check a username/password pair and return the matching User.

    Always runs bcrypt whether or not the user exists:
    - Unknown username: bcrypt runs against the dummy hash (same cost)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Raises UserNotFound or IncorrectPassword. Both render as the same
    bad_credentials response; the distinction only reaches the server log.
    """
    user = store.get_by_username(username)
    if user is None:
        hasher.verify(password, hasher.dummy_hash)
        logger.info("Login failed: unknown username")
        raise UserNotFound()
    if not hasher.verify(password, user.hashed_password):
        logger.info("Login failed: incorrect password for user_id=%s", user.id)
        raise IncorrectPassword()
    return user

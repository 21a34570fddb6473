"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper (same as blog/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  UNIQUE(username) is enforced by the database. A collision surfaces as
  DuplicateUsername, never as a raw IntegrityError, and leaves no partial row.

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import User
from core.db import make_engine
from core.errors import DuplicateUsername

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///inkpost.db")
        user = store.create_user("alice", hasher.hash("secret"))
        user = store.get_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str, timeout: float = 10.0) -> None:
        self.engine: Engine = make_engine(db_url, timeout=timeout)
        _metadata.create_all(self.engine)

    def create_user(self, username: str, hashed_password: str) -> User:
        """Insert a new user and return it with its assigned ID.

        Raises DuplicateUsername if the username is taken.
        """
        created_at = _now_iso()
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=username,
                        hashed_password=hashed_password,
                        created_at=created_at,
                    )
                )
        except IntegrityError as exc:
            raise DuplicateUsername() from exc
        return User(
            id=result.inserted_primary_key[0],
            username=username,
            hashed_password=hashed_password,
            created_at=created_at,
        )

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_usernames(self, user_ids: set[int]) -> dict[int, str]:
        """Map each known user id to its username. Unknown ids are left out."""
        if not user_ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(select(_users.c.id, _users.c.username).where(_users.c.id.in_(user_ids))).fetchall()
        return {row.id: row.username for row in rows}

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )

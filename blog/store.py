"""
blog/store.py -- SQLAlchemy-backed persistence layer for posts.

Uses SQLAlchemy Core (not ORM) so the dataclass in blog/models.py remains the
authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. PostStore is the repository; _row_to_post
is the mapper. Route handlers never touch SQL directly.

The store does not check authorship. Callers run auth.ownership.is_owner()
before update() or delete(); by the time the store is called, the write is
permitted.

Usage:
    store = PostStore("sqlite:///inkpost.db")
    post = store.create(Post(title="T", summary="S", content="C", author_id=1))
    recent = store.list_recent(limit=20)
    store.update(post.id, title="New title")
    store.delete(post.id)
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from blog.models import Post
from core.db import make_engine

# Fields a caller may change through update(). author_id is deliberately absent.
_MUTABLE_FIELDS = frozenset({"title", "summary", "content", "cover"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("summary", Text, nullable=False),
    Column("content", Text, nullable=False),
    Column("cover", String(255)),
    Column("author_id", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_posts_created_at", "created_at"),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PostStore:
    """Repository for Post entities."""

    def __init__(self, db_url: str, timeout: float = 10.0) -> None:
        self.engine: Engine = make_engine(db_url, timeout=timeout)
        metadata.create_all(self.engine)

    def create(self, post: Post) -> Post:
        """Insert a post and return it with id and timestamps filled in."""
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _posts.insert().values(
                    title=post.title,
                    summary=post.summary,
                    content=post.content,
                    cover=post.cover,
                    author_id=post.author_id,
                    created_at=now,
                    updated_at=now,
                )
            )
        return Post(
            id=result.inserted_primary_key[0],
            title=post.title,
            summary=post.summary,
            content=post.content,
            cover=post.cover,
            author_id=post.author_id,
            created_at=now,
            updated_at=now,
        )

    def get(self, post_id: int) -> Optional[Post]:
        """Return the post with this id, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
        return _row_to_post(row) if row is not None else None

    def list_recent(self, limit: int = 20) -> list[Post]:
        """Return up to `limit` posts, newest first.

        Posts created in the same instant fall back to descending id, so the
        order is stable.
        """
        with self.engine.connect() as conn:
            rows = conn.execute(
                _posts.select().order_by(_posts.c.created_at.desc(), _posts.c.id.desc()).limit(limit)
            ).fetchall()
        return [_row_to_post(r) for r in rows]

    def update(self, post_id: int, **fields) -> Optional[Post]:
        """Replace the given fields and return the updated post.

        Accepted fields: title, summary, content, cover. Anything else raises
        ValueError -- author_id in particular can never be changed.

        Returns None if post_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update post fields: {sorted(unknown)!r}")
        with self.engine.begin() as conn:
            result = conn.execute(_posts.update().where(_posts.c.id == post_id).values(updated_at=_now_iso(), **fields))
            if result.rowcount == 0:
                return None
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
        return _row_to_post(row)

    def delete(self, post_id: int) -> Optional[Post]:
        """Delete a post and return the record as it was. None if not found."""
        with self.engine.begin() as conn:
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
            if row is None:
                return None
            conn.execute(_posts.delete().where(_posts.c.id == post_id))
        return _row_to_post(row)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_post(row) -> Post:
    return Post(
        id=row.id,
        title=row.title,
        summary=row.summary,
        content=row.content,
        cover=row.cover,
        author_id=row.author_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )

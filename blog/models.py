"""
blog/models.py -- Domain dataclasses for blog content.

Pure data containers with zero logic. Persistence lives in blog/store.py,
authorization in auth/ownership.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Post:
    """A blog post.

    author_id is set once at creation and never changes. cover is the public
    relative path of the uploaded image ("uploads/<name>") or None.

    id is None before the record is written to the database.
    """

    title: str
    summary: str
    content: str
    author_id: int
    cover: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, bumped on every update

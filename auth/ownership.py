"""
auth/ownership.py -- Author-only authorization rule for mutable resources.

Layer rule: no imports from api/ or blog/. The resource is duck-typed: any
object with an author_id attribute works.
"""

from __future__ import annotations

from typing import Any

from auth.models import Identity


def is_owner(identity: Identity | None, resource: Any) -> bool:
    """Return True only if resource.author_id identifies the same user as identity.

    The stored author id and the token's user_id are deserialized separately
    (DB row vs JWT claims), so they are compared by value as strings. Any
    missing piece counts as "not the owner"; this never raises.
    """
    if identity is None or resource is None:
        return False
    author_id = getattr(resource, "author_id", None)
    if author_id is None or identity.user_id is None:
        return False
    return str(author_id) == str(identity.user_id)

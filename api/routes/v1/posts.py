"""
api/routes/v1/posts.py -- Blog post routes for the Inkpost REST API.

Routes:
  POST   /posts             -- create a post with a cover image (auth)
  GET    /posts             -- newest posts, author populated (public)
  GET    /posts/{post_id}   -- one post (public)
  PUT    /posts/{post_id}   -- replace fields and/or cover (auth + author only)
  DELETE /posts/{post_id}   -- delete post and its cover (auth + author only)

Order of checks on every mutating route:
  1. get_current_identity  -- 401 missing_credential / 403 invalid_token, token_expired
  2. post lookup           -- 404 not_found
  3. is_owner()            -- 403 not_owner
  4. write cover, then write store
Nothing reaches the upload directory or the post store before all three
checks pass, so a rejected request leaves no trace.

File uploads:
  multipart/form-data. The cover is read up to MAX_COVER_BYTES + 1 bytes and
  rejected with 413 if larger.

Cover cleanup:
  A failed store write removes the cover it just saved. A store timeout (504)
  removes nothing: the write keeps running in its worker thread and may still
  commit, and a committed row must not point at a deleted file.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from api.concurrency import run_bounded
from api.models import PostResponse
from auth.dependencies import get_current_identity
from auth.models import Identity
from auth.ownership import is_owner
from auth.store import UserStore
from blog.covers import CoverStorage
from blog.models import Post
from blog.store import PostStore
from core.errors import CoverTooLarge, NoChanges, NotOwner, ResourceNotFound, StoreTimeout

logger = logging.getLogger("inkpost.posts")

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _read_cover(request: Request, file: UploadFile) -> bytes:
    covers: CoverStorage = request.app.state.covers
    raw = await file.read(covers.max_bytes + 1)
    if len(raw) > covers.max_bytes:
        raise CoverTooLarge(detail=f"limit is {covers.max_bytes} bytes")
    return raw


async def _to_responses(request: Request, posts: list[Post]) -> list[PostResponse]:
    """Populate author usernames for a batch of posts with one lookup."""
    user_store: UserStore = request.app.state.user_store
    names = await run_bounded(request, user_store.get_usernames, {p.author_id for p in posts})
    return [PostResponse.from_post(p, names.get(p.author_id)) for p in posts]


async def _load_owned_post(request: Request, post_id: int, identity: Identity) -> Post:
    """Return the post if it exists and identity is its author.

    Existence is checked first so a missing post is a 404, not an ownership
    failure against None.
    """
    post_store: PostStore = request.app.state.post_store
    post = await run_bounded(request, post_store.get, post_id)
    if post is None:
        raise ResourceNotFound()
    if not is_owner(identity, post):
        logger.warning("user_id=%s denied on post_id=%s (author_id=%s)", identity.user_id, post_id, post.author_id)
        raise NotOwner()
    return post


# ---------------------------------------------------------------------------
# POST /posts -- create
# ---------------------------------------------------------------------------


@router.post("/posts", response_model=PostResponse, status_code=201)
async def create_post(
    request: Request,
    title: str = Form(..., max_length=255),
    summary: str = Form(...),
    content: str = Form(...),
    file: UploadFile = File(...),
    identity: Identity = Depends(get_current_identity),
) -> PostResponse:
    """Create a post authored by the caller. The cover image is required."""
    covers: CoverStorage = request.app.state.covers
    post_store: PostStore = request.app.state.post_store

    data = await _read_cover(request, file)
    cover = await run_bounded(request, covers.save, file.filename, data)
    try:
        post = await run_bounded(
            request,
            post_store.create,
            Post(title=title, summary=summary, content=content, cover=cover, author_id=identity.user_id),
        )
    except StoreTimeout:
        # The insert may still commit; the cover has to stay for it
        logger.warning("user_id=%s create timed out, keeping cover %s", identity.user_id, cover)
        raise
    except Exception:
        await run_bounded(request, covers.remove, cover)
        raise
    logger.info("user_id=%s created post_id=%s", identity.user_id, post.id)
    return PostResponse.from_post(post, identity.username)


# ---------------------------------------------------------------------------
# GET /posts -- newest first
# ---------------------------------------------------------------------------


@router.get("/posts", response_model=list[PostResponse])
async def list_posts(request: Request) -> list[PostResponse]:
    """Return the most recent posts (at most POST_LIST_LIMIT), newest first."""
    post_store: PostStore = request.app.state.post_store
    posts = await run_bounded(request, post_store.list_recent, request.app.state.post_list_limit)
    return await _to_responses(request, posts)


# ---------------------------------------------------------------------------
# GET /posts/{post_id}
# ---------------------------------------------------------------------------


@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(request: Request, post_id: int) -> PostResponse:
    post_store: PostStore = request.app.state.post_store
    post = await run_bounded(request, post_store.get, post_id)
    if post is None:
        raise ResourceNotFound()
    return (await _to_responses(request, [post]))[0]


# ---------------------------------------------------------------------------
# PUT /posts/{post_id} -- author only
# ---------------------------------------------------------------------------


@router.put("/posts/{post_id}", response_model=PostResponse)
async def update_post(
    request: Request,
    post_id: int,
    title: Optional[str] = Form(None, max_length=255),
    summary: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    identity: Identity = Depends(get_current_identity),
) -> PostResponse:
    """Replace any of title, summary, content and cover. Omitted fields keep their value.

    The author never changes. A new cover replaces the old file on disk.
    """
    covers: CoverStorage = request.app.state.covers
    post_store: PostStore = request.app.state.post_store

    existing = await _load_owned_post(request, post_id, identity)

    updates: dict = {}
    if title is not None:
        updates["title"] = title
    if summary is not None:
        updates["summary"] = summary
    if content is not None:
        updates["content"] = content
    if file is not None and file.filename:
        data = await _read_cover(request, file)
        updates["cover"] = await run_bounded(request, covers.save, file.filename, data)

    if not updates:
        raise NoChanges()

    try:
        updated = await run_bounded(request, post_store.update, post_id, **updates)
    except StoreTimeout:
        logger.warning("user_id=%s update of post_id=%s timed out, keeping covers", identity.user_id, post_id)
        raise
    except Exception:
        await run_bounded(request, covers.remove, updates.get("cover"))
        raise
    if updated is None:
        # Deleted between the ownership check and the write
        await run_bounded(request, covers.remove, updates.get("cover"))
        raise ResourceNotFound()

    if "cover" in updates and existing.cover != updated.cover:
        await run_bounded(request, covers.remove, existing.cover)
    logger.info("user_id=%s updated post_id=%s fields=%s", identity.user_id, post_id, sorted(updates))
    return PostResponse.from_post(updated, identity.username)


# ---------------------------------------------------------------------------
# DELETE /posts/{post_id} -- author only
# ---------------------------------------------------------------------------


@router.delete("/posts/{post_id}", response_model=PostResponse)
async def delete_post(
    request: Request,
    post_id: int,
    identity: Identity = Depends(get_current_identity),
) -> PostResponse:
    """Delete the post and its cover file. Returns the deleted record."""
    covers: CoverStorage = request.app.state.covers
    post_store: PostStore = request.app.state.post_store

    await _load_owned_post(request, post_id, identity)
    deleted = await run_bounded(request, post_store.delete, post_id)
    if deleted is None:
        raise ResourceNotFound()
    await run_bounded(request, covers.remove, deleted.cover)
    logger.info("user_id=%s deleted post_id=%s", identity.user_id, post_id)
    return PostResponse.from_post(deleted, identity.username)

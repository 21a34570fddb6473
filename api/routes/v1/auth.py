"""
api/routes/v1/auth.py -- Registration, login and identity endpoints.

Routes:
  POST /api/v1/auth/register  -- create an account
  POST /api/v1/auth/login     -- password login; returns a bearer token
  GET  /api/v1/auth/me        -- verified token claims (requires auth)
  POST /api/v1/auth/logout    -- stateless; nothing to revoke

Security:
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_username() + verify().
  Wrong username and wrong password produce the same bad_credentials
  response, so the API does not reveal which usernames exist.
  Cache-Control: no-store on login responses (they carry a token).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.concurrency import run_bounded
from api.models import LoginRequest, LoginResponse, MeResponse, MessageResponse, RegisterRequest, UserResponse
from auth.dependencies import get_current_identity
from auth.models import Identity
from auth.store import UserStore
from auth.tokens import PasswordHasher, TokenService, authenticate_user

logger = logging.getLogger("inkpost.auth")

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public
# - POST /api/v1/auth/logout:   public -- tokens are stateless, the client discards its copy
# - GET  /api/v1/auth/me:       requires auth (get_current_identity)
router = APIRouter()


def _register(store: UserStore, hasher: PasswordHasher, username: str, password: str):
    return store.create_user(username, hasher.hash(password))


@router.post("/auth/register", response_model=UserResponse, status_code=201)
async def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create a user account.

    A taken username raises DuplicateUsername (409); no second record is
    written.
    """
    user = await run_bounded(
        request,
        _register,
        request.app.state.user_store,
        request.app.state.hasher,
        body.username,
        body.password,
    )
    logger.info("Registered user_id=%s", user.id)
    return UserResponse.from_user(user)


@router.post("/auth/login", response_model=LoginResponse)
async def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password and return a bearer token."""
    tokens: TokenService = request.app.state.tokens
    user = await run_bounded(
        request,
        authenticate_user,
        request.app.state.user_store,
        request.app.state.hasher,
        body.username,
        body.password,
    )
    token = tokens.issue(user.id, user.username)
    logger.info("Logged in user_id=%s", user.id)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            user_id=user.id,
            username=user.username,
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=tokens.expire_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=MeResponse)
async def me(identity: Identity = Depends(get_current_identity)) -> MeResponse:
    """Return the claims carried by the caller's token."""
    return MeResponse.from_identity(identity)


@router.post("/auth/logout", response_model=MessageResponse)
async def logout() -> MessageResponse:
    """Acknowledge logout. The server holds no session, so nothing is revoked."""
    return MessageResponse(message="Logged out.")

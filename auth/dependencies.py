"""
auth/dependencies.py -- FastAPI Depends() helper for authentication.

Only one credential is accepted: an "Authorization: Bearer <token>" header.
The decision itself is auth.gate.evaluate_authorization().

get_current_identity() raises the gate's error kind: MissingCredential (401)
when nothing was sent, InvalidToken / TokenExpired (403) when a token was sent
but did not verify. The API exception handler renders these.

Layer rule: no imports from blog/. auth/dependencies.py may import from
fastapi because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.gate import GateOutcome, evaluate_authorization
from auth.models import Identity

logger = logging.getLogger("inkpost.auth")


def get_current_identity(request: Request) -> Identity:
    """Require a valid bearer token.

    Use as a FastAPI dependency:
        @router.post("/posts")
        async def route(identity: Identity = Depends(get_current_identity)): ...
    """
    result = evaluate_authorization(request.headers.get("Authorization"), request.app.state.tokens)
    if result.outcome is GateOutcome.REJECTED:
        logger.warning("Rejected token on %s %s: %s", request.method, request.url.path, result.error.code)
    if result.identity is None:
        raise result.error
    return result.identity

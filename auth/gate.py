"""
auth/gate.py -- Turn a raw Authorization header into an auth decision.

evaluate_authorization() is a pure decision function. It reports one of three
outcomes and leaves the response policy to the caller:

  UNAUTHENTICATED -- no credential at all (missing/blank header, or a scheme
                     with no token after it)
  AUTHENTICATED   -- Bearer token verified; identity is set
  REJECTED        -- a credential was sent but failed verification (bad
                     signature, malformed, expired, or not a Bearer scheme)

UNAUTHENTICATED and REJECTED are kept apart because routes answer them with
different status codes (401 vs 403).

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from auth.models import Identity
from auth.tokens import TokenService
from core.errors import AuthError, InvalidToken, MissingCredential


class GateOutcome(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


@dataclass(frozen=True)
class GateResult:
    outcome: GateOutcome
    identity: Identity | None = None
    error: AuthError | None = None


def evaluate_authorization(header: str | None, tokens: TokenService) -> GateResult:
    """Decide what a request's Authorization header proves.

    Args:
        header: Raw header value, e.g. "Bearer eyJ...", or None if absent.
        tokens: The process-wide TokenService.
    """
    parts = (header or "").split()
    if len(parts) < 2:
        return GateResult(GateOutcome.UNAUTHENTICATED, error=MissingCredential())

    scheme, token = parts[0], parts[1]
    if scheme.lower() != "bearer" or len(parts) > 2:
        return GateResult(GateOutcome.REJECTED, error=InvalidToken(detail="expected 'Bearer <token>'"))

    try:
        identity = tokens.verify(token)
    except AuthError as exc:
        return GateResult(GateOutcome.REJECTED, error=exc)
    return GateResult(GateOutcome.AUTHENTICATED, identity=identity)

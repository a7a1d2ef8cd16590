"""
auth/dependencies.py -- Bearer-token session resolution for FastAPI routes.

Per request the session dependency walks a fixed sequence and stops at the
first failure:

  NoToken   -> Extracted  Authorization: Bearer <token> header is present
  Extracted -> Verified   TokenService.verify() accepts signature and expiry
  Verified  -> Attached   the token's user_id still resolves to a user

Every rejection is UNAUTHENTICATED for the client (401, one fixed message).
The Failure.reason ("missing_token", "token_expired", "token_invalid",
"unknown_user") is logged but never returned.

authenticate() is the pure step function -- header value and collaborators in,
AuthContext or Failure out. require_auth() is the FastAPI dependency wrapper;
it is the only place that raises, and it returns the AuthContext that handlers
receive as an explicit argument. No cookies, no API keys, no request.state.

Layer rule: no imports from api/ or tasks/. May import fastapi because this
module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from auth.models import AuthContext
from auth.store import UserStore
from auth.tokens import TokenService
from core.errors import ErrorKind, Failure, FailureError

logger = logging.getLogger("tasktracker.auth")


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' value, or None."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def authenticate(authorization: str | None, tokens: TokenService, store: UserStore) -> AuthContext | Failure:
    """Resolve an Authorization header value to the caller's identity."""
    token = extract_bearer(authorization)
    if token is None:
        return Failure(ErrorKind.UNAUTHENTICATED, reason="missing_token")

    claims = tokens.verify(token)
    if isinstance(claims, Failure):
        # Keep the expired/invalid distinction in the reason; the kind is uniform.
        return Failure(ErrorKind.UNAUTHENTICATED, reason=claims.kind.value)

    try:
        user = store.get_by_id(claims.user_id)
    except SQLAlchemyError:
        logger.exception("Session lookup failed on user store read")
        return Failure(ErrorKind.INTERNAL, reason="store_error")
    if user is None:
        return Failure(ErrorKind.UNAUTHENTICATED, reason="unknown_user")

    return AuthContext.for_user(user)


def require_auth(request: Request) -> AuthContext:
    """Require a valid bearer token. Raises FailureError (-> 401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/tasks")
        def route(ctx: AuthContext = Depends(require_auth)): ...
    """
    result = authenticate(
        request.headers.get("Authorization"),
        request.app.state.token_service,
        request.app.state.user_store,
    )
    if isinstance(result, Failure):
        logger.info(
            "Rejected %s %s (reason=%s)",
            request.method,
            request.url.path,
            result.reason,
        )
        raise FailureError(result)
    return result

"""
api/routes/v1/auth.py -- Registration, login and identity REST endpoints.

Routes:
  POST /api/auth/register   -- create account; returns user + token (201)
  POST /api/auth/login      -- password login; returns user + token
  GET  /api/auth/me         -- current user info (requires bearer token)

There is no logout route: tokens are stateless and logout is the client
discarding its token.

Security:
  [H2] POST /login and POST /register are rate-limited per client IP.
  [C1] AuthService.login() provides timing equalization -- use it, never inline
       a store lookup plus password check here.
  [M5] Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import AuthData, Envelope, LoginRequest, RegisterRequest, UserOut
from api.responses import success_response, unwrap
from auth.dependencies import require_auth
from auth.models import AuthContext, Session
from auth.service import AuthService
from core.config import get_settings
from core.errors import ErrorKind, Failure, FailureError

# Auth policy:
# - POST /api/auth/register: public -- account creation must be unauthenticated
# - POST /api/auth/login:    public -- login endpoint must be unauthenticated
# - GET  /api/auth/me:       requires auth (require_auth)
router = APIRouter()


def _session_response(session: Session, status_code: int) -> JSONResponse:
    resp = success_response(
        AuthData(user=UserOut.from_user(session.user), token=session.token),
        status_code=status_code,
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=Envelope[AuthData], status_code=201)
@limiter.limit(lambda: get_settings().register_rate_limit)  # [H2] must be BELOW @router
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and start a session.

    400 if name/email/password fail validation, 409 if the email is taken
    (compared case-insensitively).
    """
    service: AuthService = request.app.state.auth_service
    session = unwrap(service.register(body.name, body.email, body.password))
    return _session_response(session, 201)


@router.post("/auth/login", response_model=Envelope[AuthData])
@limiter.limit(lambda: get_settings().login_rate_limit)  # [H2] brute-force mitigation
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and issue a fresh token.

    Unknown email and wrong password return the same 401 body, byte for byte.
    """
    service: AuthService = request.app.state.auth_service
    session = unwrap(service.login(body.email, body.password))
    return _session_response(session, 200)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=Envelope[UserOut])
def me(request: Request, ctx: AuthContext = Depends(require_auth)) -> JSONResponse:
    """Return identity information for the currently authenticated user."""
    service: AuthService = request.app.state.auth_service
    user = service.current_user(ctx.user_id)
    if user is None:
        raise FailureError(Failure(ErrorKind.UNAUTHENTICATED, reason="unknown_user"))
    return success_response(UserOut.from_user(user))

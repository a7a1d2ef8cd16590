"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in tasks/models.py -- dataclasses own domain shape; stores, services and
routes do the work.

User deliberately has no password field. The hash lives only in the users
table and is read through UserStore.get_credentials(), so a User instance can
be serialized anywhere without risk of leaking it.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """A registered account. Immutable once created."""

    id: str
    name: str
    email: str  # stored lower-cased
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass(frozen=True)
class TokenClaims:
    """Verified payload of a session token. Times are epoch seconds (UTC)."""

    user_id: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller, resolved once per request by the session dependency.

    Passed explicitly into every handler and every TaskAccess call. Nothing
    downstream reads identity from the request body or from request.state.
    """

    user_id: str
    name: str
    email: str

    @classmethod
    def for_user(cls, user: User) -> AuthContext:
        return cls(user_id=user.id, name=user.name, email=user.email)


@dataclass(frozen=True)
class Session:
    """Result of a successful register or login: the sanitized user plus a fresh token."""

    user: User
    token: str

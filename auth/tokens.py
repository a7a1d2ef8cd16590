"""
auth/tokens.py -- Session token issue and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with AuthConfig.secret_key and
       carry user_id, iat and exp (integer epoch seconds). Nothing else --
       name, email and the password hash never enter a token.

  Verification order: jose verifies the signature before it hands back any
       claims, so a forged or tampered token is rejected as TOKEN_INVALID
       without its payload being trusted. Expiry is checked afterwards by
       TokenService itself (jose's own exp check is disabled) so the rule is
       exactly `exp > now` against the injected clock, with no leeway.

  Distinct failure kinds: TOKEN_EXPIRED means "log in again", TOKEN_INVALID
       means "this was never ours". The session dependency collapses both to
       UNAUTHENTICATED for the client but logs which one it was.

Layer rule: no imports from api/ or tasks/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from jose import JWTError, jwt

from auth.models import TokenClaims
from core.config import AuthConfig
from core.errors import ErrorKind, Failure

logger = logging.getLogger("tasktracker.auth")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies stateless bearer tokens.

    Usage:
        tokens = TokenService(settings.auth_config())
        token = tokens.issue(user.id)
        claims = tokens.verify(token)   # TokenClaims or Failure
    """

    def __init__(self, config: AuthConfig, clock: Clock = utc_now) -> None:
        self._config = config
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._config.token_expire_seconds

    def _now(self) -> int:
        return int(self._clock().timestamp())

    def issue(self, user_id: str) -> str:
        """Encode a signed JWT binding user_id for the configured TTL."""
        issued_at = self._now()
        payload = {
            "user_id": user_id,
            "iat": issued_at,
            "exp": issued_at + self._config.token_expire_seconds,
        }
        return jwt.encode(payload, self._config.secret_key, algorithm=self._config.algorithm)

    def verify(self, token: str) -> TokenClaims | Failure:
        """Return the verified claims, or a TOKEN_INVALID / TOKEN_EXPIRED failure."""
        try:
            payload = jwt.decode(
                token,
                self._config.secret_key,
                algorithms=[self._config.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            return Failure(ErrorKind.TOKEN_INVALID, reason="bad_signature_or_format")

        user_id = payload.get("user_id")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not isinstance(user_id, str) or not user_id:
            return Failure(ErrorKind.TOKEN_INVALID, reason="missing_user_id")
        if not _is_epoch(issued_at) or not _is_epoch(expires_at):
            return Failure(ErrorKind.TOKEN_INVALID, reason="missing_timestamps")

        if expires_at <= self._now():
            return Failure(ErrorKind.TOKEN_EXPIRED, reason="token_expired")

        return TokenClaims(user_id=user_id, issued_at=issued_at, expires_at=expires_at)


def _is_epoch(value: object) -> bool:
    # bool is an int subclass; a JSON true is not a timestamp.
    return isinstance(value, int) and not isinstance(value, bool)

"""
auth/service.py -- Registration and login orchestration.

AuthService owns the credential rules; routes only translate its results.

  register(): validate -> hash -> INSERT -> issue token. The INSERT is the
      only store call. A duplicate email surfaces as IntegrityError from the
      UNIQUE constraint and becomes DUPLICATE_EMAIL, so a failed registration
      never leaves a partial record behind.

  login(): one read (get_credentials) and always one bcrypt run. Unknown email
      and wrong password return the same Failure, and the unknown-email branch
      burns a dummy bcrypt check so response time does not reveal which one
      it was [C1].

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

import logging
from typing import Annotated

from pydantic import BaseModel, EmailStr, Field, StringConstraints, ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import Session, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import AuthConfig
from core.errors import ErrorKind, Failure

logger = logging.getLogger("tasktracker.auth")

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128

# Client-facing message per invalid field. Only the first invalid field is reported.
_FIELD_MESSAGES = {
    "name": "Name is required and must be at most 100 characters.",
    "email": "Please provide a valid email address.",
    "password": f"Password must be between {MIN_PASSWORD_LENGTH} and {MAX_PASSWORD_LENGTH} characters.",
}


class _Registration(BaseModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    email: EmailStr
    # Whitespace in passwords is significant and is never stripped.
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup: stripped and lower-cased."""
    return email.strip().lower()


class AuthService:
    """Registers users and logs them in.

    Usage:
        service = AuthService(user_store, settings.auth_config())
        result = service.register("Ann", "ann@x.com", "secret1")
        if isinstance(result, Failure): ...
    """

    def __init__(
        self,
        store: UserStore,
        config: AuthConfig,
        tokens: TokenService | None = None,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self._store = store
        self.tokens = tokens or TokenService(config)
        self._hasher = hasher or PasswordHasher(config.bcrypt_rounds)

    def register(self, name: str, email: str, password: str) -> Session | Failure:
        if isinstance(email, str):
            email = normalize_email(email)
        try:
            data = _Registration(name=name, email=email, password=password)
        except ValidationError as exc:
            return _validation_failure(exc)

        hashed = self._hasher.hash(data.password)
        try:
            user = self._store.create_user(data.name, normalize_email(data.email), hashed)
        except IntegrityError:
            logger.info("Registration rejected: email already registered")
            return Failure(ErrorKind.DUPLICATE_EMAIL, reason="duplicate_email")
        except SQLAlchemyError:
            logger.exception("Registration failed on user store write")
            return Failure(ErrorKind.INTERNAL, reason="store_error")

        logger.info("User registered (user_id=%s)", user.id)
        return Session(user=user, token=self.tokens.issue(user.id))

    def login(self, email: str, password: str) -> Session | Failure:
        try:
            found = self._store.get_credentials(normalize_email(email))
        except SQLAlchemyError:
            logger.exception("Login failed on user store read")
            return Failure(ErrorKind.INTERNAL, reason="store_error")

        if found is None:
            # Equalize timing -- do NOT return before running bcrypt [C1]
            self._hasher.burn(password)
            logger.info("Login failed (reason=unknown_email)")
            return Failure(ErrorKind.INVALID_CREDENTIALS, reason="unknown_email")

        user, hashed = found
        if not self._hasher.verify(password, hashed):
            logger.info("Login failed (reason=bad_password, user_id=%s)", user.id)
            return Failure(ErrorKind.INVALID_CREDENTIALS, reason="bad_password")

        return Session(user=user, token=self.tokens.issue(user.id))

    def current_user(self, user_id: str) -> User | None:
        return self._store.get_by_id(user_id)


def _validation_failure(exc: ValidationError) -> Failure:
    errors = exc.errors()
    field = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else ""
    message = _FIELD_MESSAGES.get(field, "Invalid input.")
    return Failure(ErrorKind.VALIDATION, reason=field or "input", detail=message)

"""
core/errors.py -- Error taxonomy shared by the auth and task layers.

Components do not raise across their boundaries. A failed operation returns a
Failure value tagged with an ErrorKind; callers branch on isinstance() and
either handle it or pass it up unchanged. The HTTP boundary (api/responses.py) is
the only place that turns a kind into a status code and a client message.

reason is for logs only (e.g. "token_expired", "unknown_user") and is never
sent to the client. detail is a client-safe message and is only honoured for
VALIDATION failures, where telling the user what to fix is the whole point.

Layer rule: core/ is the kernel. No imports from api/, auth/, or tasks/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    UNAUTHENTICATED = "unauthenticated"
    # Token kinds are produced by TokenService.verify() and collapsed into
    # UNAUTHENTICATED by the session dependency.
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    NOT_FOUND = "not_found"
    INTERNAL = "internal_error"


@dataclass(frozen=True)
class Failure:
    """A tagged, immutable error result."""

    kind: ErrorKind
    reason: str = ""
    detail: str | None = None


class FailureError(Exception):
    """Carries a Failure out of a FastAPI dependency or route.

    Dependencies cannot return a Failure to short-circuit a request, so they
    raise this instead. api/main.py registers the handler that turns it
    into the response envelope; nothing below the HTTP layer raises it.
    """

    def __init__(self, failure: Failure) -> None:
        super().__init__(failure.kind.value)
        self.failure = failure

"""
api/responses.py -- Response envelope builders and the Failure -> HTTP translator.

Every response body is {"success": bool, "data"?: ..., "message"?: str}.
success_response() and error_response() are the only places that build it.

Every error the API returns passes through failure_response(). It is the only
code in the project that knows which status code and which client message
belong to which ErrorKind.

Message policy:
  - VALIDATION failures may carry a client-safe detail (which field to fix).
  - Every other kind gets the fixed message from MESSAGE_BY_KIND. Failure.reason
    is never sent; it exists for logs. This is what makes "unknown email" and
    "wrong password" byte-identical, and a foreign task indistinguishable
    from a missing one.
"""

from __future__ import annotations

from typing import Any, Optional, TypeVar

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from core.errors import ErrorKind, Failure, FailureError

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.DUPLICATE_EMAIL: 409,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.TOKEN_EXPIRED: 401,
    ErrorKind.TOKEN_INVALID: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INTERNAL: 500,
}

MESSAGE_BY_KIND: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: "Invalid input.",
    ErrorKind.DUPLICATE_EMAIL: "User already exists with this email",
    ErrorKind.INVALID_CREDENTIALS: "Invalid credentials",
    ErrorKind.UNAUTHENTICATED: "Not authorized, please log in",
    ErrorKind.TOKEN_EXPIRED: "Not authorized, please log in",
    ErrorKind.TOKEN_INVALID: "Not authorized, please log in",
    ErrorKind.NOT_FOUND: "Task not found",
    ErrorKind.INTERNAL: "Internal server error",
}

T = TypeVar("T")


def success_response(data: Any = None, status_code: int = 200, message: Optional[str] = None) -> JSONResponse:
    content: dict = {"success": True}
    if data is not None:
        content["data"] = jsonable_encoder(data)
    if message:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build an envelope error response. Error bodies are never cached."""
    resp = JSONResponse(status_code=status_code, content={"success": False, "message": message})
    resp.headers["Cache-Control"] = "no-store"
    return resp


def failure_response(failure: Failure) -> JSONResponse:
    message = MESSAGE_BY_KIND[failure.kind]
    if failure.kind is ErrorKind.VALIDATION and failure.detail:
        message = failure.detail
    return error_response(STATUS_BY_KIND[failure.kind], message)


def unwrap(result: T | Failure) -> T:
    """Return a successful result or raise FailureError for the exception handler."""
    if isinstance(result, Failure):
        raise FailureError(result)
    return result

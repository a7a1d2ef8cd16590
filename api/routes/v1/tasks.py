"""
api/routes/v1/tasks.py -- Task CRUD routes for the TaskTracker REST API.

Routes:
  GET    /api/tasks          -- list the caller's tasks (?status=, ?priority=)
  POST   /api/tasks          -- create a task owned by the caller (201)
  GET    /api/tasks/{id}     -- one task
  PUT    /api/tasks/{id}     -- partial update of title/description/status/priority/due_date
  DELETE /api/tasks/{id}     -- delete

Every handler receives the caller as an explicit AuthContext from
require_auth and hands it to TaskAccess, which does the ownership check.
Handlers never look at owner fields in the body; bodies are passed to
TaskAccess as plain dicts and it discards owner/id keys.

A task owned by someone else is reported as 404, exactly like a missing one.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import Envelope, TaskOut
from api.responses import success_response, unwrap
from auth.dependencies import require_auth
from auth.models import AuthContext
from core.errors import ErrorKind, Failure, FailureError
from tasks.access import TaskAccess
from tasks.models import TaskPriority, TaskStatus

# All task routes require authentication. The dependency is declared on each
# handler (not only on the router) because the handler needs the AuthContext value.
router = APIRouter()


def _access(request: Request) -> TaskAccess:
    return request.app.state.task_access


async def _json_object(request: Request, _: AuthContext = Depends(require_auth)) -> dict[str, Any]:
    """Read the JSON object body, only after the caller is authenticated.

    A declared Body parameter would be decoded before any dependency runs, so
    an anonymous request with a broken body would get 400 instead of 401.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise FailureError(Failure(ErrorKind.VALIDATION, reason="body", detail="Invalid request body or parameters."))
    return body


@router.get("/tasks", response_model=Envelope[list[TaskOut]])
def list_tasks(
    request: Request,
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    ctx: AuthContext = Depends(require_auth),
) -> JSONResponse:
    """Return the caller's tasks, newest first."""
    tasks = unwrap(
        _access(request).list(
            ctx,
            status=status.value if status else None,
            priority=priority.value if priority else None,
        )
    )
    return success_response([TaskOut.from_task(t) for t in tasks])


@router.post("/tasks", response_model=Envelope[TaskOut], status_code=201)
def create_task(
    request: Request,
    ctx: AuthContext = Depends(require_auth),
    body: dict[str, Any] = Depends(_json_object),
) -> JSONResponse:
    """Create a task. owner is always the caller; status/priority default to pending/medium."""
    task = unwrap(_access(request).create(ctx, body))
    return success_response(TaskOut.from_task(task), status_code=201)


@router.get("/tasks/{task_id}", response_model=Envelope[TaskOut])
def get_task(request: Request, task_id: str, ctx: AuthContext = Depends(require_auth)) -> JSONResponse:
    task = unwrap(_access(request).get(ctx, task_id))
    return success_response(TaskOut.from_task(task))


@router.put("/tasks/{task_id}", response_model=Envelope[TaskOut])
def update_task(
    request: Request,
    task_id: str,
    ctx: AuthContext = Depends(require_auth),
    body: dict[str, Any] = Depends(_json_object),
) -> JSONResponse:
    """Apply the fields present in the body. owner and id in the body are ignored."""
    task = unwrap(_access(request).update(ctx, task_id, body))
    return success_response(TaskOut.from_task(task))


@router.delete("/tasks/{task_id}", response_model=Envelope)
def delete_task(request: Request, task_id: str, ctx: AuthContext = Depends(require_auth)) -> JSONResponse:
    unwrap(_access(request).delete(ctx, task_id))
    return success_response(message="Task deleted")

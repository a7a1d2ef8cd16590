"""
tasks/access.py -- Owner-scoped gate in front of TaskStore.

Every task operation the API exposes goes through TaskAccess, and every
TaskAccess method takes the caller's AuthContext as its first argument. The
rules it enforces:

  - list() only ever queries the caller's own rows (owner filter in SQL), so
    neither the items nor their count can reveal another user's tasks.
  - get/update/delete resolve the task first and compare task.owner_id with
    ctx.user_id. A foreign task and a missing task produce the same
    NOT_FOUND failure -- 404, never 403 -- so task ids cannot be probed.
  - create() sets owner_id from ctx and nothing else. owner/owner_id/id keys
    in the input are dropped, as they are on update().
  - update/delete run the ownership read and the write in one transaction.

Input validation (title, enums, lengths, due date) happens here with pydantic
so it holds for any caller, not just the HTTP routes.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError, field_validator
from sqlalchemy.exc import SQLAlchemyError

from auth.models import AuthContext
from core.errors import ErrorKind, Failure
from tasks.models import Task, TaskPriority, TaskStatus
from tasks.store import TaskStore

logger = logging.getLogger("tasktracker.tasks")

_Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
_Description = Annotated[str, StringConstraints(max_length=2000)]

_FIELD_MESSAGES = {
    "title": "Title is required and must be at most 200 characters.",
    "description": "Description must be at most 2000 characters.",
    "status": "Status must be one of: pending, in-progress, completed.",
    "priority": "Priority must be one of: low, medium, high.",
    "due_date": "Due date must be an ISO 8601 date or datetime.",
}

# Wire names accepted alongside the column names. Validation errors are
# reported under the column name either way.
_ALIASES = {"dueDate": "due_date"}


class _NewTask(BaseModel):
    # extra="ignore" is what silently discards client-supplied owner/id keys.
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: _Title
    description: Optional[_Description] = None
    status: TaskStatus = TaskStatus.pending
    priority: TaskPriority = TaskPriority.medium
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")


class _TaskChanges(BaseModel):
    """Partial update. Only keys the client actually sent are applied."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: Optional[_Title] = None
    description: Optional[_Description] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")

    @field_validator("title", "status", "priority", mode="before")
    @classmethod
    def not_null(cls, value: Any) -> Any:
        # description and due_date may be cleared with null; these may not.
        if value is None:
            raise ValueError("field cannot be null")
        return value


class TaskAccess:
    """Task operations bound to the authenticated caller.

    Usage:
        access = TaskAccess(task_store)
        task = access.create(ctx, {"title": "Buy milk"})
        result = access.get(other_ctx, task.id)   # Failure(NOT_FOUND)
    """

    def __init__(self, store: TaskStore) -> None:
        self._store = store

    def list(
        self,
        ctx: AuthContext,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> list[Task] | Failure:
        try:
            status = TaskStatus(status).value if status is not None else None
        except ValueError:
            return Failure(ErrorKind.VALIDATION, reason="status", detail=_FIELD_MESSAGES["status"])
        try:
            priority = TaskPriority(priority).value if priority is not None else None
        except ValueError:
            return Failure(ErrorKind.VALIDATION, reason="priority", detail=_FIELD_MESSAGES["priority"])

        try:
            return self._store.list_tasks(ctx.user_id, status=status, priority=priority)
        except SQLAlchemyError:
            logger.exception("Task list failed (user_id=%s)", ctx.user_id)
            return Failure(ErrorKind.INTERNAL, reason="store_error")

    def get(self, ctx: AuthContext, task_id: str) -> Task | Failure:
        try:
            task = self._store.get_task(task_id)
        except SQLAlchemyError:
            logger.exception("Task read failed (task_id=%s)", task_id)
            return Failure(ErrorKind.INTERNAL, reason="store_error")
        return _owned(ctx, task_id, task)

    def create(self, ctx: AuthContext, fields: dict) -> Task | Failure:
        try:
            data = _NewTask.model_validate(fields)
        except ValidationError as exc:
            return _validation_failure(exc)

        try:
            task = self._store.create_task(
                owner_id=ctx.user_id,
                title=data.title,
                description=data.description,
                status=data.status.value,
                priority=data.priority.value,
                due_date=_iso(data.due_date),
            )
        except SQLAlchemyError:
            logger.exception("Task create failed (user_id=%s)", ctx.user_id)
            return Failure(ErrorKind.INTERNAL, reason="store_error")
        logger.info("Task created (task_id=%s, user_id=%s)", task.id, ctx.user_id)
        return task

    def update(self, ctx: AuthContext, task_id: str, fields: dict) -> Task | Failure:
        try:
            data = _TaskChanges.model_validate(fields)
        except ValidationError as exc:
            return _validation_failure(exc)
        changes = _changes_to_columns(data)

        try:
            with self._store.begin() as conn:
                checked = _owned(ctx, task_id, self._store.get_task(task_id, conn=conn))
                if isinstance(checked, Failure):
                    return checked
                updated = self._store.update_task(task_id, ctx.user_id, changes, conn=conn)
        except SQLAlchemyError:
            logger.exception("Task update failed (task_id=%s)", task_id)
            return Failure(ErrorKind.INTERNAL, reason="store_error")

        if updated is None:
            # Deleted by the owner's other session between check and write.
            return Failure(ErrorKind.NOT_FOUND, reason="missing")
        return updated

    def delete(self, ctx: AuthContext, task_id: str) -> None | Failure:
        try:
            with self._store.begin() as conn:
                checked = _owned(ctx, task_id, self._store.get_task(task_id, conn=conn))
                if isinstance(checked, Failure):
                    return checked
                deleted = self._store.delete_task(task_id, ctx.user_id, conn=conn)
        except SQLAlchemyError:
            logger.exception("Task delete failed (task_id=%s)", task_id)
            return Failure(ErrorKind.INTERNAL, reason="store_error")

        if not deleted:
            return Failure(ErrorKind.NOT_FOUND, reason="missing")
        logger.info("Task deleted (task_id=%s, user_id=%s)", task_id, ctx.user_id)
        return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _owned(ctx: AuthContext, task_id: str, task: Optional[Task]) -> Task | Failure:
    """Return the task if the caller owns it, else the NOT_FOUND failure."""
    if task is None:
        return Failure(ErrorKind.NOT_FOUND, reason="missing")
    if task.owner_id != ctx.user_id:
        logger.info("Task %s requested by non-owner (user_id=%s)", task_id, ctx.user_id)
        return Failure(ErrorKind.NOT_FOUND, reason="foreign")
    return task


def _changes_to_columns(data: _TaskChanges) -> dict:
    changes: dict = {}
    for name in data.model_fields_set:
        value = getattr(data, name)
        if name in ("status", "priority"):
            value = value.value
        elif name == "due_date":
            value = _iso(value)
        changes[name] = value
    return changes


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _validation_failure(exc: ValidationError) -> Failure:
    errors = exc.errors()
    field = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else ""
    field = _ALIASES.get(field, field)
    return Failure(ErrorKind.VALIDATION, reason=field or "input", detail=_FIELD_MESSAGES.get(field, "Invalid input."))

"""
tasks/models.py -- Domain dataclass and value enums for tasks.

Pure data containers with zero logic. Ownership rules live in tasks/access.py,
SQL lives in tasks/store.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


@dataclass(frozen=True)
class Task:
    """A single to-do item belonging to exactly one user.

    owner_id is written once by TaskStore.create_task() from the caller's
    AuthContext and has no update path anywhere in the codebase.
    """

    id: str
    owner_id: str
    title: str
    status: str = TaskStatus.pending.value
    priority: str = TaskPriority.medium.value
    description: Optional[str] = None
    due_date: Optional[str] = None  # ISO 8601
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, restamped on every update

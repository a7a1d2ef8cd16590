"""
tasks/store.py -- SQLAlchemy Core persistence layer for tasks.

Uses SQLAlchemy Core (not ORM) so the Task dataclass in tasks/models.py
remains the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. TaskStore is the repository; _row_to_task
is the mapper. The access layer never touches SQL directly.

Transactions: every method accepts an optional conn. When TaskAccess needs a
check-then-act sequence (read the task, compare owner, then update/delete) it
opens one transaction with begin() and passes that connection to both calls,
so the write targets the same row state the ownership check saw. Called
without conn, each method runs in its own short transaction.

Ownership: mutating statements are also scoped by owner_id in their WHERE
clause. The access layer has already checked ownership, so this is never
expected to match zero rows for a foreign task -- but if it does, nothing is
written.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TaskStore("sqlite:///tasktracker.db")
    task = store.create_task(owner_id, "Buy milk")
    with store.begin() as conn:
        current = store.get_task(task.id, conn=conn)
        store.update_task(task.id, owner_id, {"status": "completed"}, conn=conn)
    store.close()
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Index, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Connection, Engine

from tasks.models import Task, TaskPriority, TaskStatus

# Columns a caller may change through update_task(). id and owner_id are absent
# on purpose -- there is no code path that rewrites them.
UPDATABLE_FIELDS = frozenset({"title", "description", "status", "priority", "due_date"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_tasks = Table(
    "tasks",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("owner_id", String(32), nullable=False),
    Column("title", String(200), nullable=False),
    Column("description", Text),
    Column("status", String(20), nullable=False, server_default=TaskStatus.pending.value),
    Column("priority", String(10), nullable=False, server_default=TaskPriority.medium.value),
    Column("due_date", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_tasks_owner_created", "owner_id", "created_at"),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so list reads do not block behind writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TaskStore:
    """Repository for Task entities. Owner filtering is the caller's job except in list_tasks()."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    @contextmanager
    def begin(self) -> Iterator[Connection]:
        """Open one transaction; commits on clean exit, rolls back on exception."""
        with self.engine.begin() as conn:
            yield conn

    @contextmanager
    def _conn(self, conn: Optional[Connection]) -> Iterator[Connection]:
        if conn is not None:
            yield conn
        else:
            with self.engine.begin() as own:
                yield own

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_task(self, task_id: str, conn: Optional[Connection] = None) -> Optional[Task]:
        """Look up a task by id regardless of owner. Returns None if not found."""
        with self._conn(conn) as c:
            row = c.execute(_tasks.select().where(_tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def list_tasks(
        self,
        owner_id: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> list[Task]:
        """Return one owner's tasks, newest first, optionally filtered."""
        query = _tasks.select().where(_tasks.c.owner_id == owner_id)
        if status is not None:
            query = query.where(_tasks.c.status == status)
        if priority is not None:
            query = query.where(_tasks.c.priority == priority)
        query = query.order_by(_tasks.c.created_at.desc(), _tasks.c.id)
        with self.engine.connect() as c:
            rows = c.execute(query).fetchall()
        return [_row_to_task(r) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_task(
        self,
        owner_id: str,
        title: str,
        description: Optional[str] = None,
        status: str = TaskStatus.pending.value,
        priority: str = TaskPriority.medium.value,
        due_date: Optional[str] = None,
        conn: Optional[Connection] = None,
    ) -> Task:
        """Insert a new task and return it with its assigned id and timestamps."""
        now = _now_iso()
        task = Task(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            title=title,
            description=description,
            status=status,
            priority=priority,
            due_date=due_date,
            created_at=now,
            updated_at=now,
        )
        with self._conn(conn) as c:
            c.execute(
                _tasks.insert().values(
                    id=task.id,
                    owner_id=task.owner_id,
                    title=task.title,
                    description=task.description,
                    status=task.status,
                    priority=task.priority,
                    due_date=task.due_date,
                    created_at=task.created_at,
                    updated_at=task.updated_at,
                )
            )
        return task

    def update_task(
        self,
        task_id: str,
        owner_id: str,
        changes: dict,
        conn: Optional[Connection] = None,
    ) -> Optional[Task]:
        """Apply changes to an owned task and return the updated record.

        Keys outside UPDATABLE_FIELDS are dropped. Returns None if no row
        matched (task gone, or owned by someone else).
        """
        values = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        values["updated_at"] = _now_iso()
        with self._conn(conn) as c:
            result = c.execute(
                _tasks.update().where((_tasks.c.id == task_id) & (_tasks.c.owner_id == owner_id)).values(**values)
            )
            if result.rowcount == 0:
                return None
            row = c.execute(_tasks.select().where(_tasks.c.id == task_id)).fetchone()
        return _row_to_task(row)

    def delete_task(self, task_id: str, owner_id: str, conn: Optional[Connection] = None) -> bool:
        """Delete an owned task. Returns True if deleted, False if not found or wrong owner."""
        with self._conn(conn) as c:
            result = c.execute(_tasks.delete().where((_tasks.c.id == task_id) & (_tasks.c.owner_id == owner_id)))
        return result.rowcount > 0

    def ping(self) -> bool:
        with self.engine.connect() as c:
            c.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        description=row.description,
        status=row.status,
        priority=row.priority,
        due_date=row.due_date,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )

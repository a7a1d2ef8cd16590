"""
API request and response models for the TaskTracker REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
tasks/models.py, which own the internal domain representation. Route handlers
map between the two with the from_* factory methods below.

Request models check shape only (required keys, string types, size caps).
Content rules -- email format, password length, task enums -- belong to
AuthService and TaskAccess so they hold for every caller.

Separation of concerns: auth/ and tasks/ models = domain truth; api/ models = API contract.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import User
from tasks.models import Task

T = TypeVar("T")

# Output models are built from snake_case field names and serialized with
# camelCase keys (created_at -> createdAt). jsonable_encoder dumps by alias.
_CAMEL_OUT = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class Envelope(BaseModel, Generic[T]):
    """Every response body: {success, data?, message?}.

    Used as response_model for OpenAPI documentation. The bodies themselves
    are built by api.responses so error and success paths share one shape.
    """

    success: bool
    data: Optional[T] = None
    message: Optional[str] = None


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    name: str = Field(max_length=255)
    email: str = Field(max_length=255)
    # Capped well above AuthService's limit so the service reports the friendly message.
    password: str = Field(max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    email: str = Field(max_length=255)
    password: str = Field(max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    """Public view of a user. There is no password field to leak."""

    model_config = _CAMEL_OUT

    id: str
    name: str
    email: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(id=user.id, name=user.name, email=user.email, created_at=user.created_at)


class AuthData(BaseModel):
    """data payload of a successful register or login."""

    model_config = ConfigDict(frozen=True)

    user: UserOut
    token: str


class TaskOut(BaseModel):
    """Public view of a task. owner is the owning user's id."""

    model_config = _CAMEL_OUT

    id: str
    owner: str
    title: str
    description: Optional[str]
    status: str
    priority: str
    due_date: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskOut":
        """Factory Method -- the mapping lives here, next to the output model."""
        return cls(
            id=task.id,
            owner=task.owner_id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class HealthData(BaseModel):
    """data payload of GET /api/health."""

    model_config = ConfigDict(frozen=True)

    # "healthy", or "degraded" when a component reports an error.
    status: str
    version: str
    components: dict[str, str]

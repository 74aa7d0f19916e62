"""Task request/response schemas.

Responses use camelCase keys (id, title, description, status, ownerId,
createdAt, updatedAt). Request bodies reuse the repository's field rules so
the API and the repository reject exactly the same values.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from taskboard.core.errors import ValidationError
from taskboard.core.responses import PaginationMeta
from taskboard.models.task import TaskStatus
from taskboard.repositories.task_repository import clean_status, clean_text_field


def _text_rule(field: str, value: Any) -> str:
    try:
        return clean_text_field(field, value)
    except ValidationError as exc:
        raise PydanticCustomError("task_field", exc.message) from exc


def _status_rule(value: Any) -> TaskStatus:
    try:
        return TaskStatus(clean_status(value))
    except ValidationError as exc:
        raise PydanticCustomError("task_status", exc.message) from exc


class TaskCreateRequest(BaseModel):
    """Request body for POST /tasks."""

    model_config = ConfigDict(extra="forbid")

    title: str
    description: str
    status: TaskStatus = TaskStatus.PENDING

    @field_validator("title", "description", mode="before")
    @classmethod
    def _check_text(cls, value: Any, info: ValidationInfo) -> str:
        return _text_rule(info.field_name, value)

    @field_validator("status", mode="before")
    @classmethod
    def _check_status(cls, value: Any) -> TaskStatus:
        return _status_rule(value)


class TaskUpdateRequest(BaseModel):
    """Request body for PUT /tasks/{id}.

    All fields optional; only fields present in the body are updated.
    An explicit null is validated like any other value and rejected.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _check_text(cls, value: Any, info: ValidationInfo) -> str:
        return _text_rule(info.field_name, value)

    @field_validator("status", mode="before")
    @classmethod
    def _check_status(cls, value: Any) -> TaskStatus:
        return _status_rule(value)

    def changes(self) -> dict[str, str]:
        """Fields explicitly present in the request, as plain strings."""
        return {
            field: value.value if isinstance(value, TaskStatus) else value
            for field, value in self.model_dump(exclude_unset=True).items()
        }


class TaskRead(BaseModel):
    """A task as returned by the API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: uuid.UUID
    title: str
    description: str
    status: TaskStatus
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class TaskEnvelope(BaseModel):
    """Body for single-task responses."""

    message: str | None = None
    task: TaskRead


class TaskListResponse(BaseModel):
    """Body for GET /tasks."""

    tasks: list[TaskRead]
    pagination: PaginationMeta

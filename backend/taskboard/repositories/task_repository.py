"""Repository for owner-scoped Task operations.

Every query is constrained by owner_id. A task owned by someone else is
indistinguishable from one that does not exist: both come back as None
(or False for delete), and callers turn that into a 404.
"""

import uuid
from collections.abc import Sequence
from datetime import timedelta

from sqlalchemy import ColumnElement, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.errors import ValidationError
from taskboard.core.filtering import TaskFilters, escape_like
from taskboard.models.base import utcnow
from taskboard.models.task import (
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Task,
    TaskStatus,
)

# Fields that may be updated via TaskRepository.update().
# Never add 'id', 'owner_id' or the timestamps: they are immutable or
# managed here.
_UPDATABLE_FIELDS: frozenset[str] = frozenset({"title", "description", "status"})

_FIELD_LIMITS = {
    "title": TITLE_MAX_LENGTH,
    "description": DESCRIPTION_MAX_LENGTH,
}

_ONE_TICK = timedelta(microseconds=1)


def clean_text_field(field: str, value: object) -> str:
    """Trim a title/description and enforce presence and length.

    Args:
        field: "title" or "description".
        value: Raw value from the caller.

    Returns:
        The trimmed string.

    Raises:
        ValidationError: If the value is missing, blank, not a string or too long.
    """
    label = field.capitalize()
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{label} is required", details=[{"field": field, "reason": "required"}]
        )
    cleaned = value.strip()
    max_length = _FIELD_LIMITS[field]
    if len(cleaned) > max_length:
        raise ValidationError(
            f"{label} cannot exceed {max_length} characters",
            details=[{"field": field, "reason": "too_long", "max": max_length}],
        )
    return cleaned


def clean_status(value: object) -> str:
    """Validate a task status value.

    Raises:
        ValidationError: If the value is not a known status.
    """
    try:
        return TaskStatus(value).value
    except ValueError as exc:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(
            f"Status must be one of: {allowed}",
            details=[{"field": "status", "reason": "invalid"}],
        ) from exc


def _owner_conditions(
    owner_id: uuid.UUID, filters: TaskFilters
) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = [Task.owner_id == owner_id]
    if filters.status is not None:
        conditions.append(Task.status == filters.status.value)
    if filters.search:
        pattern = f"%{escape_like(filters.search)}%"
        conditions.append(
            or_(
                Task.title.ilike(pattern, escape="\\"),
                Task.description.ilike(pattern, escape="\\"),
            )
        )
    return conditions


class TaskRepository:
    """Stateless repository for Task table operations.

    All methods are static. Pass an AsyncSession for every call so the
    caller controls transaction boundaries.
    """

    @staticmethod
    async def list(
        db: AsyncSession,
        owner_id: uuid.UUID,
        filters: TaskFilters,
        *,
        offset: int,
        limit: int,
    ) -> tuple[Sequence[Task], int]:
        """List one page of an owner's tasks, newest first.

        Ordering is created_at DESC with id DESC as a tie-breaker so pages
        never overlap or skip rows.

        Args:
            db: Async database session.
            owner_id: Owner whose tasks to list.
            filters: Status and search filters.
            offset: Rows to skip ((page - 1) * limit).
            limit: Maximum rows to return.

        Returns:
            Tuple of (page of tasks, total matching count before pagination).
        """
        conditions = _owner_conditions(owner_id, filters)

        total = await db.scalar(
            select(func.count()).select_from(Task).where(*conditions)
        )

        result = await db.execute(
            select(Task)
            .where(*conditions)
            .order_by(Task.created_at.desc(), Task.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return result.scalars().all(), total or 0

    @staticmethod
    async def get_owned(
        db: AsyncSession, owner_id: uuid.UUID, task_id: uuid.UUID
    ) -> Task | None:
        """Fetch a task by id, only if it belongs to owner_id.

        Args:
            db: Async database session.
            owner_id: Requesting owner.
            task_id: Task primary key.

        Returns:
            Task if found and owned, None otherwise.
        """
        result = await db.execute(
            select(Task).where(Task.id == task_id, Task.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        owner_id: uuid.UUID,
        *,
        title: str,
        description: str,
        status: str = TaskStatus.PENDING.value,
    ) -> Task:
        """Create a task.

        Fields are validated before anything is added to the session, so a
        rejected create leaves no partial state.

        Args:
            db: Async database session.
            owner_id: Owner of the new task.
            title: Task title (trimmed, 1-100 chars).
            description: Task description (trimmed, 1-500 chars).
            status: Initial status, "pending" by default.

        Returns:
            Created Task with id and timestamps populated.

        Raises:
            ValidationError: If any field is invalid.
        """
        clean_title = clean_text_field("title", title)
        clean_description = clean_text_field("description", description)
        clean_state = clean_status(status)

        now = utcnow()
        task = Task(
            owner_id=owner_id,
            title=clean_title,
            description=clean_description,
            status=clean_state,
            created_at=now,
            updated_at=now,
        )
        db.add(task)
        await db.flush()
        return task

    @staticmethod
    async def update(
        db: AsyncSession,
        owner_id: uuid.UUID,
        task_id: uuid.UUID,
        **fields: object,
    ) -> Task | None:
        """Apply a partial update to an owned task.

        Only the fields passed are changed. updated_at always moves forward,
        even if the clock has not advanced since the last write.

        Args:
            db: Async database session.
            owner_id: Requesting owner.
            task_id: Task primary key.
            **fields: Any of title, description, status.

        Returns:
            Updated Task, or None if not found or not owned.

        Raises:
            ValueError: If an unknown field name is passed.
            ValidationError: If a field value is invalid.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        changes: dict[str, str] = {}
        for field, value in fields.items():
            if field == "status":
                changes[field] = clean_status(value)
            else:
                changes[field] = clean_text_field(field, value)

        task = await TaskRepository.get_owned(db, owner_id, task_id)
        if task is None:
            return None

        for field, value in changes.items():
            setattr(task, field, value)

        now = utcnow()
        if now <= task.updated_at:
            now = task.updated_at + _ONE_TICK
        task.updated_at = now

        await db.flush()
        return task

    @staticmethod
    async def delete(
        db: AsyncSession, owner_id: uuid.UUID, task_id: uuid.UUID
    ) -> bool:
        """Delete an owned task in a single statement.

        Args:
            db: Async database session.
            owner_id: Requesting owner.
            task_id: Task primary key.

        Returns:
            True if a task was deleted, False if not found or not owned.
        """
        result = await db.execute(
            delete(Task).where(Task.id == task_id, Task.owner_id == owner_id)
        )
        return result.rowcount > 0

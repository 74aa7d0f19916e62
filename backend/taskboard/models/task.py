"""Task model - the owned entity behind every /tasks endpoint."""

import uuid
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskboard.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from taskboard.models.user import User

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


class TaskStatus(StrEnum):
    """Allowed task statuses."""

    PENDING = "pending"
    DONE = "done"


class Task(Base, TimestampMixin):
    """A task owned by exactly one user.

    Attributes:
        id: UUID primary key, assigned on creation.
        owner_id: FK to users; immutable after creation.
        title: Trimmed, 1-100 characters.
        description: Trimmed, 1-500 characters.
        status: "pending" or "done".
        created_at: Creation timestamp; never changes.
        updated_at: Refreshed on every successful mutation.
    """

    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(TITLE_MAX_LENGTH),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        String(DESCRIPTION_MAX_LENGTH),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TaskStatus.PENDING.value,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'done')",
            name="ck_task_status",
        ),
        CheckConstraint(
            "updated_at >= created_at",
            name="ck_task_updated_after_created",
        ),
        Index("ix_tasks_owner_created", "owner_id", "created_at"),
    )

    # Relationships
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="tasks",
    )

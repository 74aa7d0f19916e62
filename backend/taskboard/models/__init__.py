"""SQLAlchemy ORM models for Taskboard.

All models are exported from this module for convenient imports:
    from taskboard.models import User, Task

Importing this package registers every table on Base.metadata, which is
what Database.create_schema() builds.
"""

from taskboard.models.base import Base, TimestampMixin, UTCDateTime
from taskboard.models.task import Task, TaskStatus
from taskboard.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    "User",
    "Task",
    "TaskStatus",
]

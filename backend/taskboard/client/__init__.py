"""Python client for the Taskboard API and its task list state.

    from taskboard.client import TaskboardClient, TaskStore, TaskQuery
"""

from taskboard.client.api import TaskboardClient, TaskboardClientError
from taskboard.client.cache import (
    OpKind,
    OptimisticOverlay,
    PendingOp,
    TaskListCache,
    TaskPage,
    TaskQuery,
    TaskStore,
)

__all__ = [
    "TaskboardClient",
    "TaskboardClientError",
    "OpKind",
    "OptimisticOverlay",
    "PendingOp",
    "TaskListCache",
    "TaskPage",
    "TaskQuery",
    "TaskStore",
]

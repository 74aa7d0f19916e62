"""Filtering utilities for the task collection endpoint.

Filtering:
    - `?status=pending` - Exact match on status
    - `?status=all` (or omitted) - No status filter
    - `?search=report` - Case-insensitive substring of title OR description

Example:
    GET /api/tasks?status=done&search=invoice&page=2
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Query

from taskboard.core.errors import ValidationError
from taskboard.models.task import TaskStatus

STATUS_ALL = "all"

_MAX_SEARCH_LENGTH = 200


def parse_status_filter(value: str | None) -> TaskStatus | None:
    """Parse the status query value.

    Args:
        value: Raw status query string.

    Returns:
        The TaskStatus to match, or None for "no filter".

    Raises:
        ValidationError: If the value is neither "all" nor a known status.

    Examples:
        >>> parse_status_filter("all") is None
        True
        >>> parse_status_filter("done")
        <TaskStatus.DONE: 'done'>
    """
    if value is None:
        return None
    value = value.strip().lower()
    if value in ("", STATUS_ALL):
        return None
    try:
        return TaskStatus(value)
    except ValueError as exc:
        allowed = ", ".join([STATUS_ALL, *(s.value for s in TaskStatus)])
        raise ValidationError(
            f"status must be one of: {allowed}",
            details=[{"loc": ["query", "status"], "value": value}],
        ) from exc


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally (escape char '\\')."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class TaskFilters:
    """Parsed filter parameters for task listing.

    Attributes:
        status: Exact status to match, or None for all statuses.
        search: Trimmed search term, or None for no text filter.
    """

    status: TaskStatus | None = None
    search: str | None = None

    @classmethod
    def from_query(cls, status: str | None, search: str | None) -> "TaskFilters":
        """Create TaskFilters from raw query strings.

        Args:
            status: Raw status query value.
            search: Raw search query value.

        Returns:
            Parsed TaskFilters instance.
        """
        term = search.strip() if search else ""
        return cls(status=parse_status_filter(status), search=term or None)


def task_filters(
    status: Annotated[
        str | None,
        Query(description="Task status to match, or 'all'"),
    ] = None,
    search: Annotated[
        str | None,
        Query(
            max_length=_MAX_SEARCH_LENGTH,
            description="Case-insensitive text to find in title or description",
        ),
    ] = None,
) -> TaskFilters:
    """FastAPI dependency for parsing task filter query parameters.

    Usage:
        @router.get("")
        async def list_tasks(
            filters: Annotated[TaskFilters, Depends(task_filters)],
        ):
            ...
    """
    return TaskFilters.from_query(status, search)

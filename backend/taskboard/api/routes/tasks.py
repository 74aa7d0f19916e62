"""Tasks API router.

Every endpoint follows the same sequence:
authenticate -> validate path/query -> validate body -> repository -> envelope.

Authentication is the first declared dependency of each handler, and the
body is read inside the handler, so a 401 always wins over a 400.
Tasks owned by another user are reported as 404, never 403.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request, status

from taskboard.api.deps import (
    CurrentIdentity,
    DbSession,
    parse_body,
    parse_task_id,
    read_json_object,
)
from taskboard.core.errors import NotFoundError
from taskboard.core.filtering import TaskFilters, task_filters
from taskboard.core.pagination import PaginationParams, pagination_params
from taskboard.core.responses import MessageResponse, PaginationMeta
from taskboard.repositories.task_repository import TaskRepository
from taskboard.schemas.task import (
    TaskCreateRequest,
    TaskEnvelope,
    TaskListResponse,
    TaskRead,
    TaskUpdateRequest,
)

logger = structlog.get_logger()

router = APIRouter()

_TASK = "Task"


@router.get("")
async def list_tasks(
    identity: CurrentIdentity,
    db: DbSession,
    pagination: Annotated[PaginationParams, Depends(pagination_params)],
    filters: Annotated[TaskFilters, Depends(task_filters)],
) -> TaskListResponse:
    """List the current user's tasks, newest first.

    Query: page, limit, search (title/description, case-insensitive),
    status (pending, done, or all).
    """
    tasks, total = await TaskRepository.list(
        db,
        identity.user_id,
        filters,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return TaskListResponse(
        tasks=[TaskRead.model_validate(t) for t in tasks],
        pagination=PaginationMeta(
            page=pagination.page, limit=pagination.limit, total=total
        ),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    identity: CurrentIdentity,
    db: DbSession,
    request: Request,
) -> TaskEnvelope:
    """Create a task owned by the current user.

    Body: {title, description, status?}; status defaults to "pending".
    """
    body = parse_body(TaskCreateRequest, await read_json_object(request))

    task = await TaskRepository.create(
        db,
        identity.user_id,
        title=body.title,
        description=body.description,
        status=body.status.value,
    )
    await db.commit()

    logger.info("task_created", task_id=str(task.id), user_id=str(identity.user_id))
    return TaskEnvelope(
        message="Task created successfully", task=TaskRead.model_validate(task)
    )


@router.get("/{task_id}", response_model_exclude_none=True)
async def get_task(
    identity: CurrentIdentity,
    db: DbSession,
    task_id: str,
) -> TaskEnvelope:
    """Get one of the current user's tasks by id."""
    parsed_id = parse_task_id(task_id)

    task = await TaskRepository.get_owned(db, identity.user_id, parsed_id)
    if task is None:
        raise NotFoundError(_TASK, task_id)
    return TaskEnvelope(task=TaskRead.model_validate(task))


@router.put("/{task_id}")
async def update_task(
    identity: CurrentIdentity,
    db: DbSession,
    task_id: str,
    request: Request,
) -> TaskEnvelope:
    """Partially update a task.

    Only fields present in the body (title, description, status) change.
    """
    parsed_id = parse_task_id(task_id)
    body = parse_body(TaskUpdateRequest, await read_json_object(request))

    task = await TaskRepository.update(
        db, identity.user_id, parsed_id, **body.changes()
    )
    if task is None:
        raise NotFoundError(_TASK, task_id)
    await db.commit()

    logger.info(
        "task_updated",
        task_id=task_id,
        user_id=str(identity.user_id),
        fields=sorted(body.changes()),
    )
    return TaskEnvelope(
        message="Task updated successfully", task=TaskRead.model_validate(task)
    )


@router.delete("/{task_id}")
async def delete_task(
    identity: CurrentIdentity,
    db: DbSession,
    task_id: str,
) -> MessageResponse:
    """Permanently delete a task."""
    parsed_id = parse_task_id(task_id)

    deleted = await TaskRepository.delete(db, identity.user_id, parsed_id)
    if not deleted:
        raise NotFoundError(_TASK, task_id)
    await db.commit()

    logger.info("task_deleted", task_id=task_id, user_id=str(identity.user_id))
    return MessageResponse(message="Task deleted successfully")

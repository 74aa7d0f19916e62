"""Task list cache with an optimistic overlay.

Server responses are the source of truth. The cache keeps one snapshot per
list query and, separately, the local edits that have been sent but not yet
settled. Reading a query merges the two; settling an edit (success or
failure) discards it and invalidates every snapshot, so the next read goes
back to the server. A failed edit therefore rolls back simply by leaving
the overlay.

Usage:
    store = TaskStore(client)
    await store.load(TaskQuery())
    await store.update(task_id, status="done")
"""

import uuid
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, TypeVar

import structlog

from taskboard.client.api import TaskboardClient, TaskboardClientError

logger = structlog.get_logger()

ResultT = TypeVar("ResultT")

_PLACEHOLDER_PREFIX = "pending-"


@dataclass(frozen=True)
class TaskQuery:
    """Key for one cached list page.

    Attributes:
        page: Page number (1-indexed).
        search: Search term; empty for no text filter.
        status: "all", "pending" or "done".
    """

    page: int = 1
    search: str = ""
    status: str = "all"

    @property
    def is_unfiltered(self) -> bool:
        """True when neither a search term nor a status filter is applied."""
        return not self.search.strip() and self.status == "all"


@dataclass(frozen=True)
class TaskPage:
    """One page of tasks as seen by the UI."""

    tasks: tuple[dict[str, Any], ...]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        if self.total <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

    @classmethod
    def from_response(cls, body: dict[str, Any]) -> "TaskPage":
        """Build a page from a GET /api/tasks response body."""
        pagination = body["pagination"]
        return cls(
            tasks=tuple(body["tasks"]),
            page=pagination["page"],
            limit=pagination["limit"],
            total=pagination["total"],
        )


class OpKind(StrEnum):
    """Kind of pending local edit."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class PendingOp:
    """A local edit sent to the server and not yet settled.

    Attributes:
        kind: create, update or delete.
        task_id: Target task (a placeholder id for creates).
        fields: New field values for create/update.
        op_id: Identifier the overlay is keyed by.
    """

    kind: OpKind
    task_id: str
    fields: dict[str, Any] = field(default_factory=dict)
    op_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def create(cls, fields: dict[str, Any]) -> "PendingOp":
        op_id = uuid.uuid4().hex
        return cls(
            kind=OpKind.CREATE,
            task_id=f"{_PLACEHOLDER_PREFIX}{op_id}",
            fields=fields,
            op_id=op_id,
        )

    @classmethod
    def update(cls, task_id: str, fields: dict[str, Any]) -> "PendingOp":
        return cls(kind=OpKind.UPDATE, task_id=task_id, fields=fields)

    @classmethod
    def delete(cls, task_id: str) -> "PendingOp":
        return cls(kind=OpKind.DELETE, task_id=task_id)

    def placeholder(self) -> dict[str, Any]:
        """Task dict shown for a create until the server assigns an id."""
        return {
            "id": self.task_id,
            "status": "pending",
            "createdAt": None,
            "updatedAt": None,
            **self.fields,
        }


class OptimisticOverlay:
    """Pending local edits keyed by operation id, in submission order."""

    def __init__(self) -> None:
        self._ops: dict[str, PendingOp] = {}

    def __len__(self) -> int:
        return len(self._ops)

    def __iter__(self) -> Iterator[PendingOp]:
        return iter(list(self._ops.values()))

    def __contains__(self, op_id: object) -> bool:
        return op_id in self._ops

    def add(self, op: PendingOp) -> str:
        """Register an edit and return its operation id."""
        self._ops[op.op_id] = op
        return op.op_id

    def discard(self, op_id: str) -> PendingOp | None:
        """Drop an edit; unknown ids are ignored."""
        return self._ops.pop(op_id, None)

    def apply(self, query: TaskQuery, page: TaskPage) -> TaskPage:
        """Return ``page`` with every pending edit applied, oldest first.

        - create: prepended to page 1 of the unfiltered list, total + 1
        - update: fields patched onto tasks with a matching id
        - delete: tasks with a matching id removed, total - 1 (floored at 0)
        """
        tasks = list(page.tasks)
        total = page.total
        for op in self:
            if op.kind is OpKind.CREATE:
                if query.page == 1 and query.is_unfiltered:
                    tasks = [op.placeholder(), *tasks][: page.limit]
                    total += 1
            elif op.kind is OpKind.UPDATE:
                tasks = [
                    {**task, **op.fields} if task.get("id") == op.task_id else task
                    for task in tasks
                ]
            else:
                tasks = [task for task in tasks if task.get("id") != op.task_id]
                total = max(0, total - 1)
        return replace(page, tasks=tuple(tasks), total=total)


class TaskListCache:
    """Server snapshots per query plus the optimistic overlay.

    Nothing here is global; each store owns its own cache.
    """

    def __init__(self) -> None:
        self._snapshots: dict[TaskQuery, TaskPage] = {}
        self.overlay = OptimisticOverlay()

    def put(self, query: TaskQuery, page: TaskPage) -> None:
        """Record the server's answer for a query."""
        self._snapshots[query] = page

    def snapshot(self, query: TaskQuery) -> TaskPage | None:
        """The raw server snapshot, without pending edits."""
        return self._snapshots.get(query)

    def view(self, query: TaskQuery) -> TaskPage | None:
        """The snapshot with pending edits applied, or None if not cached."""
        page = self._snapshots.get(query)
        if page is None:
            return None
        return self.overlay.apply(query, page)

    def begin(self, op: PendingOp) -> str:
        """Start an optimistic edit."""
        return self.overlay.add(op)

    def settle(self, op_id: str) -> None:
        """Finish an edit, successful or not, and invalidate every snapshot."""
        self.overlay.discard(op_id)
        self.invalidate()

    def invalidate(self) -> None:
        """Forget all snapshots."""
        self._snapshots.clear()


class TaskStore:
    """Task list state backed by a TaskboardClient.

    Each mutation registers an overlay edit, calls the server and settles
    the edit in a ``finally`` block.
    """

    def __init__(
        self,
        client: TaskboardClient,
        cache: TaskListCache | None = None,
        *,
        page_size: int = 10,
    ) -> None:
        self.client = client
        self.cache = cache or TaskListCache()
        self.page_size = page_size

    async def load(self, query: TaskQuery, *, refresh: bool = False) -> TaskPage:
        """Return the view for a query, fetching it if not cached."""
        if refresh or self.cache.snapshot(query) is None:
            body = await self.client.list_tasks(
                page=query.page,
                limit=self.page_size,
                search=query.search,
                status=query.status,
            )
            self.cache.put(query, TaskPage.from_response(body))
        view = self.cache.view(query)
        assert view is not None  # just stored
        return view

    async def create(
        self, title: str, description: str, status: str = "pending"
    ) -> dict[str, Any]:
        fields = {"title": title, "description": description, "status": status}
        return await self._mutate(
            PendingOp.create(fields),
            lambda: self.client.create_task(title, description, status),
        )

    async def update(self, task_id: str, **fields: Any) -> dict[str, Any]:
        return await self._mutate(
            PendingOp.update(task_id, fields),
            lambda: self.client.update_task(task_id, **fields),
        )

    async def delete(self, task_id: str) -> None:
        await self._mutate(
            PendingOp.delete(task_id),
            lambda: self.client.delete_task(task_id),
        )

    async def _mutate(
        self, op: PendingOp, call: Callable[[], Awaitable[ResultT]]
    ) -> ResultT:
        op_id = self.cache.begin(op)
        try:
            return await call()
        except TaskboardClientError as exc:
            logger.warning(
                "optimistic_edit_rolled_back",
                op_id=op_id,
                kind=op.kind.value,
                status_code=exc.status_code,
            )
            raise
        finally:
            self.cache.settle(op_id)

"""Tests for TaskRepository.

Covers owner scoping, filtered pagination, validation before writes,
partial updates and deletes.
"""

import math
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.errors import ValidationError
from taskboard.core.filtering import TaskFilters
from taskboard.models import Task, TaskStatus
from taskboard.models.base import utcnow
from taskboard.repositories.task_repository import TaskRepository
from tests.conftest import TEST_USER_ID, USER_B_ID, add_task

_MISSING_UUID = uuid.UUID("99999999-9999-9999-9999-999999999999")
_NO_FILTERS = TaskFilters()


async def _count_tasks(db_session: AsyncSession) -> int:
    return await db_session.scalar(select(func.count()).select_from(Task)) or 0


class TestCreate:
    """Test TaskRepository.create()."""

    async def test_creates_trimmed_pending_task(self, db_session, test_user):
        task = await TaskRepository.create(
            db_session, test_user.id, title="  Buy milk ", description=" 2 liters "
        )
        assert task.id is not None
        assert task.title == "Buy milk"
        assert task.description == "2 liters"
        assert task.status == "pending"
        assert task.owner_id == TEST_USER_ID
        assert task.created_at == task.updated_at
        assert task.created_at.tzinfo is not None

    async def test_explicit_status(self, db_session, test_user):
        task = await TaskRepository.create(
            db_session, test_user.id, title="t", description="d", status="done"
        )
        assert task.status == "done"

    @pytest.mark.parametrize(
        ("fields", "message"),
        [
            ({"title": "", "description": "d"}, "Title is required"),
            ({"title": "   ", "description": "d"}, "Title is required"),
            ({"title": "t", "description": ""}, "Description is required"),
            ({"title": "x" * 101, "description": "d"}, "Title cannot exceed 100 characters"),
            (
                {"title": "t", "description": "x" * 501},
                "Description cannot exceed 500 characters",
            ),
            ({"title": "t", "description": "d", "status": "archived"}, "Status must be one of: pending, done"),
        ],
    )
    async def test_invalid_fields_write_nothing(
        self, db_session, test_user, fields, message
    ):
        with pytest.raises(ValidationError) as exc_info:
            await TaskRepository.create(db_session, test_user.id, **fields)
        assert exc_info.value.message == message
        assert await _count_tasks(db_session) == 0

    async def test_length_limits_apply_after_trimming(self, db_session, test_user):
        task = await TaskRepository.create(
            db_session, test_user.id, title=f"  {'x' * 100}  ", description="d"
        )
        assert len(task.title) == 100


class TestGetOwned:
    """Test TaskRepository.get_owned()."""

    async def test_returns_owned_task(self, db_session, test_user):
        created = await add_task(db_session, test_user.id)
        task = await TaskRepository.get_owned(db_session, test_user.id, created.id)
        assert task is not None
        assert task.id == created.id

    async def test_other_owner_gets_none(self, db_session, test_user, user_b):
        created = await add_task(db_session, test_user.id)
        assert await TaskRepository.get_owned(db_session, user_b.id, created.id) is None

    async def test_missing_id_gets_none(self, db_session, test_user):
        assert (
            await TaskRepository.get_owned(db_session, test_user.id, _MISSING_UUID)
            is None
        )


class TestList:
    """Test TaskRepository.list()."""

    async def test_only_owner_tasks_are_listed(self, db_session, test_user, user_b):
        await add_task(db_session, test_user.id, title="mine")
        await add_task(db_session, user_b.id, title="theirs")

        tasks, total = await TaskRepository.list(
            db_session, test_user.id, _NO_FILTERS, offset=0, limit=10
        )
        assert total == 1
        assert [t.title for t in tasks] == ["mine"]

    async def test_pages_cover_every_task_once_newest_first(
        self, db_session, test_user
    ):
        base = utcnow()
        # Two pairs share a timestamp to exercise the id tie-breaker
        stamps = [base + timedelta(seconds=i // 2) for i in range(23)]
        for i, stamp in enumerate(stamps):
            await add_task(db_session, test_user.id, title=f"task {i}", created_at=stamp)

        page_size = 5
        seen: list[Task] = []
        for page in range(1, math.ceil(23 / page_size) + 1):
            tasks, total = await TaskRepository.list(
                db_session,
                test_user.id,
                _NO_FILTERS,
                offset=(page - 1) * page_size,
                limit=page_size,
            )
            assert total == 23
            seen.extend(tasks)

        assert len(seen) == 23
        assert len({t.id for t in seen}) == 23
        expected = sorted(seen, key=lambda t: (t.created_at, t.id), reverse=True)
        assert [t.id for t in seen] == [t.id for t in expected]

    async def test_page_past_end_is_empty_with_total(self, db_session, test_user):
        await add_task(db_session, test_user.id)
        tasks, total = await TaskRepository.list(
            db_session, test_user.id, _NO_FILTERS, offset=10, limit=10
        )
        assert list(tasks) == []
        assert total == 1

    async def test_status_filter(self, db_session, test_user):
        await add_task(db_session, test_user.id, title="open")
        await add_task(db_session, test_user.id, title="closed", status="done")

        tasks, total = await TaskRepository.list(
            db_session,
            test_user.id,
            TaskFilters(status=TaskStatus.DONE),
            offset=0,
            limit=10,
        )
        assert total == 1
        assert tasks[0].title == "closed"

    # SQLite folds ASCII case only; non-ASCII folding relies on PostgreSQL ILIKE
    async def test_search_matches_description_case_insensitively(
        self, db_session, test_user
    ):
        await add_task(db_session, test_user.id, title="A", description="Buy MILK")
        await add_task(db_session, test_user.id, title="B", description="Call mom")

        tasks, total = await TaskRepository.list(
            db_session, test_user.id, TaskFilters(search="milk"), offset=0, limit=10
        )
        assert total == 1
        assert tasks[0].title == "A"

    async def test_search_matches_title(self, db_session, test_user):
        await add_task(db_session, test_user.id, title="Invoice ACME", description="x")
        tasks, _ = await TaskRepository.list(
            db_session, test_user.id, TaskFilters(search="invoice"), offset=0, limit=10
        )
        assert [t.title for t in tasks] == ["Invoice ACME"]

    async def test_search_wildcards_are_literal(self, db_session, test_user):
        await add_task(db_session, test_user.id, title="50% off", description="sale")
        await add_task(db_session, test_user.id, title="500 items", description="bulk")

        tasks, total = await TaskRepository.list(
            db_session, test_user.id, TaskFilters(search="50%"), offset=0, limit=10
        )
        assert total == 1
        assert tasks[0].title == "50% off"

    async def test_search_and_status_combine(self, db_session, test_user):
        await add_task(db_session, test_user.id, title="report", status="done")
        await add_task(db_session, test_user.id, title="report draft")

        tasks, total = await TaskRepository.list(
            db_session,
            test_user.id,
            TaskFilters(status=TaskStatus.PENDING, search="report"),
            offset=0,
            limit=10,
        )
        assert total == 1
        assert tasks[0].title == "report draft"


class TestUpdate:
    """Test TaskRepository.update()."""

    async def test_partial_update_leaves_other_fields(self, db_session, test_user):
        created = await add_task(db_session, test_user.id, title="T", description="D")
        before = created.updated_at

        task = await TaskRepository.update(
            db_session, test_user.id, created.id, status="done"
        )
        assert task is not None
        assert task.status == "done"
        assert task.title == "T"
        assert task.description == "D"
        assert task.updated_at > before
        assert task.created_at == created.created_at

    async def test_updated_at_strictly_increases_on_repeat(
        self, db_session, test_user
    ):
        created = await add_task(db_session, test_user.id)
        first = await TaskRepository.update(
            db_session, test_user.id, created.id, title="one"
        )
        first_stamp = first.updated_at
        second = await TaskRepository.update(
            db_session, test_user.id, created.id, title="two"
        )
        assert second.updated_at > first_stamp

    async def test_other_owner_cannot_update(self, db_session, test_user, user_b):
        created = await add_task(db_session, test_user.id, title="T")
        result = await TaskRepository.update(
            db_session, user_b.id, created.id, title="hijacked"
        )
        assert result is None
        await db_session.refresh(created)
        assert created.title == "T"

    async def test_invalid_value_raises_before_lookup(self, db_session, test_user):
        with pytest.raises(ValidationError):
            await TaskRepository.update(
                db_session, test_user.id, _MISSING_UUID, title="  "
            )

    async def test_unknown_field_rejected(self, db_session, test_user):
        created = await add_task(db_session, test_user.id)
        with pytest.raises(ValueError, match="Unknown fields: owner_id"):
            await TaskRepository.update(
                db_session, test_user.id, created.id, owner_id=USER_B_ID
            )


class TestDelete:
    """Test TaskRepository.delete()."""

    async def test_deletes_owned_task(self, db_session, test_user):
        created = await add_task(db_session, test_user.id)
        assert await TaskRepository.delete(db_session, test_user.id, created.id) is True
        assert await TaskRepository.get_owned(db_session, test_user.id, created.id) is None

    async def test_other_owner_cannot_delete(self, db_session, test_user, user_b):
        created = await add_task(db_session, test_user.id)
        assert await TaskRepository.delete(db_session, user_b.id, created.id) is False
        assert await _count_tasks(db_session) == 1

    async def test_missing_task(self, db_session, test_user):
        assert (
            await TaskRepository.delete(db_session, test_user.id, _MISSING_UUID)
            is False
        )

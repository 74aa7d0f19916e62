"""Tests for UserRepository.

Tests cover lookups, email normalization and uniqueness.
"""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.repositories.user_repository import UserRepository

_MISSING_UUID = uuid.UUID("99999999-9999-9999-9999-999999999999")
_TEST_EMAIL = "test@example.com"


class TestGetById:
    """Test UserRepository.get_by_id()."""

    async def test_returns_user_when_found(self, db_session: AsyncSession, test_user):
        """Existing user is returned by ID."""
        user = await UserRepository.get_by_id(db_session, test_user.id)
        assert user is not None
        assert user.email == _TEST_EMAIL

    async def test_returns_none_when_not_found(self, db_session: AsyncSession):
        """Non-existent ID returns None."""
        assert await UserRepository.get_by_id(db_session, _MISSING_UUID) is None


class TestGetByEmail:
    """Test UserRepository.get_by_email()."""

    async def test_email_lookup_is_case_insensitive(
        self, db_session: AsyncSession, test_user
    ):
        """Email lookup ignores case and surrounding whitespace."""
        user = await UserRepository.get_by_email(db_session, "  TEST@EXAMPLE.COM ")
        assert user is not None
        assert user.id == test_user.id

    async def test_returns_none_when_not_found(self, db_session: AsyncSession):
        user = await UserRepository.get_by_email(db_session, "nobody@example.com")
        assert user is None


class TestCreate:
    """Test UserRepository.create()."""

    async def test_creates_user_with_lowercase_email(self, db_session: AsyncSession):
        user = await UserRepository.create(
            db_session, email="New.User@Example.COM", password_hash="hash"
        )
        assert user.id is not None
        assert user.email == "new.user@example.com"
        assert user.created_at == user.updated_at

    async def test_duplicate_email_raises_integrity_error(
        self, db_session: AsyncSession, test_user
    ):
        with pytest.raises(IntegrityError):
            await UserRepository.create(
                db_session, email=_TEST_EMAIL.upper(), password_hash="hash"
            )

import os
import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

# Settings() refuses to load without a secret; taskboard.main builds an app on import.
os.environ.setdefault("AUTH_SECRET", TEST_AUTH_SECRET)

from taskboard.core.config import Settings  # noqa: E402
from taskboard.core.database import Database  # noqa: E402
from taskboard.main import create_app  # noqa: E402
from taskboard.models import Task, User  # noqa: E402
from taskboard.models.base import utcnow  # noqa: E402

TEST_ISSUER = "taskboard"

# Test user IDs (consistent across tests for predictable auth)
TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_EMAIL = "test@example.com"
TEST_USER_PASSWORD = "correct-horse-42"  # nosec B105

# User B constants (cross-owner testing counterpart to TEST_USER_ID)
USER_B_ID = uuid.UUID("00000000-0000-0000-0000-000000000099")
USER_B_EMAIL = "userb@example.com"

# Low bcrypt cost keeps fixtures fast; check_password accepts any cost.
_FAST_BCRYPT_ROUNDS = 4


def create_test_token(
    user_id: uuid.UUID = TEST_USER_ID,
    *,
    email: str = TEST_USER_EMAIL,
    secret: str = TEST_AUTH_SECRET,
    issuer: str = TEST_ISSUER,
    expires_delta: timedelta | None = None,
    iat: datetime | None = None,
) -> str:
    """Create a signed token for test authentication.

    Args:
        user_id: User UUID to encode in the userId claim.
        email: Email claim.
        secret: Signing secret (must match the test settings).
        issuer: Issuer claim.
        expires_delta: Time until expiration. Defaults to 1 hour.
        iat: Issued-at time. Defaults to now.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "userId": str(user_id),
        "email": email,
        "iss": issuer,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": iat or now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def fast_password_hash(password: str) -> str:
    """bcrypt hash with a low cost factor, for fixtures only."""
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=_FAST_BCRYPT_ROUNDS)
    ).decode()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings for a test app: fixed secret, plain-http cookies."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        database_create_schema=False,
        auth_secret=SecretStr(TEST_AUTH_SECRET),
        auth_cookie_secure=False,
        environment="test",
    )


@pytest_asyncio.fixture
async def database(test_settings: Settings) -> AsyncGenerator[Database, None]:
    """File-backed SQLite database with every table created.

    Each test gets its own file under tmp_path.
    """
    db = Database(test_settings.database_url)
    await db.create_schema()
    yield db
    await db.drop_schema()
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with database.session_factory() as session:
        yield session
        await session.rollback()


async def _add_user(
    db_session: AsyncSession, user_id: uuid.UUID, email: str
) -> User:
    now = utcnow()
    user = User(
        id=user_id,
        email=email,
        password_hash=fast_password_hash(TEST_USER_PASSWORD),
        created_at=now,
        updated_at=now,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create the primary test user (password TEST_USER_PASSWORD)."""
    return await _add_user(db_session, TEST_USER_ID, TEST_USER_EMAIL)


@pytest_asyncio.fixture
async def user_b(db_session: AsyncSession) -> User:
    """Create User B for cross-owner isolation tests."""
    return await _add_user(db_session, USER_B_ID, USER_B_EMAIL)


async def add_task(
    db_session: AsyncSession,
    owner_id: uuid.UUID,
    *,
    title: str = "Write report",
    description: str = "Quarterly numbers",
    status: str = "pending",
    created_at: datetime | None = None,
) -> Task:
    """Insert a task directly, bypassing the repository."""
    stamp = created_at or utcnow()
    task = Task(
        owner_id=owner_id,
        title=title,
        description=description,
        status=status,
        created_at=stamp,
        updated_at=stamp,
    )
    db_session.add(task)
    await db_session.commit()
    return task


@pytest.fixture
def app(test_settings: Settings, database: Database) -> FastAPI:
    """Application wired to the test settings and database."""
    return create_app(settings=test_settings, database=database)


@pytest_asyncio.fixture
async def client(
    app: FastAPI,
    test_user,  # noqa: ARG001 - ensures user exists
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client authenticated as TEST_USER_ID via bearer header."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {create_test_token()}"},
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def client_user_b(
    app: FastAPI,
    user_b,  # noqa: ARG001 - ensures user exists
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client authenticated as USER_B_ID."""
    token = create_test_token(USER_B_ID, email=USER_B_EMAIL)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def unauthenticated_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client without any credential."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

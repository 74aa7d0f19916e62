"""Authentication endpoints for password-based auth.

register, login, logout and me. Register and login return the issued token
in the body (for bearer use) and also set it as an httpOnly cookie.

Security considerations:
- login: constant-time comparison via DUMMY_HASH prevents user enumeration
- register: bcrypt cost 12, password strength rules, email uniqueness
- me: the token alone is not enough; the user record must still exist
"""

import structlog
from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.exc import IntegrityError

from taskboard.api.deps import (
    AppSettings,
    CurrentIdentity,
    DbSession,
    Tokens,
    parse_body,
    read_json_object,
)
from taskboard.core.auth import (
    TokenIdentity,
    check_password,
    clear_auth_cookie,
    hash_password,
    set_auth_cookie,
    validate_password_strength,
)
from taskboard.core.errors import ConflictError, NotFoundError, UnauthorizedError
from taskboard.core.responses import MessageResponse
from taskboard.models.user import User
from taskboard.repositories.user_repository import UserRepository

logger = structlog.get_logger()

router = APIRouter()


# ===================================================================
# Request/response models
# ===================================================================


class CredentialsRequest(BaseModel):
    """Request body for POST /auth/register and POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=256)


class UserRead(BaseModel):
    """Public view of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    createdAt: str  # noqa: N815 - wire format is camelCase


class AuthResponse(BaseModel):
    """Body for successful register/login."""

    message: str
    user: UserRead
    token: str


class MeResponse(BaseModel):
    """Body for GET /auth/me."""

    user: UserRead


def _user_read(user: User) -> UserRead:
    return UserRead(
        id=str(user.id),
        email=user.email,
        createdAt=user.created_at.isoformat(),
    )


def _issue_session(
    user: User, response: Response, tokens: Tokens, settings: AppSettings
) -> str:
    token = tokens.issue(TokenIdentity(user_id=user.id, email=user.email))
    set_auth_cookie(response, token, settings, tokens.expires_delta)
    return token


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    response: Response,
    db: DbSession,
    tokens: Tokens,
    settings: AppSettings,
) -> AuthResponse:
    """Register a new user with email + password and sign them in."""
    body = parse_body(CredentialsRequest, await read_json_object(request))
    validate_password_strength(body.password)

    if await UserRepository.get_by_email(db, body.email) is not None:
        raise ConflictError(
            code="EMAIL_ALREADY_EXISTS",
            message="Email already registered",
        )

    try:
        user = await UserRepository.create(
            db, email=body.email, password_hash=hash_password(body.password)
        )
        await db.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise ConflictError(
            code="EMAIL_ALREADY_EXISTS",
            message="Email already registered",
        ) from exc

    token = _issue_session(user, response, tokens, settings)
    logger.info("user_registered", user_id=str(user.id))
    return AuthResponse(
        message="User created successfully", user=_user_read(user), token=token
    )


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
async def login(
    request: Request,
    response: Response,
    db: DbSession,
    tokens: Tokens,
    settings: AppSettings,
) -> AuthResponse:
    """Verify email + password and issue a token."""
    body = parse_body(CredentialsRequest, await read_json_object(request))

    user = await UserRepository.get_by_email(db, body.email)
    if not check_password(body.password, user.password_hash if user else None):
        logger.info("login_failed")
        raise UnauthorizedError("Invalid email or password")
    assert user is not None  # check_password is False without a stored hash

    token = _issue_session(user, response, tokens, settings)
    return AuthResponse(message="Login successful", user=_user_read(user), token=token)


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(response: Response, settings: AppSettings) -> MessageResponse:
    """Clear the token cookie.

    Tokens are stateless, so a copy kept elsewhere stays valid until expiry.
    """
    clear_auth_cookie(response, settings)
    return MessageResponse(message="Logged out successfully")


# ===================================================================
# GET /auth/me
# ===================================================================


@router.get("/me")
async def me(identity: CurrentIdentity, db: DbSession) -> MeResponse:
    """Return the user behind the current token.

    Raises:
        NotFoundError: If the token is valid but the user no longer exists.
    """
    user = await UserRepository.get_by_id(db, identity.user_id)
    if user is None:
        raise NotFoundError("User")
    return MeResponse(user=_user_read(user))

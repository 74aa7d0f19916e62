"""Shared dependencies for API endpoints.

The request authenticator lives here: every protected handler declares
``CurrentIdentity`` explicitly, so authentication is resolved before any
other parameter of that handler and before any repository call.
"""

import json
import uuid
from typing import Annotated, Any, TypeVar

from fastapi import Depends, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.auth import TokenIdentity, TokenService
from taskboard.core.config import Settings
from taskboard.core.database import get_db
from taskboard.core.errors import (
    CredentialProblem,
    UnauthenticatedError,
    ValidationError,
)

_BEARER_PREFIX = "bearer "

BodyT = TypeVar("BodyT", bound=BaseModel)


def get_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    """Token service created once at application startup."""
    return request.app.state.token_service


def extract_token(request: Request, cookie_name: str) -> str | None:
    """Find a candidate token on the request.

    Checks, in order:
    1. ``Authorization: Bearer <token>`` header
    2. the token cookie

    The header wins when both are present.

    Args:
        request: Incoming HTTP request.
        cookie_name: Name of the token cookie.

    Returns:
        The raw token string, or None if neither location carries one.
    """
    header = request.headers.get("authorization", "")
    if header[: len(_BEARER_PREFIX)].lower() == _BEARER_PREFIX:
        token = header[len(_BEARER_PREFIX) :].strip()
        if token:
            return token
    return request.cookies.get(cookie_name) or None


def authenticate(
    request: Request, token_service: TokenService, cookie_name: str
) -> TokenIdentity:
    """Resolve the identity behind a request.

    Re-run on every request; there is no session cache.

    Args:
        request: Incoming HTTP request.
        token_service: Verifies the token signature and expiry.
        cookie_name: Name of the token cookie.

    Returns:
        The verified identity.

    Raises:
        UnauthenticatedError: MISSING if no token was sent, INVALID if the
            token failed verification.
    """
    token = extract_token(request, cookie_name)
    if token is None:
        raise UnauthenticatedError(CredentialProblem.MISSING)

    identity = token_service.verify(token)
    if identity is None:
        raise UnauthenticatedError(CredentialProblem.INVALID)
    return identity


def get_current_identity(
    request: Request,
    token_service: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenIdentity:
    """FastAPI dependency wrapping authenticate().

    Raises:
        UnauthenticatedError: 401 for any auth failure.
    """
    return authenticate(request, token_service, settings.auth_cookie_name)


# Reusable type aliases for dependency injection
CurrentIdentity = Annotated[TokenIdentity, Depends(get_current_identity)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Tokens = Annotated[TokenService, Depends(get_token_service)]


async def read_json_object(request: Request) -> dict[str, Any]:
    """Read the request body as a JSON object.

    Handlers call this after authentication so a malformed body can never
    take precedence over a 401.

    Raises:
        ValidationError: If the body is not valid JSON or not an object.
    """
    raw = await request.body()
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def parse_body(model: type[BodyT], payload: dict[str, Any]) -> BodyT:
    """Validate a JSON object against a request model.

    The first failing field becomes the error message; every failure is
    listed in details.

    Raises:
        ValidationError: If the payload does not satisfy the model.
    """
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False)
        details = [
            {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
            for e in errors
        ]
        raise ValidationError(_first_message(errors[0]), details=details) from exc


def _first_message(error: Any) -> str:
    field = ".".join(str(part) for part in error["loc"]) or "body"
    if error["type"] == "missing":
        return f"{field.capitalize()} is required"
    if error["type"] == "extra_forbidden":
        return f"Unknown field: {field}"
    return str(error["msg"])


def parse_task_id(raw_id: str) -> uuid.UUID:
    """Parse a task id path segment.

    Raises:
        ValidationError: If the value is not a syntactically valid UUID.
    """
    try:
        return uuid.UUID(raw_id)
    except ValueError as exc:
        raise ValidationError("Invalid task ID") from exc

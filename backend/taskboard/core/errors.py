"""API error classes.

Every error carries a machine-readable code, a human-readable message and
the HTTP status it maps to. Exception handlers in taskboard.main render
them as ``{"error": message, "code": code}``.
"""

from enum import StrEnum


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, malformed ids, query param errors.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid auth credentials provided.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class CredentialProblem(StrEnum):
    """Why a request failed authentication."""

    MISSING = "missing_credential"
    INVALID = "invalid_credential"


_CREDENTIAL_MESSAGES = {
    CredentialProblem.MISSING: "Authentication required",
    CredentialProblem.INVALID: "Invalid token",
}


class UnauthenticatedError(UnauthorizedError):
    """Request carried no usable identity token (401).

    Raised by the request authenticator. The reason distinguishes a missing
    credential from one that failed verification; neither says anything about
    the resource being requested.

    Attributes:
        reason: Which credential problem was detected.
    """

    def __init__(self, reason: CredentialProblem) -> None:
        self.reason = reason
        super().__init__(_CREDENTIAL_MESSAGES[reason])


class NotFoundError(APIError):
    """Resource not found (404).

    Use when requested resource doesn't exist OR doesn't belong to user.
    Revealing "exists but not yours" would leak information, so ownership
    failures use this class too.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
            details=[{"id": resource_id}] if resource_id else None,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )

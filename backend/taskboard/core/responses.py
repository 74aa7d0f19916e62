"""Response envelope models.

Success bodies name their payload (``{"task": ...}``, ``{"tasks": [...],
"pagination": {...}}``); error bodies are always ``{"error": ..., "code": ...}``.
"""

from pydantic import BaseModel, computed_field


class PaginationMeta(BaseModel):
    """Pagination metadata for collections.

    Attributes:
        page: Current page number (1-indexed).
        limit: Number of items per page.
        total: Total number of matching items across all pages.
    """

    page: int
    limit: int
    total: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pages(self) -> int:
        """Calculate total number of pages.

        Returns:
            ceil(total / limit); 0 if total is 0.
        """
        if self.total == 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


class MessageResponse(BaseModel):
    """Confirmation body for operations with no resource to return."""

    message: str


class ErrorResponse(BaseModel):
    """Standard error response body.

    Attributes:
        error: Human-readable error message.
        code: Machine-readable error code (e.g., "NOT_FOUND").
        details: Optional list of field-level errors (for validation).

    Usage in exception handlers:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.message, code=exc.code).to_body(),
        )
    """

    error: str
    code: str
    details: list[dict] | None = None

    def to_body(self) -> dict:
        """Serialize, omitting details when there are none."""
        return self.model_dump(exclude_none=True)

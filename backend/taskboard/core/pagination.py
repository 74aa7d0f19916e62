"""Pagination utilities.

page (default 1), limit (default from settings, max from settings).
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Query, Request

from taskboard.core.errors import ValidationError

# Largest OFFSET a signed 64-bit database integer can hold
_MAX_OFFSET = 2**63 - 1


@dataclass
class PaginationParams:
    """Pagination query parameters.

    Attributes:
        page: Current page number (1-indexed).
        limit: Number of items per page.
    """

    page: int
    limit: int

    @property
    def offset(self) -> int:
        """Calculate SQL OFFSET for database queries.

        Returns:
            Number of items to skip (0 for page 1).
        """
        return (self.page - 1) * self.limit


def pagination_params(
    request: Request,
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    limit: Annotated[
        int | None, Query(ge=1, description="Items per page")
    ] = None,
) -> PaginationParams:
    """FastAPI dependency for pagination query parameters.

    The default and maximum page size come from the application's settings,
    so they are checked here rather than in the Query declaration.

    Usage:
        @router.get("")
        async def list_items(
            pagination: Annotated[PaginationParams, Depends(pagination_params)],
        ):
            items = await repo.list(offset=pagination.offset, limit=pagination.limit)

    Args:
        request: Incoming request (for app settings).
        page: Page number (default 1, must be >= 1).
        limit: Items per page (default and max from settings).

    Returns:
        PaginationParams with validated page and limit.

    Raises:
        ValidationError: If limit exceeds the configured maximum, or the
            page would skip more rows than the database can address.
    """
    settings = request.app.state.settings
    if limit is None:
        limit = settings.default_page_size
    if limit > settings.max_page_size:
        raise ValidationError(
            f"limit must be at most {settings.max_page_size}",
            details=[{"loc": ["query", "limit"], "max": settings.max_page_size}],
        )
    params = PaginationParams(page=page, limit=limit)
    if params.offset > _MAX_OFFSET:
        raise ValidationError(
            "page is too large",
            details=[{"loc": ["query", "page"]}],
        )
    return params

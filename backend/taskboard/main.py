"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Security headers and CORS middleware
- Exception handlers for API errors
- Database and token service lifecycle
- API router mounting and the health check endpoint
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from taskboard.api.routes.router import router as api_router
from taskboard.core.auth import TokenService
from taskboard.core.config import Settings
from taskboard.core.database import Database
from taskboard.core.errors import APIError, InternalError, ValidationError
from taskboard.core.logging import configure_logging
from taskboard.core.responses import ErrorResponse

logger = structlog.get_logger()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    Headers added:
    - X-Frame-Options: Prevents clickjacking attacks
    - X-Content-Type-Options: Prevents MIME sniffing
    - Referrer-Policy: Controls referrer information leakage
    - Cache-Control: Prevents caching of API responses
    - Content-Security-Policy: Restricts resource loading (API returns no HTML)
    - Strict-Transport-Security: Forces HTTPS (production only)
    """

    def __init__(self, app: ASGIApp, *, production: bool = False) -> None:
        super().__init__(app)
        self.production = production

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # API responses may carry task data
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"

        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # Assumes HTTPS is terminated by a reverse proxy
        if self.production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors.

    Args:
        request: The incoming request.
        exc: The APIError that was raised.

    Returns:
        JSONResponse with error envelope and appropriate status code.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.message, code=exc.code, details=exc.details
        ).to_body(),
    )


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors raised by FastAPI for query/path params.

    Args:
        request: The incoming request.
        exc: The RequestValidationError from Pydantic.

    Returns:
        JSONResponse with VALIDATION_ERROR code and field-level details.
    """
    error = ValidationError(
        "Request validation failed",
        details=[
            {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
            for e in exc.errors()
        ],
    )
    return api_error_handler(_request, error)


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Returns 500 INTERNAL_ERROR without exposing stack traces. The exception
    is logged with its traceback.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        JSONResponse with generic error message (500).
    """
    logger.exception("unhandled_exception", exc_info=exc, path=str(request.url.path))
    return api_error_handler(request, InternalError())


def create_app(
    settings: Settings | None = None, database: Database | None = None
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration to use. Loaded from the environment when
            omitted, which fails if AUTH_SECRET is missing or too short.
        database: Pre-built database to use instead of one created from
            settings.database_url. The caller keeps ownership of it.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level, json=settings.log_json)
        owned = database is None
        db = database or Database(settings.database_url, echo=settings.database_echo)
        if settings.database_create_schema:
            await db.create_schema()
        app.state.database = db
        logger.info("startup", environment=settings.environment)
        try:
            yield
        finally:
            if owned:
                await db.dispose()
            logger.info("shutdown")

    app = FastAPI(
        title="Taskboard API",
        version="1.0.0",
        description="Multi-user task manager",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.token_service = TokenService.from_settings(settings)
    if database is not None:
        app.state.database = database

    # Middleware order: Starlette uses LIFO, so the LAST added runs FIRST.
    # CORS must run first to handle preflight requests, so add it last.
    app.add_middleware(
        SecurityHeadersMiddleware, production=settings.environment == "production"
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    def health_check() -> dict:
        """Health check endpoint for monitoring.

        Returns:
            {"status": "healthy"} if service is running.
        """
        return {"status": "healthy"}

    return app


# Used by uvicorn: uvicorn taskboard.main:app
app = create_app()

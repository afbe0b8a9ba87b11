"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() function returns configured app
   - Easier to test (can create multiple instances)

2. Lifespan Events
   - startup: create missing tables and the upload directory
   - shutdown: dispose of the connection pool

3. Middleware Stack
   - Sessions: signed cookie holding the user id, flash and CSRF token
   - Rate limiting: slowapi per client IP

4. Exception Handlers
   - Domain errors become 404 / 400 responses
   - Everything unexpected becomes a generic 500, logged with a traceback
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from http import HTTPStatus
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import PlainTextResponse

from bookreview.config import get_settings
from bookreview.database import create_tables, engine
from bookreview.forms import FormDecodeError
from bookreview.repositories import NoRecordError
from bookreview.routers import (
    auth_router,
    books_router,
    home_router,
    notes_router,
    reviews_router,
)
from bookreview.services.rate_limiter import limiter, rate_limit_exceeded_handler
from bookreview.services.uploads import RequestTooLargeError
from bookreview.templating import Renderer, build_template_functions

# =============================================================================
# Logging Configuration
# =============================================================================
# Configure logging before creating the app
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Events
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Code before yield: Runs on startup
    Code after yield: Runs on shutdown
    """
    # ----- STARTUP -----
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Environment: {settings.environment}")

    create_tables()
    logger.info("Database tables ready")

    yield  # Application runs here

    # ----- SHUTDOWN -----
    logger.info(f"Shutting down {settings.app_name}...")
    engine.dispose()


# =============================================================================
# Error Responses
# =============================================================================
def client_error(request: Request, status_code: int) -> PlainTextResponse:
    """Plain-text status page for a 4xx response."""
    logger.warning(f"Client error: {request.method} {request.url} -> {status_code}")
    return PlainTextResponse(HTTPStatus(status_code).phrase, status_code=status_code)


def server_error(request: Request, exc: Exception) -> PlainTextResponse:
    """Generic 500; the details only go to the log."""
    logger.error(
        f"Server error: {request.method} {request.url}: {exc}",
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return PlainTextResponse(HTTPStatus.INTERNAL_SERVER_ERROR.phrase, status_code=500)


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="Track the books you read, keep notes and share reviews.",
        version="0.1.0",
        lifespan=lifespan,
        # HTML site: no interactive API docs
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------
    # The helper registry is built once here and is read-only afterwards
    app.state.renderer = Renderer(build_template_functions())

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    # Attach the limiter to the app state so it can be accessed by decorators
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------
    # Signed (not encrypted) cookie; same_site=lax keeps it off cross-site
    # POSTs, https_only in production.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie="session",
        max_age=settings.session_lifetime,
        same_site="lax",
        https_only=settings.is_production,
    )

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(NoRecordError)
    async def no_record_handler(request: Request, exc: NoRecordError) -> PlainTextResponse:
        return client_error(request, 404)

    @app.exception_handler(FormDecodeError)
    async def form_decode_handler(request: Request, exc: FormDecodeError) -> PlainTextResponse:
        logger.warning(f"Form decoding failed: {exc}")
        return client_error(request, 400)

    @app.exception_handler(RequestTooLargeError)
    async def too_large_handler(request: Request, exc: RequestTooLargeError) -> PlainTextResponse:
        return client_error(request, 400)

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> PlainTextResponse:
        return client_error(request, 400)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> PlainTextResponse:
        response = client_error(request, exc.status_code)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request,
        exc: SQLAlchemyError,
    ) -> PlainTextResponse:
        """
        Handle SQLAlchemy database errors.

        Logs the actual error for debugging while hiding details from users.
        """
        return server_error(request, exc)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> PlainTextResponse:
        """Catch-all exception handler."""
        return server_error(request, exc)

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    app.include_router(home_router)
    app.include_router(auth_router)
    app.include_router(books_router)
    app.include_router(notes_router)
    app.include_router(reviews_router)

    # -------------------------------------------------------------------------
    # Uploaded Files
    # -------------------------------------------------------------------------
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=upload_dir), name="uploads")

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get("/health", tags=["Health"], summary="Health check")
    async def health_check() -> dict:
        """
        Health check endpoint for load balancers and monitoring.

        Returns status plus the settings that shape request handling.
        """
        return {
            "status": "healthy",
            "app": settings.app_name,
            "environment": settings.environment,
            "database": "sqlite" if settings.is_sqlite else "external",
            "rate_limiting": {
                "enabled": settings.rate_limit_enabled,
                "default_limit": settings.rate_limit_default,
            },
            "csrf": settings.csrf_enabled,
        }

    return app


# =============================================================================
# Application Instance
# =============================================================================
# This is what uvicorn imports: uvicorn bookreview.main:app

app = create_app()


# =============================================================================
# Development Server
# =============================================================================
# This allows running the app directly with: python -m bookreview.main

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bookreview.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,  # Auto-reload on code changes
    )

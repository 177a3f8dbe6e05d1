"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, cast
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from snippy.api.v1.router import api_router
from snippy.config import settings
from snippy.core.context import get_service_context, init_service_context
from snippy.core.database import close_db, init_db, ping_db
from snippy.core.db_kernel import CollisionError, DbKernelError, ErrorKind
from snippy.core.exceptions import (
    ConflictError,
    IdentifierAssignmentError,
    RateLimitExceededError,
    ServiceUnavailableError,
    SnippyError,
    ValidationError,
)
from snippy.core.logging import correlation_scope, setup_logging
from snippy.core.redis import close_redis
from snippy.core.resilience import BrokenCircuitError
from snippy.services.identifiers import SHORT_ID_FIELD, USER_NAME_FIELD

logger = logging.getLogger(__name__)

# Generated identifiers: a collision that survives to the boundary is retryable.
_GENERATED_FIELDS = frozenset({SHORT_ID_FIELD, USER_NAME_FIELD})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging(debug=settings.debug)

    logger.info(
        "Starting Snippy",
        extra={"environment": settings.environment, "version": settings.app_version},
    )

    context = init_service_context(settings)
    await context.policies.connection.execute(
        ping_db,
        observer=context.policies.observer,
        sleep=context.policies.sleep,
    )
    logger.info("Database connection established")

    if settings.environment == "development":
        await init_db()
        logger.info("Development database initialized")

    yield

    logger.info("Shutting down Snippy")
    await close_redis()
    await close_db()


def _error_response(error: SnippyError) -> JSONResponse:
    headers = None
    if isinstance(error, RateLimitExceededError):
        headers = {"Retry-After": str(error.retry_after)}
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.message},
        headers=headers,
    )


def translate_db_error(exc: DbKernelError) -> SnippyError:
    """Map a classified persistence failure onto an HTTP-facing error."""
    if isinstance(exc, CollisionError):
        if exc.field in _GENERATED_FIELDS:
            return IdentifierAssignmentError(exc.field)
        return ConflictError()
    if exc.kind is ErrorKind.CONNECTIVITY:
        return ServiceUnavailableError()
    if exc.kind is ErrorKind.VALIDATION:
        return ValidationError("Invalid data")
    return SnippyError("Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SnippyError)
    async def snippy_error_handler(_: Request, exc: SnippyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed", extra={"error": exc.message, **exc.details})
        return _error_response(exc)

    @app.exception_handler(DbKernelError)
    async def db_error_handler(_: Request, exc: DbKernelError) -> JSONResponse:
        error = translate_db_error(exc)
        logger.warning(
            "Database error reached the API boundary",
            extra={"failure_kind": exc.kind.value, "status_code": error.status_code},
        )
        return _error_response(error)

    @app.exception_handler(BrokenCircuitError)
    async def broken_circuit_handler(_: Request, exc: BrokenCircuitError) -> JSONResponse:
        logger.warning("Circuit open", extra={"error": str(exc)})
        return _error_response(ServiceUnavailableError())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Code snippet sharing backend: snippets, forks, favorites and comments",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        cast(Any, CORSMiddleware),
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def bind_request_id(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid4().hex[:12]
        with correlation_scope(request_id[:64]):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id[:64]
        return response

    register_exception_handlers(app)

    # Include API router
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get(
        "/health",
        summary="Health check",
        description="Return service health status, version and retry counters.",
    )
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        context = get_service_context()
        return {
            "status": "healthy",
            "version": settings.app_version,
            "retries": context.observer.snapshot(),
        }

    return app


app = create_app()

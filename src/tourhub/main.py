"""Main FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from tourhub.api.v1.router import api_router
from tourhub.config import get_settings
from tourhub.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from tourhub.core.logging import get_logger, setup_logging
from tourhub.core.security import security_headers_middleware
from tourhub.dependencies import close_mongo_service, get_mongo_service

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    # Startup
    settings = get_settings()
    logger.info("Starting up Tourhub API (storage=%s)", settings.storage_backend)
    if settings.storage_backend == "mongodb":
        try:
            await get_mongo_service(settings).ensure_indexes()
        except PyMongoError as e:
            logger.warning(f"Could not ensure MongoDB indexes at startup: {e}")
    yield
    # Shutdown
    logger.info("Shutting down Tourhub API")
    await close_mongo_service()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Tour marketplace API: paginated listings and embedded review aggregation",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods,
        allow_headers=settings.cors_headers,
    )

    # Add security headers middleware
    app.middleware("http")(security_headers_middleware)

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include API router with versioning
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    return app


app = create_app()

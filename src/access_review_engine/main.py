"""Access review engine service entry point.

Initializes the FastAPI application with:
- Structured logging (structlog)
- Primary PostgreSQL database for applications, review cycles, access
  records, findings and the audit log
- Error handlers mapping service errors to JSON responses
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from access_review_engine.api.router import router
from access_review_engine.database import close_database, init_database
from access_review_engine.errors import register_exception_handlers
from access_review_engine.observability import configure_logging, get_logger
from access_review_engine.settings import get_settings

logger = get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    Configures logging and the database engine on startup and disposes the
    engine on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    logger.info("Initializing primary database", service=settings.service_name, pool_size=settings.db_pool_size)
    init_database(
        database_url=settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        echo=settings.db_echo,
    )
    app.state.settings = settings

    logger.info(
        "Access review engine startup complete",
        default_dormant_days=settings.default_dormant_days,
        max_import_records=settings.max_import_records,
    )

    yield

    logger.info("Shutting down access review engine")
    await close_database()
    logger.info("Access review engine shutdown complete")


def create_app() -> FastAPI:
    """Build the FastAPI application with routes and error handlers."""
    application = FastAPI(title=settings.service_name, version="0.1.0", lifespan=lifespan)
    register_exception_handlers(application)
    application.include_router(router, prefix="/api/v1")

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": settings.service_name}

    return application


app: FastAPI = create_app()

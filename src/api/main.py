"""FastAPI application factory and lifecycle.

Startup verifies the record store is reachable, creates missing tables and
loads the initial rate records into an empty store; shutdown disposes of the
database engine. Middleware run in reverse order of registration.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI
from loguru import logger

from src.api.middleware.error_handler import register_exception_handlers
from src.api.middleware.request_context import RequestContextMiddleware
from src.api.middleware.request_logging import RequestLoggingMiddleware
from src.api.routers import tax_records
from src.api.utils.responses import ORJSONResponse
from src.core.config import Settings, get_settings
from src.core.logging import setup_logging
from src.core.observability import instrument_app, setup_tracing
from src.infrastructure.database.seed import seed_initial_records
from src.infrastructure.database.session import (
    check_database_connection,
    close_database,
    create_schema,
    get_async_session,
    get_engine,
)
from src.infrastructure.database.tax_records import TaxRateRepository


async def bootstrap_storage(settings: Settings) -> None:
    """Prepare the record store according to the database configuration.

    Raises:
        RuntimeError: If the database cannot be reached.
    """
    is_healthy, error_msg = await check_database_connection()
    if not is_healthy:
        logger.error("Database connection failed during startup: {}", error_msg)
        msg = f"Database connection failed: {error_msg}"
        raise RuntimeError(msg)
    logger.info("Database connection successful")

    db_config = settings.database_config
    if db_config.create_schema_on_startup:
        await create_schema()
    if db_config.seed_on_startup:
        async with get_async_session() as session:
            await seed_initial_records(TaxRateRepository(session))


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Run storage bootstrap on startup and release the engine on shutdown.

    Raises:
        RuntimeError: If database connection fails during startup.
    """
    await bootstrap_storage(get_settings())
    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    yield

    logger.info("Application shutdown initiated")
    await close_database()
    logger.info("Application shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    register_exception_handlers(application)

    # 2. Request logging (runs inside the correlation id context)
    application.add_middleware(RequestLoggingMiddleware, log_config=settings.log_config)
    # 1. Request context
    application.add_middleware(RequestContextMiddleware)

    application.include_router(tax_records.router)

    @application.get("/health")
    async def health() -> dict[str, object]:
        """Report liveness and record store connectivity.

        The service answers "degraded" rather than failing when the database
        is unreachable.
        """
        is_healthy, error_msg = await check_database_connection()
        health_status: dict[str, object] = {
            "status": "healthy" if is_healthy else "degraded",
            "database": is_healthy,
        }

        if is_healthy:
            logger.bind(
                metric_type="db.pool.health",
                pool_status=get_engine().pool.status(),
            ).debug("Database pool health check")
        else:
            logger.warning("Database health check failed: {}", error_msg)

        return health_status

    @application.get("/info")
    async def info(
        app_settings: Annotated[Settings, Depends(get_settings)],
    ) -> dict[str, Any]:
        """Get application name, version and environment."""
        return {
            "app_name": app_settings.app_name,
            "version": app_settings.app_version,
            "environment": app_settings.environment,
            "debug": app_settings.debug,
        }

    instrument_app(application, settings)

    return application


app = create_app()

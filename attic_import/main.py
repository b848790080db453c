"""FastAPI application entry point for Attic import plugins.

This module wires settings, logging, the database engine and the built-in
plugins into a FastAPI application.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from attic_import.api.routes import plugins_router
from attic_import.config import Settings, get_settings
from attic_import.db.models import close_engine, get_session_factory, init_db, init_engine
from attic_import.observability.logging import get_logger, setup_logging
from attic_import.observability.middleware import setup_observability
from attic_import.plugins.client import RateLimiter
from attic_import.plugins.loaders import register_builtin_plugins
from attic_import.plugins.registry import PluginRegistry
from attic_import.services.import_service import ImportService

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; the cached settings are used if omitted

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager.

        Handles startup and shutdown events:
        - Initialize database connection
        - Register the built-in plugins
        - Close plugin HTTP clients and database connections on shutdown
        """
        setup_logging(
            json_format=settings.observability.log_format == "json",
            log_level=settings.observability.log_level,
        )
        logger.info(
            "starting_application",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.observability.environment,
        )

        registry = PluginRegistry()
        try:
            db_engine = init_engine(
                settings.database.url,
                echo=settings.database.echo,
                pool_size=settings.database.pool_size,
                max_overflow=settings.database.max_overflow,
            )
            if settings.database.create_tables:
                await init_db(db_engine)

            count = register_builtin_plugins(registry, settings, RateLimiter())
            failures = await registry.initialize_all()
            if failures:
                logger.warning(
                    "plugin_initialization_failures",
                    failures={k: str(v) for k, v in failures.items()},
                )
            logger.info("plugins_loaded", total=count)

            app.state.registry = registry
            app.state.import_service = ImportService(
                registry,
                get_session_factory(),
                settings.imports,
            )
            logger.info("application_startup_complete")
        except Exception as e:
            logger.error("startup_failed", error=str(e), exc_info=True)
            raise

        yield

        logger.info("shutting_down_application")
        await registry.shutdown_all()
        await close_engine()
        logger.info("application_shutdown_complete")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Import catalogue records from external sources into the inventory",
        lifespan=lifespan,
    )
    setup_observability(app)
    app.include_router(plugins_router, prefix="/api/v1")
    return app

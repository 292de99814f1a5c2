import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from translation_api.config import settings
from translation_api.database import engine
from translation_api.exception_handlers import register_exception_handlers
from translation_api.middleware.logging import StructuredLoggingMiddleware, configure_logging
from translation_api.middleware.rate_limit import configure_rate_limiting
from translation_api.routes import auth, monitoring, translations
from translation_api.utils.cache import cache_manager
from translation_api.utils.metrics import PrometheusMiddleware, set_app_info
from translation_api.utils.query_monitor import install_query_monitor

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up the application...")
    install_query_monitor(engine, settings.slow_query_threshold_ms)
    await cache_manager.connect()
    yield
    logger.info("Shutting down the application...")
    await cache_manager.disconnect()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    configure_logging(settings.log_level, settings.log_json)
    set_app_info(version=settings.app_version, environment=settings.environment)

    app = FastAPI(
        title=settings.app_name,
        description="Translation management API with per-locale export caching",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Last added runs first: request IDs are assigned before metrics are taken
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    register_exception_handlers(app)
    configure_rate_limiting(app)

    app.include_router(auth.router, prefix=API_PREFIX)
    app.include_router(translations.router, prefix=API_PREFIX)
    app.include_router(monitoring.router)

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()

import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from translation_api.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    """Pool sizing per environment; SQLite picks its own pool class."""
    if url.startswith("sqlite"):
        return {"echo": settings.debug}

    if settings.environment == "production":
        return {
            "pool_size": 20,
            "max_overflow": 50,
            "pool_timeout": 60,
            "pool_recycle": 1800,
            "pool_pre_ping": True,
        }
    return {
        "echo": settings.debug,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
    }


def install_sqlite_pragmas(engine: AsyncEngine) -> None:
    """
    Align SQLite with PostgreSQL semantics on every new connection.

    - foreign_keys: enables ON DELETE CASCADE from locales to translations
    - case_sensitive_like: makes LIKE filters case-sensitive
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA case_sensitive_like=ON")
        cursor.close()


def create_engine_from_url(url: str, **overrides) -> AsyncEngine:
    options = _engine_options(url)
    options.update(overrides)
    new_engine = create_async_engine(url, **options)
    install_sqlite_pragmas(new_engine)
    return new_engine


engine = create_engine_from_url(settings.database_url)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except Exception as e:
            logger.error(f"Database session error: {e}")
            await db.rollback()
            raise
